"""
Configuration for the OrientDB SDK.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .constants import DEFAULT_DATABASE_TYPE, DEFAULT_PORT


class ClientSettings(BaseSettings):
    """Client configuration, read from ORIENTDB_* environment variables."""

    # Server
    host: str = Field(default="localhost")
    port: int = Field(default=DEFAULT_PORT)
    timeout: float = Field(default=30.0, description="Socket timeout in seconds")

    # Pin a protocol revision; None = negotiate with the server
    protocol_version: Optional[int] = Field(default=None)

    # Database opened by DbClient.open() when no name is given
    database: Optional[str] = Field(default=None)
    database_type: str = Field(default=DEFAULT_DATABASE_TYPE)

    # Credentials
    user: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    client_id: Optional[str] = Field(default=None)

    model_config = {"env_prefix": "ORIENTDB_"}
