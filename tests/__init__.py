"""
OrientDB SDK Test Suite.

This package contains:
- unit/: Unit tests (codec, layouts, decoder, revisions, options)
- integration/: Client tests against scripted server replies
"""
