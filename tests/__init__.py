"""
fgaquery Test Suite.

This package contains:
- unit/: Unit tests (no server, fake Expand backend)
- integration/: Client and CLI tests against the in-process mock OpenFGA server
"""
