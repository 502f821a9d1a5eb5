"""Integration test configuration.

These tests need a reachable legacy store and target store and are skipped by
default. Set SOURCE_HOST (plus the other SOURCE_* variables) and DATABASE_URL
to enable them.
"""

import os

import pytest

skip_no_stores = pytest.mark.skipif(
    not (os.environ.get("DATABASE_URL") and os.environ.get("SOURCE_HOST")),
    reason="Integration tests require DATABASE_URL and SOURCE_HOST env vars",
)
