"""Root conftest: shared test configuration."""

import os

# Ensure tests never reach a real database or secret
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MIGRATION_SECRET_KEY", "test-migration-secret")
os.environ.setdefault("LOG_FORMAT", "text")
