"""Root conftest — shared test configuration."""

import os

# Settings are cached on first use; pin test values before anything imports the app
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("LOG_FORMAT", "text")
