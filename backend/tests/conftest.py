"""Root conftest — shared test configuration."""

import os

# Ensure tests never touch a real identity secret or database
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production-use")
os.environ.setdefault("JWT_ISSUER", "relay-identity-test")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)
