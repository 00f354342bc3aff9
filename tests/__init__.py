"""Test package. Environment defaults must be in place before any app module is imported."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-0123456789")
os.environ.setdefault("JWT_ISSUER", "warden-tests")
os.environ.setdefault("JWT_AUDIENCE", "warden-test-clients")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "10000")
os.environ.setdefault("DB_RETRY_MAX_DELAY_SEC", "0.01")
