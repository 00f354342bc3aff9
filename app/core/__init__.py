"""Core app configuration, database and security primitives."""

from app.core.config import get_settings, settings_provider
from app.core.database import get_db

__all__ = ["get_settings", "settings_provider", "get_db"]
