"""Logging setup and helpers shared by the API and the CLI entrypoints."""

import json
import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"

# Never serialized into log output, at any level.
SECRET_FIELDS = frozenset({"password", "password_hash", "token", "access_token"})


def configure_logging(level: str = "INFO") -> None:
    """Install root handler with the same format used by the CLI scripts."""
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logging.getLogger().setLevel(level)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: ("***" if k in SECRET_FIELDS else _scrub(v)) for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_scrub(v) for v in value]
    return value


def log_debug_with_object(logger: logging.Logger, message: str, obj: Any) -> None:
    """
    Log obj as JSON at DEBUG level; serialization is skipped when DEBUG is off.

    Pydantic models are dumped first. Secret fields are masked.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump()
    logger.debug(message, json.dumps(_scrub(obj), default=str))
