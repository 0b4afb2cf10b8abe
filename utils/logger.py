"""Logging configuration."""

import json
import logging
import math
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config.settings import settings

SENSITIVE_KEYS = {
    "email",
    "e-mail",
    "phone",
    "telephone",
    "name",
    "full_name",
    "full-name",
    "address",
    "token",
    "session",
    "password",
}

EMAIL_LIKE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)

REDACTED = "[redacted]"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logger(name: str = __name__) -> logging.Logger:
    """Set up logger with configuration."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.log_level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, settings.log_level.upper()))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


error_logger = setup_logger("api.errors")


def sanitize_value(key: str, value: Any) -> Any:
    """Redact personal data from a single log context value."""
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        return [sanitize_value(key, item) for item in value]

    if isinstance(value, dict):
        return {nested_key: sanitize_value(nested_key, nested) for nested_key, nested in value.items()}

    if isinstance(value, str):
        if key.lower() in SENSITIVE_KEYS or EMAIL_LIKE.search(value):
            return REDACTED
        return value

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)) and math.isfinite(value):
        return value

    return REDACTED


def sanitize_context(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not context:
        return {}
    return {key: sanitize_value(key, value) for key, value in context.items()}


def log_structured_error(
    domain: str,
    code: str,
    status: int,
    level: str = "error",
    locale: str = "en",
    context: Optional[Dict[str, Any]] = None,
    error: Optional[BaseException] = None,
) -> Dict[str, Any]:
    """Emit one JSON line describing an API error and return the logged record."""
    record: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "domain": domain,
        "code": code,
        "status": status,
        "locale": locale,
        "context": sanitize_context(context),
    }

    # Only the exception class is logged; messages may carry user data.
    if error is not None:
        record["error"] = {"name": type(error).__name__}

    error_logger.log(_LEVELS.get(level, logging.ERROR), json.dumps(record))
    return record
