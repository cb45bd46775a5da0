"""
Logging utility functions and helpers.
"""

import logging
from typing import Any, Dict


SENSITIVE_FIELDS = {
    'password', 'token', 'secret', 'api_key', 'access_token',
    'refresh_token', 'cookie', 'authorization'
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive information from log data.

    Args:
        data: Dictionary that may contain sensitive fields

    Returns:
        Sanitized copy safe for logging. Token values keep their first
        8 characters, everything else sensitive is fully redacted.
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            if isinstance(value, str) and 'token' in key.lower() and len(value) > 8:
                sanitized[key] = f"{value[:8]}..."
            else:
                sanitized[key] = "***REDACTED***"

        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

    return sanitized
