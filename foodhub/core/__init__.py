"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from foodhub.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from foodhub.core.exceptions import (
    OrderingError,
    Unauthorized,
    Forbidden,
    NotFound,
    ValidationError,
    InvalidStateTransition,
    ResourceExhausted,
    Internal,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "OrderingError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ValidationError",
    "InvalidStateTransition",
    "ResourceExhausted",
    "Internal",
]
