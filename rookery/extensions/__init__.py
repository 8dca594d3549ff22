"""Rookery extension subsystem — validate, persist and wire extensions.

Extensions are untrusted until validated.  Only explicit state changes
raise; validation failures are returned as ``ValidationReport`` data.
"""

from rookery.extensions.config_store import ExtensionConfigStore
from rookery.extensions.event_registry import ExtensionEventRegistry, SubscriberProvider
from rookery.extensions.exceptions import (
    ExtensionConfigError,
    ExtensionError,
    ExtensionNotFoundError,
    ExtensionValidationError,
)
from rookery.extensions.manager import ExtensionManager
from rookery.extensions.scanner import SecurityScanner
from rookery.extensions.validator import ExtensionValidator

__all__ = [
    "ExtensionConfigStore",
    "ExtensionEventRegistry",
    "SubscriberProvider",
    "ExtensionManager",
    "ExtensionValidator",
    "SecurityScanner",
    "ExtensionError",
    "ExtensionConfigError",
    "ExtensionNotFoundError",
    "ExtensionValidationError",
]
