"""Rookery: extension lifecycle management for a trusted host process.

v0.3.0 — Admission control for third-party extensions:
  - Structural, manifest, permission, syntax and security validation
  - Per-dependency ``>=`` engine constraint evaluation
  - Regex security scanner (dangerous calls, SQL injection, XSS, file inclusion)
  - Crash-safe JSON configuration store with per-environment enablement
  - Priority-ordered event subscriber registration for loaded extensions
"""

__version__ = "0.3.0"
__description__ = "Discover, validate, enable and wire host extensions"

from rookery.config import RookerySettings
from rookery.extensions.config_store import ExtensionConfigStore
from rookery.extensions.event_registry import ExtensionEventRegistry, SubscriberProvider
from rookery.extensions.manager import ExtensionManager
from rookery.extensions.validator import ExtensionValidator

__all__ = [
    "RookerySettings",
    "ExtensionConfigStore",
    "ExtensionEventRegistry",
    "ExtensionManager",
    "ExtensionValidator",
    "SubscriberProvider",
    "__version__",
]
