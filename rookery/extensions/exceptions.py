"""Extension domain exceptions.

Only explicit, operator-triggered state changes raise.  Malformed
manifests, failed validation steps and security findings are reported
as data in a ``ValidationReport``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rookery.models.reports import ValidationReport


class ExtensionError(RuntimeError):
    """Base class for extension lifecycle errors."""


class ExtensionConfigError(ExtensionError):
    """Raised when a configuration mutation could not be persisted."""


class ExtensionNotFoundError(ExtensionError):
    """Raised when no extension directory exists for a name."""


class ExtensionValidationError(ExtensionError):
    """Raised by ``ExtensionManager.enable`` when an extension fails validation.

    The full report is attached so callers can show every reason.
    """

    def __init__(self, message: str, report: ValidationReport) -> None:
        super().__init__(message)
        self.report = report
