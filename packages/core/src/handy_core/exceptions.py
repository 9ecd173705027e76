"""Custom exceptions for Handy Core.

All exceptions inherit from HandyError so callers can catch every
package-specific failure in one place.

The classifier itself never raises for profile content: missing or
unrecognised answers contribute nothing to a score. These exceptions cover
the static reference tables and the ambient setup around them.

Example:
    try:
        verify_reference_data()
    except ReferenceDataError as e:
        logger.error("reference_data_invalid", table=e.table, key=e.key)
        raise
"""

from typing import Any, Optional


class HandyError(Exception):
    """Base exception for all Handy Core errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class ReferenceDataError(HandyError):
    """Raised when a static reference table breaks one of its invariants.

    Reference tables ship with the code, so these errors are fixed by a
    release rather than by retrying.

    Attributes:
        table: Name of the offending table (e.g. "JURISDICTION_REGIMES").
        key: Row key that failed the check, if any.
        constraint: Description of the violated rule.

    Example:
        >>> raise ReferenceDataError(
        ...     "Risk factor weight must be positive",
        ...     table="RISK_FACTORS",
        ...     key="defi",
        ...     constraint="weight > 0",
        ... )
        ReferenceDataError: Risk factor weight must be positive
    """

    def __init__(
        self,
        message: str,
        *,
        table: Optional[str] = None,
        key: Optional[str] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.table = table
        self.key = key
        self.constraint = constraint

        if table:
            self.details["table"] = table
        if key:
            self.details["key"] = key
        if constraint:
            self.details["constraint"] = constraint


class ConfigurationError(HandyError):
    """Raised when configuration is present but unusable.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "HandyError",
    "ReferenceDataError",
    "ConfigurationError",
]
