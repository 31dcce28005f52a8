"""
Exception classes for the Nawala checker system.

All exceptions inherit from NawalaCheckerError and carry a machine-readable
code, a human-readable message, and optional details.

Propagation:
- InvalidFormatError, DuplicateDomainError and NotFoundError reach the caller
  (REST response or chat reply) as user-visible messages.
- OracleRequestError and PersistenceError raised inside a reconciliation
  cycle are logged and turned into an administrative error notice.
- NotificationError is logged and swallowed.
"""

from typing import Optional

from .enums import ErrorCode


class NawalaCheckerError(Exception):
    """Base exception for all Nawala checker errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(NawalaCheckerError):
    """Raised when caller input is rejected before any I/O happens."""

    pass


class InvalidFormatError(ValidationError):
    """Raised when a domain name fails the syntax check."""

    def __init__(self, name: str, details: Optional[dict] = None) -> None:
        super().__init__(
            code=ErrorCode.INVALID_FORMAT.value,
            message="Invalid domain format",
            details={"name": name, **(details or {})},
        )


class DuplicateDomainError(NawalaCheckerError):
    """Raised when adding a domain whose normalized name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_DOMAIN.value,
            message="Domain already exists",
            details={"name": name},
        )


class NotFoundError(NawalaCheckerError):
    """Raised when an operation targets a domain that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND.value,
            message="Domain not found",
            details={"name": name},
        )


class OracleRequestError(NawalaCheckerError):
    """Raised when the block-check oracle request fails as a whole batch."""

    pass


class PersistenceError(NawalaCheckerError):
    """Raised when a storage operation fails (file I/O, serialization)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation of the state file fails."""

    pass


class NotificationError(NawalaCheckerError):
    """Raised when delivering or deleting a chat message fails."""

    pass
