# =============================================================================
# demonlist_core/errors/exceptions.py
# Custom Exception Hierarchy for the Demon List storage core
# =============================================================================

from typing import Optional, Dict, Any


class DemonListError(Exception):
    """
    Base exception for all Demon List errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "SYNC_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DL_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# REMOTE / SYNC EXCEPTIONS
# =============================================================================

class RemoteSyncError(DemonListError):
    """Base class for failures talking to the remote data API"""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        method: Optional[str] = None,
        code: str = "SYNC_000",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        if method:
            details["method"] = method

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )


class RemoteTransportError(RemoteSyncError):
    """Raised when the request never produced a usable response"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, code="SYNC_001", **kwargs)


class RemoteRejectionError(RemoteSyncError):
    """Raised when the remote answered with a non-2xx status"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:500]

        super().__init__(message=message, code="SYNC_002", details=details, **kwargs)
        self.status_code = status_code


# =============================================================================
# LOCAL STORAGE EXCEPTIONS
# =============================================================================

class StorageError(DemonListError):
    """Raised inside the local cache when an entry cannot be persisted"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="STORE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# DOMAIN VALIDATION EXCEPTIONS
# =============================================================================

class DomainValidationError(DemonListError):
    """Raised when a user-initiated action violates a domain rule"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: str = "DOMAIN_001",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )


class DuplicateUsernameError(DomainValidationError):
    """Raised when a username is already taken (case-insensitive)"""

    def __init__(self, username: str):
        super().__init__(
            "Username already taken",
            field="username",
            value=username,
            code="DOMAIN_002",
        )


class UserNotFoundError(DomainValidationError):
    """Raised when a referenced user does not exist"""

    def __init__(self, username: str):
        super().__init__(
            "User not found",
            field="username",
            value=username,
            code="DOMAIN_003",
        )


class LevelNotFoundError(DomainValidationError):
    """Raised when a referenced level does not exist"""

    def __init__(self, level_id: str):
        super().__init__(
            "Referenced level not found",
            field="level_id",
            value=level_id,
            code="DOMAIN_004",
        )


class SubmissionNotFoundError(DomainValidationError):
    """Raised when a referenced submission does not exist"""

    def __init__(self, submission_id: str):
        super().__init__(
            "Submission not found",
            field="submission_id",
            value=submission_id,
            code="DOMAIN_005",
        )


class InvalidBanTargetError(DomainValidationError):
    """Raised when a ban or role change targets a protected account"""

    def __init__(self, message: str, username: Optional[str] = None):
        super().__init__(
            message,
            field="username",
            value=username,
            code="DOMAIN_006",
        )


class PermissionDeniedError(DomainValidationError):
    """Raised when the acting user lacks the required role"""

    def __init__(self, message: str = "Mods only", actor: Optional[str] = None):
        super().__init__(
            message,
            field="actor",
            value=actor,
            code="DOMAIN_007",
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(DemonListError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
