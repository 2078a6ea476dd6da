# =============================================================================
# demonlist_core/errors/__init__.py
# Centralized Error Handling for the Demon List storage core
# =============================================================================

from .exceptions import (
    DemonListError,
    RemoteSyncError,
    RemoteTransportError,
    RemoteRejectionError,
    StorageError,
    DomainValidationError,
    DuplicateUsernameError,
    UserNotFoundError,
    LevelNotFoundError,
    SubmissionNotFoundError,
    InvalidBanTargetError,
    PermissionDeniedError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    safe_execute,
    error_boundary,
)

__all__ = [
    # Exceptions
    "DemonListError",
    "RemoteSyncError",
    "RemoteTransportError",
    "RemoteRejectionError",
    "StorageError",
    "DomainValidationError",
    "DuplicateUsernameError",
    "UserNotFoundError",
    "LevelNotFoundError",
    "SubmissionNotFoundError",
    "InvalidBanTargetError",
    "PermissionDeniedError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "safe_execute",
    "error_boundary",
]
