# =============================================================================
# demonlist_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass

from demonlist_core.logging import get_logger, LogContext
from demonlist_core.errors import (
    handle_error,
    DemonListError,
    DomainValidationError,
    PermissionDeniedError,
)
from demonlist_core.models import MODERATOR_ROLES, now_ms


@dataclass
class ServiceResult:
    """
    Standard result container for service operations.

    Presentation code can show ``error`` directly to the user.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        """Create a successful result"""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Dict[str, Any] = None
    ) -> ServiceResult:
        """Create a failed result"""
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            metadata=metadata,
        )

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Create a failed result from an exception"""
        if isinstance(e, DemonListError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                metadata=e.details,
            )
        return cls(
            success=False,
            error=str(e),
            error_code="EXCEPTION",
        )


class BaseService(ABC):
    """
    Abstract base class for the domain services.

    Provides common functionality:
    - Logging
    - Error handling (``run`` turns exceptions into ServiceResult)
    - Audit trail helper
    - Moderator permission check

    Usage:
        class MyService(BaseService):
            def do_something(self, actor):
                self.require_moderator(actor)
                ...
                self.audit("something", actor=actor)
    """

    def __init__(self, data, clock: Callable[[], int] = now_ms):
        """
        Args:
            data: ListDataService used for all collection access
            clock: Returns the current time in epoch milliseconds
        """
        self.data = data
        self.clock = clock
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Approving submission"):
                ...
        """
        return LogContext(self.logger, operation, expected=(DomainValidationError,))

    def run(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Execute a service method with error handling and logging.

        Domain validation errors become failed results carrying the
        user-facing message; nothing is raised.

        Args:
            operation: Description of the operation
            func: Function to execute
            *args, **kwargs: Arguments to pass to func

        Returns:
            ServiceResult with success/failure status
        """
        try:
            with self.log_operation(operation):
                result = func(*args, **kwargs)
            return ServiceResult.ok(result)
        except DomainValidationError as e:
            handle_error(e)
            return ServiceResult.from_exception(e)
        except Exception as e:
            message = handle_error(e, log_error=False)
            return ServiceResult.fail(message, error_code="EXCEPTION")

    def audit(
        self,
        action: str,
        actor: Optional[str] = None,
        target: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Append one audit entry describing a visible change."""
        return self.data.add_audit(
            action,
            actor=actor,
            target=target,
            details=details,
            created_at=self.clock(),
        )

    def get_user(self, username: str) -> Optional[Dict[str, Any]]:
        return self.data.find_user(self.data.get_users(), username=username)

    def require_moderator(self, actor: Optional[str]) -> Dict[str, Any]:
        """
        Ensure the acting user is a mod or head admin.

        Raises:
            PermissionDeniedError: if not
        """
        user = self.get_user(actor) if actor else None
        if user is None or user.get("role") not in MODERATOR_ROLES:
            raise PermissionDeniedError("Mods only", actor=actor)
        return user
