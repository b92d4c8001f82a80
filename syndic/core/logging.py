"""Logging configuration and utilities."""
import logging
import sys
from typing import Any, Dict

import structlog
from structlog.stdlib import LoggerFactory

from ..config import settings


def configure_logging():
    """Configure structured logging."""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.monitoring.log_level.upper()),
    )

    # Set third-party log levels
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class RequestLogger:
    """Request logging utility."""

    @staticmethod
    def log_request(
        method: str,
        path: str,
        request_id: str = None,
        extra_data: Dict[str, Any] = None
    ):
        """Log incoming request."""
        logger = structlog.get_logger("api.request")
        logger.info(
            "Request started",
            method=method,
            path=path,
            request_id=request_id,
            **(extra_data or {})
        )

    @staticmethod
    def log_response(
        method: str,
        path: str,
        status_code: int,
        response_time_ms: float,
        request_id: str = None,
    ):
        """Log response."""
        logger = structlog.get_logger("api.response")
        logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=status_code,
            response_time_ms=response_time_ms,
            request_id=request_id,
        )


class SecurityLogger:
    """Security event logging utility.

    Passwords and password hashes are never passed to these helpers.
    """

    @staticmethod
    def log_login_attempt(
        email: str,
        success: bool,
        user_id: str = None,
        failure_reason: str = None
    ):
        """Log login attempt."""
        logger = structlog.get_logger("security.auth")
        logger.info(
            "Login attempt",
            event_type="login_attempt",
            email=email,
            success=success,
            user_id=user_id,
            failure_reason=failure_reason
        )

    @staticmethod
    def log_session_restored(user_id: str = None, restored: bool = True, reason: str = None):
        """Log the outcome of a startup session restore."""
        logger = structlog.get_logger("security.session")
        logger.info(
            "Session restore",
            event_type="session_restored",
            user_id=user_id,
            restored=restored,
            reason=reason
        )

    @staticmethod
    def log_logout(user_id: str = None):
        logger = structlog.get_logger("security.session")
        logger.info("Logout", event_type="logout", user_id=user_id)

    @staticmethod
    def log_token_rejected(reason: str, user_id: str = None):
        logger = structlog.get_logger("security.token")
        logger.warning(
            "Token rejected",
            event_type="token_rejected",
            reason=reason,
            user_id=user_id
        )

    @staticmethod
    def log_unauthorized_access(
        capability: str,
        user_id: str = None,
        role: str = None,
        path: str = None
    ):
        """Log unauthorized access attempt."""
        logger = structlog.get_logger("security.access")
        logger.warning(
            "Unauthorized access attempt",
            event_type="unauthorized_access",
            capability=capability,
            user_id=user_id,
            role=role,
            path=path
        )

    @staticmethod
    def log_store_failure(operation: str, attempt: int, error: str):
        logger = structlog.get_logger("security.store")
        logger.warning(
            "Credential store call failed",
            event_type="store_failure",
            operation=operation,
            attempt=attempt,
            error=error
        )


class AuditLogger:
    """User administration audit trail."""

    @staticmethod
    def log_user_created(user_id: str, email: str, role: str, status: str, actor_id: str = None):
        logger = structlog.get_logger("audit.users")
        logger.info(
            "User created",
            event_type="user_created",
            user_id=user_id,
            email=email,
            role=role,
            status=status,
            actor_id=actor_id
        )

    @staticmethod
    def log_status_changed(user_id: str, old_status: str, new_status: str, actor_id: str):
        logger = structlog.get_logger("audit.users")
        logger.info(
            "User status changed",
            event_type="user_status_changed",
            user_id=user_id,
            old_status=old_status,
            new_status=new_status,
            actor_id=actor_id
        )

    @staticmethod
    def log_role_changed(user_id: str, old_role: str, new_role: str, actor_id: str):
        logger = structlog.get_logger("audit.users")
        logger.info(
            "User role changed",
            event_type="user_role_changed",
            user_id=user_id,
            old_role=old_role,
            new_role=new_role,
            actor_id=actor_id
        )

    @staticmethod
    def log_password_changed(user_id: str):
        logger = structlog.get_logger("audit.users")
        logger.info("Password changed", event_type="password_changed", user_id=user_id)
