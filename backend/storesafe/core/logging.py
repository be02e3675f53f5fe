"""
StoreSafe - Logging Infrastructure
==================================

This module provides structured logging with support for:
- JSON formatted logs for production
- Console formatted logs for development
- Context binding for request tracing
- Security and audit event loggers
"""

from __future__ import annotations

import logging
import sys
import time
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar, ParamSpec

import structlog
from structlog.types import Processor

from storesafe.core.config import get_settings

# Context variables for request tracing
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_context: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

P = ParamSpec("P")
R = TypeVar("R")


def add_context_variables(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Add context variables to log entries.

    Adds request_id and user_id from context variables to every entry.
    """
    request_id = request_id_context.get()
    if request_id:
        event_dict["request_id"] = request_id

    user_id = user_id_context.get()
    if user_id:
        event_dict["user_id"] = user_id

    return event_dict


def get_log_level(settings: Any) -> int:
    """Convert string log level to logging constant."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(settings.LOG_LEVEL.upper(), logging.INFO)


def get_processors(settings: Any) -> list[Processor]:
    """Get structlog processors based on settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_variables,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    This should be called once at application startup.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=get_log_level(settings),
    )

    structlog.configure(
        processors=get_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A structlog BoundLogger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Incident closed", extra={"incident_id": "..."})
    """
    return structlog.get_logger(name)


class LogContext:
    """
    Context manager for setting log context variables.

    Example:
        >>> with LogContext(request_id="req-123", user_id="user-1"):
        ...     log.info("processing_import")
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self.request_id = request_id
        self.user_id = user_id
        self._tokens: list = []

    def __enter__(self) -> "LogContext":
        if self.request_id:
            self._tokens.append((request_id_context, request_id_context.set(self.request_id)))
        if self.user_id:
            self._tokens.append((user_id_context, user_id_context.set(self.user_id)))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


def log_execution_time(
    log: structlog.stdlib.BoundLogger,
    operation: str,
    **extra_fields: Any
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to log execution time of a function.

    Args:
        log: Logger instance
        operation: Name of the operation being timed
        **extra_fields: Additional fields to include in the log

    Example:
        >>> @log_execution_time(log, "optimize_route")
        ... def find_best_combination(stores, home): ...
    """
    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.info(
                    f"{operation}_completed",
                    duration_ms=round(duration_ms, 2),
                    success=True,
                    **extra_fields
                )
                return result
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.error(
                    f"{operation}_failed",
                    duration_ms=round(duration_ms, 2),
                    success=False,
                    error=str(e),
                    error_type=type(e).__name__,
                    **extra_fields
                )
                raise
        return wrapper
    return decorator


# =====================================
# Security Event Logger
# =====================================

class SecurityLogger:
    """
    Specialized logger for authentication and access events.
    """

    def __init__(self) -> None:
        self.log = get_logger("storesafe.security")

    def log_login_success(self, user_id: str, ip_address: str, user_agent: str = "unknown") -> None:
        self.log.info(
            "login_success",
            event_type="authentication",
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_login_failure(self, email: str, ip_address: str, reason: str) -> None:
        self.log.warning(
            "login_failure",
            event_type="authentication",
            email=email,
            ip_address=ip_address,
            reason=reason,
        )

    def log_account_locked(self, user_id: str, ip_address: str) -> None:
        self.log.warning(
            "account_locked",
            event_type="authentication",
            user_id=user_id,
            ip_address=ip_address,
        )

    def log_token_refresh(self, user_id: str) -> None:
        self.log.info("token_refreshed", event_type="authentication", user_id=user_id)

    def log_token_invalid(self, reason: str, ip_address: str) -> None:
        self.log.warning(
            "token_invalid",
            event_type="authentication",
            reason=reason,
            ip_address=ip_address,
        )

    def log_logout(self, user_id: str) -> None:
        self.log.info("logout", event_type="authentication", user_id=user_id)

    def log_unauthorized_access(self, user_id: str, resource: str, action: str) -> None:
        self.log.warning(
            "unauthorized_access",
            event_type="authorization",
            user_id=user_id,
            resource=resource,
            action=action,
        )

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str) -> None:
        self.log.warning(
            "rate_limit_exceeded",
            event_type="rate_limit",
            ip_address=ip_address,
            endpoint=endpoint,
        )


# =====================================
# Audit Logger
# =====================================

class AuditLogger:
    """
    Logger for administrative and record-keeping events.

    Entries here complement the `fa_activity_log` table, which is the
    user-facing history. These entries are for operators.
    """

    def __init__(self) -> None:
        self.log = get_logger("storesafe.audit")

    def log_user_created(self, actor_id: str, target_user_id: str, role: str) -> None:
        self.log.info(
            "user_created",
            event_type="audit",
            actor_id=actor_id,
            target_user_id=target_user_id,
            role=role,
        )

    def log_user_modified(self, actor_id: str, target_user_id: str, changes: dict) -> None:
        self.log.info(
            "user_modified",
            event_type="audit",
            actor_id=actor_id,
            target_user_id=target_user_id,
            changes=changes,
        )

    def log_user_deleted(self, actor_id: str, target_user_id: str) -> None:
        self.log.warning(
            "user_deleted",
            event_type="audit",
            actor_id=actor_id,
            target_user_id=target_user_id,
        )

    def log_incident_closed(self, actor_id: str, incident_id: str, reference_no: str) -> None:
        self.log.info(
            "incident_closed",
            event_type="audit",
            actor_id=actor_id,
            incident_id=incident_id,
            reference_no=reference_no,
        )

    def log_incident_deleted(self, actor_id: str, incident_id: str, reference_no: str) -> None:
        self.log.warning(
            "incident_deleted",
            event_type="audit",
            actor_id=actor_id,
            incident_id=incident_id,
            reference_no=reference_no,
        )


security_logger = SecurityLogger()
audit_logger = AuditLogger()
