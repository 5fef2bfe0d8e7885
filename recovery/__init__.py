"""Panic recovery middleware for ASGI applications."""

from recovery.constants import MINIMUM_STACK_SIZE
from recovery.errors import Panic
from recovery.middleware import (
    RecoverMiddleware,
    capture_trace,
    describe_panic,
    recover,
    trim_trace,
)
from recovery.policy import (
    RecoveryConfig,
    content_type,
    default_error_handler,
    error_handler,
    json_error_handler,
    logger,
    new_config,
    response_status,
    stack_size,
)
from recovery.writer import ResponseWriter

__all__ = [
    "MINIMUM_STACK_SIZE",
    "Panic",
    "RecoverMiddleware",
    "RecoveryConfig",
    "ResponseWriter",
    "capture_trace",
    "content_type",
    "default_error_handler",
    "describe_panic",
    "error_handler",
    "json_error_handler",
    "logger",
    "new_config",
    "recover",
    "response_status",
    "stack_size",
    "trim_trace",
]
