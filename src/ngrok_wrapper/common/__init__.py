"""Common utilities and shared functionality."""

from .exceptions import (
    AgentStartupError,
    AuthenticationError,
    BinaryNotFoundError,
    ControlAPIError,
    NgrokWrapperError,
    ProcessError,
    TunnelError,
)
from .logging import get_logger, mask_secrets, setup_logging
from .utils import mask_sensitive_data, sanitize_log_data

__all__ = [
    # Exceptions
    "NgrokWrapperError",
    "ProcessError",
    "BinaryNotFoundError",
    "AuthenticationError",
    "AgentStartupError",
    "ControlAPIError",
    "TunnelError",
    # Logging
    "get_logger",
    "setup_logging",
    "mask_secrets",
    # Utils
    "mask_sensitive_data",
    "sanitize_log_data",
]
