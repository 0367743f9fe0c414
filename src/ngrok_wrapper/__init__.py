"""ngrok Python Wrapper - expose a local server through the ngrok agent."""

# High-level API
from .api import managed_tunnel, open_tunnel, start_tunnels, stop_tunnels

# Common utilities
from .common.exceptions import (
    AgentStartupError,
    AuthenticationError,
    BinaryNotFoundError,
    ControlAPIError,
    NgrokWrapperError,
    ProcessError,
    TunnelError,
)
from .common.logging import get_logger, setup_logging
from .common.utils import mask_sensitive_data, sanitize_log_data

# Configuration
from .config import AgentConfig, Region

# Agent components
from .core import AgentLauncher, AgentProcess, ControlClient, RemoteTunnel

# Tunnel management
from .tunnels import (
    Tunnel,
    TunnelingConfig,
    TunnelManager,
    TunnelRecord,
    TunnelState,
)

# Setup logging on package initialization
setup_logging(level="INFO")

# Package level logger
logger = get_logger(__name__)

__version__ = "0.1.0"


__all__ = [
    # High-level API
    "open_tunnel",
    "managed_tunnel",
    "start_tunnels",
    "stop_tunnels",
    # Configuration
    "AgentConfig",
    "Region",
    "TunnelingConfig",
    # Tunnel management
    "TunnelManager",
    "Tunnel",
    "TunnelRecord",
    "TunnelState",
    # Agent components
    "AgentLauncher",
    "AgentProcess",
    "ControlClient",
    "RemoteTunnel",
    # Exceptions
    "NgrokWrapperError",
    "ProcessError",
    "BinaryNotFoundError",
    "AuthenticationError",
    "AgentStartupError",
    "ControlAPIError",
    "TunnelError",
    # Utilities
    "get_logger",
    "setup_logging",
    "mask_sensitive_data",
    "sanitize_log_data",
]
