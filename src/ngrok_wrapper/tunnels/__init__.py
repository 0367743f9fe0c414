"""Tunnel models and lifecycle management."""

from .manager import TunnelManager
from .models import Tunnel, TunnelingConfig, TunnelRecord, TunnelState
from .registry import TunnelRegistry, TunnelRegistryError

__all__ = [
    "Tunnel",
    "TunnelState",
    "TunnelRecord",
    "TunnelingConfig",
    "TunnelManager",
    "TunnelRegistry",
    "TunnelRegistryError",
]
