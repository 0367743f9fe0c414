"""Agent process and control API components."""

from .api_client import (
    AgentNotReady,
    ControlClient,
    CreateTunnelResponse,
    OperationalError,
    RemoteTunnel,
    TunnelCreated,
)
from .launcher import AgentLauncher, build_start_args, find_ngrok_binary
from .process import AgentProcess
from .readiness import READY_MARKER, ReadinessScanner, wait_for_marker

__all__ = [
    "ControlClient",
    "CreateTunnelResponse",
    "TunnelCreated",
    "AgentNotReady",
    "OperationalError",
    "RemoteTunnel",
    "AgentLauncher",
    "AgentProcess",
    "find_ngrok_binary",
    "build_start_args",
    "ReadinessScanner",
    "wait_for_marker",
    "READY_MARKER",
]
