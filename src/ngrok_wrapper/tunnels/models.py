"""Tunnel models.

``Tunnel`` is what callers describe; ``TunnelRecord`` is the manager's own
bookkeeping for it and is never handed out mutable.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import AgentConfig


class TunnelState(str, Enum):
    """Tunnel state enumeration."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class Tunnel(BaseModel):
    """A logical tunnel: a name known to the agent and the local address it serves."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, description="Tunnel name, e.g. 'MyApp'")
    addr: str | None = Field(
        default=None,
        description="Local address to expose ('host:port'), set before opening",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names that cannot be used as a URL path segment."""
        if "/" in v:
            raise ValueError("Tunnel name cannot contain '/'")
        return v

    @field_validator("addr", mode="before")
    @classmethod
    def empty_addr_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def with_addr(self, addr: str) -> "Tunnel":
        """Return a copy bound to ``addr``."""
        return self.model_copy(update={"addr": addr})


class TunnelRecord(BaseModel):
    """Manager-owned state of one tunnel (immutable, replaced on every transition)."""

    model_config = ConfigDict(frozen=True)

    tunnel: Tunnel
    state: TunnelState = Field(default=TunnelState.CLOSED)
    public_address: str | None = Field(
        default=None, description="Public URL, set only while open"
    )
    opened_at: datetime | None = Field(default=None)

    @property
    def name(self) -> str:
        return self.tunnel.name

    def with_state(self, state: TunnelState) -> "TunnelRecord":
        """Create a new record with ``state`` (immutable pattern)."""
        return self.model_copy(update={"state": state})

    def opened(self, public_address: str) -> "TunnelRecord":
        """Create the ``OPEN`` record for a successfully created tunnel.

        Raises:
            ValueError: If ``public_address`` is empty
        """
        if not public_address:
            raise ValueError("An open tunnel requires a public address")

        return self.model_copy(
            update={
                "state": TunnelState.OPEN,
                "public_address": public_address,
                "opened_at": datetime.now(),
            }
        )


class TunnelingConfig(BaseModel):
    """Agent settings plus the tunnels to open for a hosted server."""

    model_config = ConfigDict(extra="forbid")

    agent: AgentConfig = Field(default_factory=AgentConfig)
    tunnels: list[Tunnel] = Field(
        default_factory=list, description="Tunnels to open, usually just one"
    )

    @property
    def is_enabled(self) -> bool:
        """True when at least one tunnel is configured."""
        return len(self.tunnels) > 0
