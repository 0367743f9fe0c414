"""Agent and tunneling configuration models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BINARY_NAME = "ngrok"
BINARY_ENV_VAR = "NGROK"
DEFAULT_WEB_INTERFACE = "http://127.0.0.1:4040"


class Region(str, Enum):
    """Regions the ngrok agent can connect to."""

    US = "us"  # United States
    EU = "eu"  # Europe
    AP = "ap"  # Asia/Pacific
    AU = "au"  # Australia
    SA = "sa"  # South America
    JP = "jp"  # Japan
    IN = "in"  # India


class AgentConfig(BaseModel):
    """Settings for locating, authenticating and talking to the ngrok agent."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    binary_path: str | None = Field(
        default=None,
        description="Path to the ngrok executable (PATH, then $NGROK if None)",
    )
    auth_token: str | None = Field(
        default=None, description="Token registered with `ngrok authtoken`"
    )
    region: Region | None = Field(default=None, description="Agent region")
    web_interface: str = Field(
        default=DEFAULT_WEB_INTERFACE,
        description="Base URL of the agent's local control API",
    )
    startup_timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for the agent to become ready (None waits forever)",
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="Timeout for control API requests in seconds"
    )
    keep_agent_alive: bool = Field(
        default=True,
        description="Leave a spawned agent running when the manager shuts down",
    )

    @field_validator("binary_path", "auth_token", mode="before")
    @classmethod
    def empty_as_none(cls, v: str | None) -> str | None:
        """Treat empty strings as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, v: object) -> object:
        """Accept region codes case-insensitively."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator("web_interface")
    @classmethod
    def validate_web_interface(cls, v: str) -> str:
        """Require an http(s) base URL without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("web_interface must start with http:// or https://")
        return v.rstrip("/")
