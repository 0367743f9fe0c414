"""HTTP client for the ngrok agent's local control API.

See https://ngrok.com/docs/agent/api/ for the endpoints used here.
"""

from dataclasses import dataclass
from types import TracebackType
from typing import Any, Literal
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ..common.exceptions import ControlAPIError
from ..config import DEFAULT_WEB_INTERFACE

TUNNELS_ENDPOINT = "/api/tunnels"


@dataclass(frozen=True)
class TunnelCreated:
    public_url: str


@dataclass(frozen=True)
class AgentNotReady:
    """The agent answered but cannot accept commands yet (``msg``)."""

    message: str


@dataclass(frozen=True)
class OperationalError:
    """The agent refused the tunnel, e.g. no more addresses (``details.err``)."""

    message: str


CreateTunnelResult = TunnelCreated | AgentNotReady | OperationalError


class RemoteTunnel(BaseModel):
    """A tunnel as reported by ``GET /api/tunnels``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    public_url: str = ""
    proto: str = ""
    addr: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteTunnel":
        config = data.get("config") or {}
        return cls(
            name=data.get("name", ""),
            public_url=data.get("public_url", ""),
            proto=data.get("proto", ""),
            addr=config.get("addr", ""),
        )


class _ErrorDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    err: str = ""


class CreateTunnelResponse(BaseModel):
    """Body of ``POST /api/tunnels``, success and error shapes alike."""

    model_config = ConfigDict(extra="ignore")

    public_url: str = ""
    msg: str = ""
    details: _ErrorDetails | None = None

    def to_result(self) -> CreateTunnelResult:
        if self.msg:
            return AgentNotReady(self.msg)
        if self.details is not None and self.details.err:
            return OperationalError(self.details.err)
        return TunnelCreated(self.public_url)


class ControlClient:
    """Synchronous client for one agent's control API."""

    def __init__(
        self,
        base_url: str = DEFAULT_WEB_INTERFACE,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Args:
            base_url: Agent web interface, e.g. ``http://127.0.0.1:4040``
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    def health(self) -> bool:
        """Return True if anything answers on the base URL, whatever the status."""
        try:
            self._http.get("/")
        except httpx.HTTPError:
            return False
        return True

    def create_tunnel(self, name: str, addr: str) -> str:
        """Create an https tunnel from a public URL to ``addr``.

        Returns:
            The public URL assigned by the agent

        Raises:
            ControlAPIError: If the request fails, the agent reports an error
                or no address is returned
        """
        payload = {"name": name, "addr": addr, "proto": "http", "bind_tls": True}
        response = self._request("POST", TUNNELS_ENDPOINT, json=payload)

        try:
            body = CreateTunnelResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ControlAPIError(
                f"Unreadable create tunnel response: {e}",
                status_code=response.status_code,
            ) from e

        result = body.to_result()
        if isinstance(result, (AgentNotReady, OperationalError)):
            raise ControlAPIError(result.message, status_code=response.status_code)
        if not result.public_url:
            raise ControlAPIError(
                f"ngrok returned no public address for tunnel '{name}'",
                status_code=response.status_code,
            )
        return result.public_url

    def delete_tunnel(self, name: str) -> None:
        """Delete the tunnel called ``name``.

        Raises:
            ControlAPIError: If the request fails or the status is not 204
        """
        url = f"{TUNNELS_ENDPOINT}/{quote(name, safe='')}"
        response = self._request("DELETE", url)
        if response.status_code != httpx.codes.NO_CONTENT:
            raise ControlAPIError(
                f"Deleting tunnel '{name}' returned unexpected status code: "
                f"{response.status_code}",
                status_code=response.status_code,
            )

    def list_tunnels(self) -> list[RemoteTunnel]:
        """List the tunnels the agent currently serves."""
        response = self._request("GET", TUNNELS_ENDPOINT)
        if response.status_code != httpx.codes.OK:
            raise ControlAPIError(
                f"Listing tunnels returned unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data: dict[str, Any] = response.json()
            return [RemoteTunnel.from_api(item) for item in data.get("tunnels", [])]
        except (ValueError, AttributeError, ValidationError) as e:
            raise ControlAPIError(
                f"Unreadable tunnel list: {e}", status_code=response.status_code
            ) from e

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ControlAPIError(
                f"ngrok control API at {self.base_url} is unreachable: {e}",
                unreachable=True,
            ) from e

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ControlClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False
