"""Tunnel manager for lifecycle management."""

import threading
from types import TracebackType
from typing import Literal

from ..common.exceptions import ControlAPIError, TunnelError
from ..common.logging import get_logger
from ..common.utils import sanitize_log_data
from ..config import AgentConfig
from ..core.api_client import ControlClient, RemoteTunnel
from ..core.launcher import AgentLauncher
from .models import Tunnel, TunnelRecord, TunnelState
from .registry import TunnelRegistry

logger = get_logger(__name__)


class TunnelManager:
    """Opens and closes ngrok tunnels through a single shared agent.

    All state (the records and whether the agent is known to be running) is
    guarded by one condition variable per manager. Network calls and the agent
    start happen outside the lock; ``OPENING``/``CLOSING`` records and the
    ``_agent_starting`` flag make other callers wait for them instead.
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        client: ControlClient | None = None,
        launcher: AgentLauncher | None = None,
    ):
        """Initialize tunnel manager.

        Args:
            config: Agent settings (defaults used if None)
            client: Control API client (built from ``config`` if None)
            launcher: Agent launcher (built from ``config`` and ``client`` if None)
        """
        self.config = config or AgentConfig()
        self._owns_client = client is None
        self.client = client or ControlClient(
            self.config.web_interface, timeout=self.config.request_timeout
        )
        self.launcher = launcher or AgentLauncher(self.config, self.client)
        self.registry = TunnelRegistry()

        self._cond = threading.Condition()
        self._agent_running = False
        self._agent_starting = False

        logger.info(
            "TunnelManager initialized",
            **sanitize_log_data(
                self.config.model_dump(
                    mode="json",
                    include={"binary_path", "auth_token", "region", "web_interface"},
                )
            ),
        )

    @property
    def agent_running(self) -> bool:
        """Whether the agent is known to be up (as last observed by this manager)."""
        with self._cond:
            return self._agent_running

    def open(
        self, tunnel: Tunnel, cancel_event: threading.Event | None = None
    ) -> str:
        """Open ``tunnel`` and return its public URL.

        Re-opening a tunnel that is already open returns the cached URL without
        contacting the agent. A failed open leaves no record behind.

        Args:
            tunnel: Tunnel with a name and a local address
            cancel_event: Aborts waiting for a freshly started agent when set

        Returns:
            Public URL of the tunnel

        Raises:
            TunnelError: If the tunnel has no name or no local address
            BinaryNotFoundError, AuthenticationError, AgentStartupError:
                If the agent has to be started and that fails
            ControlAPIError: If the agent refuses or fails the request
        """
        if not tunnel.name:
            raise TunnelError("Tunnel name cannot be empty")
        if not tunnel.addr:
            raise TunnelError(f"Tunnel '{tunnel.name}' has no local address")

        with self._cond:
            record = self._wait_until_settled(tunnel.name)
            if record is not None and record.state == TunnelState.OPEN:
                logger.debug("Tunnel already open", name=tunnel.name)
                return record.public_address  # type: ignore[return-value]

            record = TunnelRecord(tunnel=tunnel, state=TunnelState.OPENING)
            self.registry.add(record)

        logger.info("Opening tunnel", name=tunnel.name, addr=tunnel.addr)
        try:
            self._ensure_agent(cancel_event)
            public_address = self.client.create_tunnel(tunnel.name, tunnel.addr)
        except BaseException as e:
            with self._cond:
                self.registry.remove(tunnel.name)
                if isinstance(e, ControlAPIError) and e.unreachable:
                    self._agent_running = False
                self._cond.notify_all()
            logger.error("Failed to open tunnel", name=tunnel.name, error=str(e))
            raise

        with self._cond:
            self.registry.replace(record.opened(public_address))
            self._cond.notify_all()

        logger.info("Tunnel open", name=tunnel.name, public_address=public_address)
        return public_address

    def close(self, tunnel: Tunnel | str) -> None:
        """Close an open tunnel.

        Closing a tunnel that is not open does nothing. The local record is
        dropped even when the agent rejects the delete; that error is still
        raised so the caller can report it.

        Raises:
            ControlAPIError: If the delete request fails
        """
        name = tunnel.name if isinstance(tunnel, Tunnel) else tunnel

        with self._cond:
            record = self._wait_until_settled(name)
            if record is None or record.state != TunnelState.OPEN:
                return
            self.registry.replace(record.with_state(TunnelState.CLOSING))

        try:
            self.client.delete_tunnel(name)
        except ControlAPIError as e:
            logger.error("Failed to close tunnel", name=name, error=str(e))
            raise
        finally:
            with self._cond:
                self.registry.remove(name)
                self._cond.notify_all()

        logger.info("Tunnel closed", name=name)

    def close_all(self) -> None:
        """Close every open tunnel, raising the first error after trying them all."""
        first_error: ControlAPIError | None = None
        for record in self.list_open_tunnels():
            try:
                self.close(record.name)
            except ControlAPIError as e:
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def shutdown(self) -> None:
        """Close all tunnels; stop the agent too unless ``keep_agent_alive``."""
        try:
            self.close_all()
        finally:
            if not self.config.keep_agent_alive and self.launcher.spawned:
                logger.info("Stopping ngrok agent", pid=self.launcher.pid)
                self.launcher.stop_agent()
                with self._cond:
                    self._agent_running = False

    def get_public_address(self, name: str) -> str | None:
        """Public URL of ``name`` if it is open."""
        with self._cond:
            record = self.registry.get(name)
            if record is None or record.state != TunnelState.OPEN:
                return None
            return record.public_address

    def list_open_tunnels(self) -> list[TunnelRecord]:
        with self._cond:
            return self.registry.list_records(state=TunnelState.OPEN)

    def remote_tunnels(self) -> list[RemoteTunnel]:
        """Tunnels as the agent reports them, including ones opened elsewhere."""
        return self.client.list_tunnels()

    def _wait_until_settled(self, name: str) -> TunnelRecord | None:
        # Caller holds self._cond.
        record = self.registry.get(name)
        while record is not None and record.state in (
            TunnelState.OPENING,
            TunnelState.CLOSING,
        ):
            self._cond.wait()
            record = self.registry.get(name)
        return record

    def _ensure_agent(self, cancel_event: threading.Event | None) -> None:
        with self._cond:
            while self._agent_starting:
                self._cond.wait()
            if self._agent_running:
                return
            self._agent_starting = True

        try:
            spawned = self.launcher.ensure_running(cancel_event)
        except BaseException:
            with self._cond:
                self._agent_starting = False
                self._cond.notify_all()
            raise

        with self._cond:
            self._agent_running = True
            self._agent_starting = False
            self._cond.notify_all()

        if spawned:
            logger.info("Started ngrok agent", pid=self.launcher.pid)
        else:
            logger.debug("ngrok agent already running", url=self.client.base_url)

    def __enter__(self) -> "TunnelManager":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        try:
            self.shutdown()
        except ControlAPIError as e:
            logger.error("Error during TunnelManager exit", error=str(e))
        finally:
            if self._owns_client:
                self.client.close()
        return False
