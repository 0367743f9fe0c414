"""High-level API for ngrok wrapper.

This module provides simple, user-friendly functions for common tunneling tasks.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from .common.exceptions import NgrokWrapperError
from .common.logging import get_logger
from .config import AgentConfig
from .tunnels import Tunnel, TunnelingConfig, TunnelManager

logger = get_logger(__name__)


def open_tunnel(
    addr: str, name: str, **agent_options: Any
) -> tuple[TunnelManager, str]:
    """Expose ``addr`` through ngrok.

    The returned manager holds the tunnel; close it with ``manager.close(name)``
    or leave a ``with manager:`` block, which also releases its HTTP client.
    Use :func:`managed_tunnel` when the tunnel should live for one block only.

    Args:
        addr: Local address to expose, e.g. "localhost:8080"
        name: Tunnel name, e.g. "MyApp"
        **agent_options: Fields of :class:`AgentConfig` (auth_token, region, ...)

    Returns:
        The manager holding the tunnel and the public URL for accessing it

    Example:
        >>> manager, url = open_tunnel("localhost:8080", "MyApp")
        >>> with manager:
        ...     print(f"Your app is live at: {url}")
        # Tunnel is closed here
    """
    manager = TunnelManager(AgentConfig(**agent_options))
    try:
        url = manager.open(Tunnel(name=name, addr=addr))
    except BaseException:
        manager.client.close()
        raise

    logger.info("Tunnel created", url=url, addr=addr, name=name)
    return manager, url


@contextmanager
def managed_tunnel(addr: str, name: str, **agent_options: Any) -> Iterator[str]:
    """Open a tunnel for the duration of a ``with`` block.

    Args:
        addr: Local address to expose
        name: Tunnel name
        **agent_options: Fields of :class:`AgentConfig`

    Yields:
        str: The public URL for accessing the tunnel

    Example:
        >>> with managed_tunnel("localhost:8080", "MyApp") as url:
        ...     print(f"Your app is live at: {url}")
        # Tunnel is closed here
    """
    with TunnelManager(AgentConfig(**agent_options)) as manager:
        url = manager.open(Tunnel(name=name, addr=addr))
        logger.info("Managed tunnel created", url=url, addr=addr, name=name)
        try:
            yield url
        finally:
            logger.info("Managed tunnel cleaned up", url=url, name=name)


def start_tunnels(
    config: TunnelingConfig, addr: str, manager: TunnelManager | None = None
) -> tuple[TunnelManager, dict[str, str]]:
    """Open every configured tunnel for a server listening on ``addr``.

    Tunnels without their own address are bound to ``addr``, the address the
    hosting server actually listens on.

    Args:
        config: Tunneling settings; nothing happens if no tunnel is configured
        addr: Address of the hosting server, e.g. "localhost:8080"
        manager: Existing manager to reuse (one is created from ``config`` if None)

    Returns:
        The manager holding the tunnels and a mapping of tunnel name to public URL

    Raises:
        NgrokWrapperError: If any tunnel fails to open; tunnels this call opened
            before the failure are closed again, ones already open are kept
    """
    manager = manager or TunnelManager(config.agent)
    urls: dict[str, str] = {}
    opened: list[str] = []

    if not config.is_enabled:
        return manager, urls

    try:
        for tunnel in config.tunnels:
            if tunnel.addr is None:
                tunnel = tunnel.with_addr(addr)
            already_open = manager.get_public_address(tunnel.name) is not None
            urls[tunnel.name] = manager.open(tunnel)
            if not already_open:
                opened.append(tunnel.name)
    except NgrokWrapperError:
        for name in opened:
            try:
                manager.close(name)
            except NgrokWrapperError as e:
                logger.error("Failed to roll back tunnel", name=name, error=str(e))
        raise

    for name, url in urls.items():
        logger.info("Serving through tunnel", name=name, url=url)
    return manager, urls


def stop_tunnels(manager: TunnelManager, config: TunnelingConfig) -> None:
    """Close the tunnels of ``config``, raising the first error after trying all."""
    first_error: NgrokWrapperError | None = None
    for tunnel in config.tunnels:
        try:
            manager.close(tunnel)
        except NgrokWrapperError as e:
            first_error = first_error or e

    if first_error is not None:
        raise first_error
