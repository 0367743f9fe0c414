"""Locating, authenticating and starting the ngrok agent."""

import os
import shutil
import subprocess
import threading

from ..common.exceptions import (
    AgentStartupError,
    AuthenticationError,
    BinaryNotFoundError,
)
from ..config import BINARY_ENV_VAR, DEFAULT_BINARY_NAME, AgentConfig
from .api_client import ControlClient
from .process import AgentProcess
from .readiness import READY_MARKER, wait_for_marker


def find_ngrok_binary(binary_path: str | None = None) -> str:
    """Resolve the ngrok executable.

    An explicit ``binary_path`` is used verbatim. Otherwise ``ngrok`` is looked
    up on PATH and then in the ``NGROK`` environment variable.

    Raises:
        BinaryNotFoundError: If no candidate is found
    """
    if binary_path:
        return binary_path

    found = shutil.which(DEFAULT_BINARY_NAME)
    if found:
        return found

    from_env = os.environ.get(BINARY_ENV_VAR)
    if from_env:
        return from_env

    raise BinaryNotFoundError(
        f"'{DEFAULT_BINARY_NAME}' executable not found in PATH or ${BINARY_ENV_VAR}. "
        "Please install it from https://ngrok.com/download"
    )


def build_start_args(binary: str, config: AgentConfig) -> list[str]:
    """Command line that starts the agent with no tunnels, logging to stdout."""
    args = [binary, "start", "-none", "-log", "stdout"]
    if config.region is not None:
        args.extend(["-region", config.region.value])
    return args


class AgentLauncher:
    """Makes sure an ngrok agent is answering on the configured control API.

    Errors are raised to the caller, nothing here logs.
    """

    def __init__(self, config: AgentConfig, client: ControlClient):
        self.config = config
        self.client = client
        self._process: AgentProcess | None = None

    @property
    def spawned(self) -> bool:
        """True if this launcher started an agent that is still alive."""
        return self._process is not None and self._process.is_running()

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def ensure_running(self, cancel_event: threading.Event | None = None) -> bool:
        """Start the agent unless its control API already answers.

        Args:
            cancel_event: Aborts the readiness wait when set

        Returns:
            True if an agent was spawned, False if one was already running

        Raises:
            BinaryNotFoundError: If the binary cannot be resolved
            AuthenticationError: If ``ngrok authtoken`` fails
            AgentStartupError: If the agent exits, errors or times out before ready
        """
        binary = find_ngrok_binary(self.config.binary_path)

        if self.client.health():
            return False

        if self.config.auth_token:
            self.authenticate(binary, self.config.auth_token)

        process = AgentProcess(build_start_args(binary, self.config))
        process.start()
        try:
            wait_for_marker(
                process.stdout,
                READY_MARKER,
                timeout=self.config.startup_timeout,
                cancel_event=cancel_event,
                on_abort=process.terminate,
            )
        except BaseException:
            process.stop()
            raise

        process.discard_output()
        self._process = process
        return True

    def authenticate(self, binary: str, auth_token: str) -> None:
        """Register ``auth_token`` with the agent; not retried.

        Raises:
            AuthenticationError: If the command cannot run or exits non-zero
        """
        try:
            result = subprocess.run(
                [binary, "authtoken", auth_token],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise AuthenticationError(f"Failed to run ngrok authtoken: {e}") from e

        if result.returncode != 0:
            raise AuthenticationError(
                f"ngrok authtoken exited with code {result.returncode}",
                returncode=result.returncode,
            )

    def stop_agent(self) -> None:
        """Terminate the agent if this launcher spawned it."""
        if self._process is not None:
            self._process.stop()
            self._process = None
