"""Process handle for a running ngrok agent."""

import subprocess
import threading
from typing import IO

from ..common.exceptions import AgentStartupError


class AgentProcess:
    """Owns one spawned agent process and its stdout pipe."""

    def __init__(self, args: list[str]):
        """
        Args:
            args: Full command line, binary first
        """
        self.args = args
        self._process: subprocess.Popen[bytes] | None = None

    def start(self) -> None:
        """Spawn the agent without waiting for it to become ready.

        Raises:
            AgentStartupError: If the process cannot be created
        """
        if self.is_running():
            return

        try:
            self._process = subprocess.Popen(
                self.args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                bufsize=0,
            )
        except OSError as e:
            raise AgentStartupError(f"Failed to start ngrok agent: {e}") from e

    @property
    def stdout(self) -> IO[bytes]:
        if self._process is None or self._process.stdout is None:
            raise AgentStartupError("ngrok agent has not been started")
        return self._process.stdout

    def discard_output(self) -> None:
        """Drain stdout in the background so a full pipe never blocks the agent."""
        stream = self.stdout

        def _drain() -> None:
            try:
                while stream.read(4096):
                    pass
            except (OSError, ValueError):
                return

        threading.Thread(target=_drain, name="ngrok-output", daemon=True).start()

    def is_running(self) -> bool:
        """Check if process is currently running"""
        if self._process is None:
            return False

        return self._process.poll() is None

    def terminate(self) -> None:
        """Ask the agent to exit without waiting for it."""
        if self.is_running() and self._process:
            self._process.terminate()

    @property
    def pid(self) -> int | None:
        """Get process ID if running"""
        if self.is_running() and self._process:
            return self._process.pid
        return None

    def stop(self, timeout: float = 5.0) -> None:
        """Terminate the agent, killing it if it ignores the request."""
        if self._process is None:
            return

        process = self._process
        self._process = None
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()

        if process.stdout is not None:
            process.stdout.close()
