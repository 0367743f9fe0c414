"""Readiness detection over the agent's standard output.

The agent prints ``msg="client session established"`` once its session with
the ngrok service is up; the control API accepts commands only after that.
"""

import threading
import time
from collections.abc import Callable
from typing import IO

from ..common.exceptions import AgentStartupError

READY_MARKER = b"client session established"
CHUNK_SIZE = 256
POLL_INTERVAL = 0.05
READER_JOIN_TIMEOUT = 1.0


class ReadinessScanner:
    """Finds a marker in a stream fed chunk by chunk.

    Keeps the last ``len(marker) - 1`` bytes between chunks so a marker split
    across a chunk boundary is still found.
    """

    def __init__(self, marker: bytes = READY_MARKER):
        if not marker:
            raise ValueError("Readiness marker cannot be empty")
        self.marker = marker
        self._tail = b""

    def feed(self, chunk: bytes) -> bool:
        """Scan ``chunk``; return True once the marker has been seen."""
        window = self._tail + chunk
        if self.marker in window:
            return True

        keep = len(self.marker) - 1
        self._tail = window[-keep:] if keep else b""
        return False


def wait_for_marker(
    stream: IO[bytes],
    marker: bytes = READY_MARKER,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
    chunk_size: int = CHUNK_SIZE,
    on_abort: Callable[[], None] | None = None,
) -> None:
    """Block until ``marker`` appears on ``stream``.

    The stream is read on a daemon thread so the wait can be bounded by
    ``timeout`` and aborted through ``cancel_event``. Once the marker is found
    the thread stops reading; the rest of the stream is left unconsumed.

    On timeout or cancellation ``on_abort`` is called (typically to terminate
    the process feeding ``stream``) and the reader is given a moment to see
    end of stream, so the caller can close the stream once no read is pending.

    Args:
        stream: Binary stream, typically ``Popen.stdout``
        marker: Literal bytes that signal readiness
        timeout: Seconds to wait, or None to wait until the stream ends
        cancel_event: Set by another thread to abandon the wait
        chunk_size: Bytes requested per read
        on_abort: Called before giving up on timeout or cancellation

    Raises:
        AgentStartupError: If the stream ends, a read fails, the timeout
            expires or the wait is cancelled before the marker is seen
    """
    scanner = ReadinessScanner(marker)
    done = threading.Event()
    outcome: dict[str, BaseException | bool] = {}

    def _read() -> None:
        try:
            while True:
                chunk = stream.read(chunk_size)
                if not chunk:
                    outcome["error"] = EOFError(
                        "agent output closed before it reported readiness"
                    )
                    return
                if scanner.feed(chunk):
                    outcome["ready"] = True
                    return
        except (OSError, ValueError) as e:
            outcome["error"] = e
        finally:
            done.set()

    reader = threading.Thread(target=_read, name="ngrok-readiness", daemon=True)
    reader.start()

    deadline = None if timeout is None else time.monotonic() + timeout
    while not done.wait(POLL_INTERVAL):
        reason = None
        if cancel_event is not None and cancel_event.is_set():
            reason = "Waiting for the ngrok agent was cancelled"
        elif deadline is not None and time.monotonic() >= deadline:
            reason = f"ngrok agent did not become ready within {timeout:.1f}s"

        if reason is not None:
            if on_abort is not None:
                on_abort()
                reader.join(READER_JOIN_TIMEOUT)
            raise AgentStartupError(reason)

    error = outcome.get("error")
    if isinstance(error, BaseException):
        raise AgentStartupError(f"ngrok agent failed to start: {error}") from error
