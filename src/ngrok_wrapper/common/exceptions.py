"""Custom exceptions for ngrok wrapper."""


class NgrokWrapperError(Exception):
    """Base exception for all ngrok wrapper errors."""

    pass


class ProcessError(NgrokWrapperError):
    """Raised when ngrok agent process operations fail."""

    pass


class BinaryNotFoundError(ProcessError):
    """Raised when the ngrok binary cannot be resolved."""

    pass


class AuthenticationError(ProcessError):
    """Raised when the ``ngrok authtoken`` invocation exits non-zero."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class AgentStartupError(ProcessError):
    """Raised when the agent output ends, errors or times out before it is ready."""

    pass


class ControlAPIError(NgrokWrapperError):
    """Raised when the agent's local control API rejects or fails a request.

    Attributes:
        status_code: HTTP status of the response, if one was received
        unreachable: True when the request never reached the agent
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        unreachable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.unreachable = unreachable


class TunnelError(NgrokWrapperError, ValueError):
    """Raised when a tunnel operation is called with invalid arguments."""

    pass
