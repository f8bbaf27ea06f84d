from __future__ import annotations

from datetime import timedelta

from ollamaclient.utils.units import format_duration


class OllamaClientError(Exception):
    """Base class for every error raised by the client.

    ``status_text`` holds whatever progress text was accumulated before the
    failure, so callers of a long pull can still show how far it got.
    """

    def __init__(self, message: str, *, status_text: str = "") -> None:
        super().__init__(message)
        self.status_text = status_text


class RequestError(OllamaClientError):
    """The request body could not be built."""


class TransportError(OllamaClientError):
    """The HTTP request failed or the server answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None, status_text: str = "") -> None:
        super().__init__(message, status_text=status_text)
        self.status_code = status_code


class DecodeError(OllamaClientError):
    """A streamed record was unreadable, malformed, or the stream ended early."""


class PullTimeoutError(OllamaClientError, TimeoutError):
    def __init__(self, model: str, timeout: timedelta, *, status_text: str = "") -> None:
        super().__init__(f"downloading {model} timed out after {format_duration(timeout)}", status_text=status_text)
        self.model = model
        self.timeout = timeout


class UnexpectedStatusError(OllamaClientError):
    """A pull reported a status outside the known progress vocabulary (strict mode only)."""

    def __init__(self, status: str, *, status_text: str = "") -> None:
        super().__init__(f"received status when downloading: {status}", status_text=status_text)
        self.status = status


class ServerError(OllamaClientError):
    """The server reported a failure inside the response stream."""


class PullCancelledError(OllamaClientError):
    pass


class ModelNotFoundError(OllamaClientError, LookupError):
    def __init__(self, model: str) -> None:
        super().__init__(f"could not find model: {model}")
        self.model = model


class ConfigError(OllamaClientError, ValueError):
    """Settings from the environment or arguments could not be turned into a :class:`Config`."""
