from ollamaclient.__about__ import __version__
from ollamaclient.client import OllamaClient
from ollamaclient.config import Config
from ollamaclient.errors import (
    ConfigError,
    DecodeError,
    ModelNotFoundError,
    OllamaClientError,
    PullCancelledError,
    PullTimeoutError,
    RequestError,
    ServerError,
    TransportError,
    UnexpectedStatusError,
)

__all__ = [
    "Config",
    "ConfigError",
    "DecodeError",
    "ModelNotFoundError",
    "OllamaClient",
    "OllamaClientError",
    "PullCancelledError",
    "PullTimeoutError",
    "RequestError",
    "ServerError",
    "TransportError",
    "UnexpectedStatusError",
    "__version__",
]
