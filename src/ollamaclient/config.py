from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError, field_validator
from pydantic.dataclasses import dataclass

from ollamaclient.errors import ConfigError
from ollamaclient.pull.session import DEFAULT_PULL_TIMEOUT

DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "nous-hermes:7b-llama2-q2_K"

# per HTTP request to the server, pulls excluded
DEFAULT_HTTP_TIMEOUT = 30.0

_TRUTHY = {"1", "true", "yes", "on"}


def env_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def parse_timeout(seconds: str) -> timedelta:
    """Parse an ``OLLAMA_PULL_TIMEOUT`` value given in seconds."""
    message = f"OLLAMA_PULL_TIMEOUT must be a positive number of seconds, got {seconds!r}"
    try:
        timeout = timedelta(seconds=float(seconds))
    except (ValueError, OverflowError) as exc:
        raise ConfigError(message) from exc
    if timeout <= timedelta(0):
        raise ConfigError(message)
    return timeout


@dataclass
class Config:
    """Connection settings for one server and one default model."""

    host: str = DEFAULT_HOST
    model: str = DEFAULT_MODEL
    verbose: bool = False
    pull_timeout: timedelta = DEFAULT_PULL_TIMEOUT

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("host must not be empty")
        if "://" not in v:
            v = f"http://{v}"
        return v

    @field_validator("pull_timeout")
    @classmethod
    def _positive_timeout(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("pull_timeout must be positive")
        return v

    @classmethod
    def from_env(
        cls,
        model: str | None = None,
        host: str | None = None,
        verbose: bool | None = None,
        pull_timeout: timedelta | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """Build a config from ``OLLAMA_*`` variables; explicit arguments win.

        When ``environ`` is not given, a ``.env`` file is loaded first (without
        overriding variables that are already set) and ``os.environ`` is read.
        """
        if environ is None:
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        if pull_timeout is None:
            seconds = environ.get("OLLAMA_PULL_TIMEOUT")
            pull_timeout = parse_timeout(seconds) if seconds else DEFAULT_PULL_TIMEOUT

        try:
            return cls(
                host=host or environ.get("OLLAMA_HOST") or DEFAULT_HOST,
                model=model or environ.get("OLLAMA_MODEL") or DEFAULT_MODEL,
                verbose=env_bool(environ.get("OLLAMA_VERBOSE")) if verbose is None else verbose,
                pull_timeout=pull_timeout,
            )
        except ValidationError as exc:
            reasons = "; ".join(err["msg"] for err in exc.errors())
            raise ConfigError(f"invalid configuration: {reasons}") from exc

    def url(self, path: str) -> str:
        return f"{self.host}/{path.lstrip('/')}"
