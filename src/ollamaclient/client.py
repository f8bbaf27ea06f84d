from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import json
import threading
from types import TracebackType
from typing import Any, TextIO

import httpx
from pydantic import TypeAdapter, ValidationError

from ollamaclient.config import DEFAULT_HTTP_TIMEOUT, Config
from ollamaclient.errors import (
    DecodeError,
    ModelNotFoundError,
    OllamaClientError,
    RequestError,
    ServerError,
    TransportError,
)
from ollamaclient.pull.decoder import iter_json_objects, iter_pull_records
from ollamaclient.pull.progress import Palette
from ollamaclient.pull.session import PullDisplay, PullSession
from ollamaclient.schema.base import TagModel
from ollamaclient.schema.embeddings import EmbeddingsRequest, EmbeddingsResponse
from ollamaclient.schema.generate import GenerateRequest, GenerateResponse
from ollamaclient.schema.pull import PullRequest
from ollamaclient.schema.tags import TagsResponse
from ollamaclient.utils import logging

logger = logging.get_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

# the pull budget is enforced by PullSession, so the socket may idle between records
PULL_HTTP_TIMEOUT = httpx.Timeout(DEFAULT_HTTP_TIMEOUT, read=None)

_generate_adapter = TypeAdapter(GenerateResponse)
_embeddings_adapter = TypeAdapter(EmbeddingsResponse)
_tags_adapter = TypeAdapter(TagsResponse)


def normalize_model_name(model: str) -> str:
    """``llama2`` -> ``llama2:latest``; names with a tag are left alone."""
    model = model.strip()
    if ":" not in model:
        model += ":latest"
    return model


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text.strip()
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.text.strip()


class OllamaClient:
    """Client for the Ollama HTTP API.

    ``pull`` streams download progress through :class:`PullSession`; every
    other call is a single request/response round trip. A client passed in as
    ``http_client`` is borrowed and never closed here.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        http_client: httpx.Client | None = None,
        writer: TextIO | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config if config is not None else Config.from_env(environ=environ)
        self.writer = writer
        self.environ = environ
        self._owns_http = http_client is None
        self.http = http_client if http_client is not None else httpx.Client(timeout=DEFAULT_HTTP_TIMEOUT)

    def __enter__(self) -> OllamaClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    @property
    def model(self) -> str:
        return self.config.model

    def _display(self, verbose: bool) -> PullDisplay:
        palette = Palette.from_env(self.environ) if verbose else Palette.plain()
        return PullDisplay(self.writer, palette, verbose)

    def _encode(self, payload_type: type, **fields: Any) -> str:
        # pydantic ValidationError is a ValueError
        try:
            return json.dumps(payload_type(**fields).serialize())
        except (TypeError, ValueError) as exc:
            raise RequestError(f"could not build {payload_type.__name__}: {exc}") from exc

    def _check(self, response: httpx.Response, url: str) -> None:
        if response.is_success:
            return
        message = _error_message(response)
        logger.debug("%s returned HTTP %d: %s", url, response.status_code, message)
        raise TransportError(
            f"{url} returned HTTP {response.status_code}: {message}",
            status_code=response.status_code,
        )

    @contextmanager
    def _stream(
        self, method: str, url: str, content: str, timeout: httpx.Timeout | float
    ) -> Iterator[httpx.Response]:
        """POST ``content`` and yield the open response; the body is closed on every exit path."""
        try:
            with self.http.stream(method, url, content=content, headers=JSON_HEADERS, timeout=timeout) as response:
                if not response.is_success:
                    response.read()
                    self._check(response, url)
                yield response
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc

    def _request_json(self, method: str, path: str, content: str | None = None, *, verbose: bool = False) -> Any:
        url = self.config.url(path)
        self._display(verbose).request(url, content or "")
        logger.debug("%s %s %s", method, url, content or "")
        try:
            response = self.http.request(
                method,
                url,
                content=content,
                headers=JSON_HEADERS if content is not None else None,
                timeout=DEFAULT_HTTP_TIMEOUT,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc
        self._check(response, url)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(f"invalid JSON from {url}: {exc}") from exc

    def pull(
        self,
        verbose: bool | None = None,
        *,
        model: str | None = None,
        strict: bool = False,
        cancel: threading.Event | None = None,
    ) -> str:
        """Download or update ``model`` (the configured model by default).

        Returns the accumulated status text once the server reports
        ``success``. Raises :class:`TransportError` before any record is read
        if the request itself fails; later failures (decode errors, server
        errors, timeout, cancellation) carry the partial text in
        ``status_text``.
        """
        model = model or self.config.model
        verbose = self.config.verbose if verbose is None else verbose
        display = self._display(verbose)

        body = self._encode(PullRequest, name=model, stream=True)
        url = self.config.url("/api/pull")
        display.request(url, body)
        logger.debug("Pulling %s from %s", model, url)

        session = PullSession(
            model,
            timeout=self.config.pull_timeout,
            display=display,
            strict=strict,
            cancel=cancel,
        )
        with self._stream("POST", url, body, PULL_HTTP_TIMEOUT) as response:
            return session.run(iter_pull_records(response.iter_bytes()))

    def pull_if_needed(self, verbose: bool | None = None) -> bool:
        """Pull the configured model only if it is not present yet. Returns True if a pull ran."""
        if self.has_model():
            return False
        self.pull(verbose)
        return True

    def generate(self, prompt: str, *, trim_space: bool = False) -> str:
        """Generate a completion for ``prompt`` with the configured model."""
        body = self._encode(GenerateRequest, model=self.config.model, prompt=prompt)
        url = self.config.url("/api/generate")
        self._display(self.config.verbose).request(url, body)

        parts: list[str] = []
        with self._stream("POST", url, body, DEFAULT_HTTP_TIMEOUT) as response:
            for obj in iter_json_objects(response.iter_bytes()):
                if obj.get("error"):
                    raise ServerError(f"generate failed: {obj['error']}", status_text="".join(parts))
                try:
                    chunk = _generate_adapter.validate_python(obj)
                except ValidationError as exc:
                    raise DecodeError(f"invalid generate response: {exc}", status_text="".join(parts)) from exc
                parts.append(chunk.response)
                if chunk.done:
                    break

        output = "".join(parts)
        return output.strip() if trim_space else output

    def must_output(self, prompt: str) -> str:
        """Like :meth:`generate` with trimming, but returns the error message instead of raising."""
        try:
            return self.generate(prompt, trim_space=True)
        except OllamaClientError as exc:
            logger.warning("generate failed: %s", exc)
            return str(exc)

    def embeddings(self, prompt: str) -> list[float]:
        body = self._encode(EmbeddingsRequest, model=self.config.model, prompt=prompt)
        data = self._request_json("POST", "/api/embeddings", body, verbose=self.config.verbose)
        try:
            return _embeddings_adapter.validate_python(data).embedding
        except ValidationError as exc:
            raise DecodeError(f"invalid embeddings response: {exc}") from exc

    def list_models(self) -> list[TagModel]:
        data = self._request_json("GET", "/api/tags", verbose=self.config.verbose)
        try:
            return _tags_adapter.validate_python(data).models
        except ValidationError as exc:
            raise DecodeError(f"invalid tags response: {exc}") from exc

    def size_of(self, model: str) -> int:
        model = normalize_model_name(model)
        found = TagsResponse(models=self.list_models()).find(model)
        if found is None:
            raise ModelNotFoundError(model)
        return found.size

    def has(self, model: str) -> bool:
        model = normalize_model_name(model)
        try:
            models = self.list_models()
        except OllamaClientError as exc:
            logger.warning("error when calling /api/tags: %s", exc)
            return False
        return TagsResponse(models=models).find(model) is not None

    def has_model(self) -> bool:
        return self.has(self.config.model)
