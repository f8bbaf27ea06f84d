"""Integration test fixtures.

Starts a small fake Ollama server (FastAPI + uvicorn) in-process on a free
port. Pull responses are streamed as NDJSON, split at awkward offsets so the
client sees records cut across socket reads.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
import json
import socket
import threading
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
import httpx
import pytest
import uvicorn

from ollamaclient.client import OllamaClient
from ollamaclient.config import Config

MODEL = "tinyllama"
DIGEST = "sha256:2af3b81862c6be03c769683af18efdadb2c33f60ff32ab6f83e42c043d6c7816"
LAYER_SIZE = 637700138

TAGS = {
    "models": [
        {
            "name": "tinyllama:latest",
            "modified_at": "2024-01-03T10:21:32.217331+01:00",
            "size": LAYER_SIZE,
            "digest": "2644915ede35",
            "details": {"format": "gguf", "family": "llama", "parameter_size": "1B", "quantization_level": "Q4_0"},
        }
    ]
}


def pull_records(name: str) -> list[dict]:
    if name.startswith("broken"):
        return [{"status": "pulling manifest"}, {"error": "pull model manifest: file does not exist"}]
    records: list[dict] = [{"status": "pulling manifest"}]
    for completed in (0, LAYER_SIZE // 4, LAYER_SIZE // 2, LAYER_SIZE):
        records.append({"status": "pulling 2af3b81862c6", "digest": DIGEST, "total": LAYER_SIZE, "completed": completed})
    if name.startswith("truncated"):
        return records
    records += [{"status": "verifying sha256 digest"}, {"status": "writing manifest"}, {"status": "success"}]
    return records


def _chunked(records: list[dict], size: int = 37) -> Iterator[bytes]:
    body = b"".join(json.dumps(r).encode() + b"\n" for r in records)
    for i in range(0, len(body), size):
        yield body[i : i + size]


def create_app() -> FastAPI:
    app = FastAPI()

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/pull", response_model=None)
    async def pull(request: Request) -> StreamingResponse | JSONResponse:
        payload = await request.json()
        name = payload.get("name", "")
        if name.startswith("missing"):
            return JSONResponse({"error": f"model '{name}' not found"}, status_code=404)
        return StreamingResponse(_chunked(pull_records(name)), media_type="application/x-ndjson")

    @app.get("/api/tags")
    def tags() -> dict:
        return TAGS

    @app.post("/api/generate")
    async def generate(request: Request) -> StreamingResponse:
        payload = await request.json()
        words = ["Hello", " from", f" {payload['model']}", ""]
        chunks = [{"model": payload["model"], "response": w, "done": not w} for w in words]
        return StreamingResponse(_chunked(chunks, size=11), media_type="application/x-ndjson")

    @app.post("/api/embeddings")
    async def embeddings(request: Request) -> dict:
        payload = await request.json()
        return {"embedding": [float(len(payload["prompt"])), 0.5, -0.5]}

    return app


def _free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _wait_for_server(url: str, timeout: float = 30.0, interval: float = 0.2) -> None:
    """Block until *url* returns a 200 response or *timeout* is reached."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=3)
            if r.status_code == 200:
                return
        except (httpx.ConnectError, httpx.ReadError, httpx.TimeoutException):
            pass
        time.sleep(interval)
    raise TimeoutError(f"Server at {url} did not become ready within {timeout}s")


@pytest.fixture(scope="session")
def server_url() -> Generator[str, None, None]:
    """Start the fake server in-process and yield its base URL."""
    port = _free_port()
    url = f"http://127.0.0.1:{port}"

    server = uvicorn.Server(uvicorn.Config(create_app(), host="127.0.0.1", port=port, log_level="warning"))
    t = threading.Thread(target=server.run, daemon=True)
    t.start()

    try:
        _wait_for_server(f"{url}/health")
        yield url
    finally:
        server.should_exit = True
        t.join(timeout=10)


@pytest.fixture
def client(server_url: str) -> Generator[OllamaClient, None, None]:
    """An ``OllamaClient`` connected to the running test server."""
    with OllamaClient(Config(host=server_url, model=MODEL), environ={"NO_COLOR": "1"}) as c:
        yield c
