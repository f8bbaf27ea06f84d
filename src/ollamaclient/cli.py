"""Typer-based ``ollamaclient`` command line."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import json
from typing import NoReturn

import typer

from ollamaclient.__about__ import __version__
from ollamaclient.client import OllamaClient
from ollamaclient.config import Config
from ollamaclient.errors import OllamaClientError
from ollamaclient.utils.units import format_bytes

app = typer.Typer(help="Talk to a local Ollama server.", add_completion=False)


def _exit_with_error(exc: Exception, *, code: int = 1) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=code) from exc


@contextmanager
def _connect(ctx: typer.Context) -> Iterator[OllamaClient]:
    """Build the config and a client from the global options; client errors exit with code 1."""
    options = ctx.obj
    try:
        config = Config.from_env(model=options["model"], host=options["host"], verbose=options["verbose"])
        with OllamaClient(config) as client:
            yield client
    except OllamaClientError as exc:
        _exit_with_error(exc)


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Server address. Defaults to $OLLAMA_HOST."),
    model: str | None = typer.Option(None, "--model", help="Model name. Defaults to $OLLAMA_MODEL."),
    verbose: bool | None = typer.Option(None, "--verbose/--no-verbose", "-v", help="Print requests and progress."),
) -> None:
    ctx.obj = {"host": host, "model": model, "verbose": verbose}
    if ctx.invoked_subcommand is None:
        typer.echo(f"ollamaclient v{__version__}")


@app.command("pull")
def pull(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Model to pull. Defaults to --model."),
    strict: bool = typer.Option(False, "--strict", help="Fail on unknown status messages."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print only the result."),
) -> None:
    """Download or update a model."""
    verbose = ctx.obj["verbose"]
    if verbose is None:
        verbose = not quiet
    with _connect(ctx) as client:
        model = name or client.model
        client.pull(verbose, model=model, strict=strict)
    if not verbose:
        typer.echo(f"pulled {model}")


@app.command("generate")
def generate(ctx: typer.Context, prompt: str = typer.Argument(..., help="Prompt text.")) -> None:
    """Generate a completion with the configured model."""
    with _connect(ctx) as client:
        typer.echo(client.generate(prompt, trim_space=True))


@app.command("embed")
def embed(ctx: typer.Context, prompt: str = typer.Argument(..., help="Text to embed.")) -> None:
    """Print the embedding of a prompt as JSON."""
    with _connect(ctx) as client:
        typer.echo(json.dumps(client.embeddings(prompt)))


@app.command("list")
def list_models(ctx: typer.Context) -> None:
    """List local models."""
    with _connect(ctx) as client:
        for model in client.list_models():
            typer.echo(f"{model.name}\t{format_bytes(model.size)}\t{model.modified_at}")


@app.command("has")
def has(ctx: typer.Context, name: str = typer.Argument(..., help="Model name.")) -> None:
    """Exit 0 if the model exists locally, 1 otherwise."""
    with _connect(ctx) as client:
        found = client.has(name)
    raise typer.Exit(code=0 if found else 1)


def main() -> None:
    app(prog_name="ollamaclient")


if __name__ == "__main__":
    main()
