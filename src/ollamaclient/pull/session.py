"""State machine that drives one model pull from its stream of progress records."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import timedelta
from enum import Enum
import sys
import threading
import time
from typing import TextIO

from ollamaclient.errors import (
    DecodeError,
    OllamaClientError,
    PullCancelledError,
    PullTimeoutError,
    ServerError,
    UnexpectedStatusError,
)
from ollamaclient.pull.digest import DigestTracker, short_digest
from ollamaclient.pull.progress import BAR_WIDTH, PLAIN, Palette, render_progress_bar, spinner_frame
from ollamaclient.schema.pull import PullRecord
from ollamaclient.utils import logging
from ollamaclient.utils.units import format_bytes

logger = logging.get_logger(__name__)

# pretty generous, in case someone has a poor connection
DEFAULT_PULL_TIMEOUT = timedelta(hours=48)

KNOWN_STATUS_PREFIXES = ("pulling", "downloading", "verifying", "writing", "removing")

CLEAR_LINE = "\033[K"
MANIFEST_LABEL = "Pulling manifest"


class PullState(str, Enum):
    INIT = "init"
    MANIFEST = "manifest"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (PullState.DONE, PullState.FAILED, PullState.TIMED_OUT)


class PullDisplay:
    """Writes pull progress to a terminal, redrawing the current line in place.

    In non-verbose mode every method is a no-op.
    """

    def __init__(self, writer: TextIO | None = None, palette: Palette = PLAIN, verbose: bool = False) -> None:
        self.writer = writer if writer is not None else sys.stdout
        self.palette = palette
        self.verbose = verbose

    def _write(self, text: str) -> None:
        if not self.verbose:
            return
        self.writer.write(text)
        self.writer.flush()

    def request(self, url: str, body: str = "") -> None:
        self._write(f"Sending request to {url}: {body}\n" if body else f"Sending request to {url}\n")

    def new_phase(self) -> None:
        self._write("\n")

    def spinner(self, label: str, spinner_index: int) -> None:
        p = self.palette
        self._write(f"\r{p.white}{label}... {spinner_frame(spinner_index)}{p.reset}{CLEAR_LINE}")

    def progress(self, model: str, record: PullRecord, progress: float) -> None:
        p = self.palette
        bar = render_progress_bar(progress, BAR_WIDTH, p)
        sizes = f"{format_bytes(record.completed)}/{format_bytes(record.total)}"
        self._write(f"\r{p.white}{model} - {short_digest(record.digest)} [{bar}] {progress:.2f}% - {sizes} {p.reset}")

    def complete(self, model: str) -> None:
        self._write(f"\r{model} - Download complete!{CLEAR_LINE}\n")

    def failed(self, model: str, error: Exception) -> None:
        p = self.palette
        self._write(f"\n{p.red}{model} - {error}{p.reset}\n")


class PullSession:
    """Consumes :class:`PullRecord` values for one pull and decides when it is over.

    A session is single use: create one per pull call and call :meth:`run`
    once. ``started_at`` is a ``clock()`` reading taken at construction.
    Output goes through ``display``; its ``verbose`` flag decides whether
    anything is written.
    """

    def __init__(
        self,
        model: str,
        *,
        timeout: timedelta = DEFAULT_PULL_TIMEOUT,
        display: PullDisplay | None = None,
        strict: bool = False,
        clock: Callable[[], float] = time.monotonic,
        cancel: threading.Event | None = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.display = display if display is not None else PullDisplay()
        self.strict = strict
        self.clock = clock
        self.cancel = cancel

        self.state = PullState.INIT
        self.tracker = DigestTracker()
        self.spinner_index = 0
        self.records = 0
        self.started_at = clock()
        self._statuses: list[str] = []

    @property
    def status_text(self) -> str:
        return "\n".join(self._statuses)

    @property
    def elapsed(self) -> timedelta:
        return timedelta(seconds=self.clock() - self.started_at)

    def _transition(self, state: PullState) -> None:
        if state is self.state:
            return
        logger.debug("Pull of %s: %s -> %s", self.model, self.state.value, state.value)
        self.state = state

    def _fail(self, error: OllamaClientError, state: PullState = PullState.FAILED) -> OllamaClientError:
        error.status_text = self.status_text
        self._transition(state)
        self.display.failed(self.model, error)
        logger.info("Pull of %s failed after %d record(s): %s", self.model, self.records, error)
        return error

    def _record_status(self, status: str) -> None:
        if status and (not self._statuses or self._statuses[-1] != status):
            self._statuses.append(status)

    def run(self, records: Iterable[PullRecord]) -> str:
        """Drive the session to completion and return the accumulated status text.

        Raises a subclass of :class:`OllamaClientError` carrying the partial
        status text when the pull fails, times out, or is cancelled.
        """
        if self.state is not PullState.INIT:
            raise RuntimeError("a PullSession can only be run once")

        iterator = iter(records)
        while True:
            if self.cancel is not None and self.cancel.is_set():
                raise self._fail(PullCancelledError(f"pull of {self.model} was cancelled"))
            try:
                record = next(iterator)
            except StopIteration:
                break
            except DecodeError as exc:
                self._fail(exc)
                raise

            if self.step(record):
                return self.status_text

        raise self._fail(DecodeError(f"pull stream for {self.model} ended before success"))

    def step(self, record: PullRecord) -> bool:
        """Apply one record. Returns True once the pull has succeeded."""
        if self.state.terminal:
            raise RuntimeError(f"pull session is already {self.state.value}")
        self.records += 1

        if record.error:
            raise self._fail(ServerError(f"pulling {self.model} failed: {record.error}"))
        self._record_status(record.status)

        if self.tracker.observe(record.digest):
            self.display.new_phase()

        if not record.has_size:
            if self.state in (PullState.INIT, PullState.MANIFEST):
                self._transition(PullState.MANIFEST)
                label = MANIFEST_LABEL
            else:
                label = record.status.capitalize() or MANIFEST_LABEL
            self.display.spinner(label, self.spinner_index)
            self.spinner_index += 1
        else:
            progress = record.completed / record.total * 100
            self._transition(PullState.DOWNLOADING)
            self.display.progress(self.model, record, progress)

        if record.status.startswith("verifying"):
            self._transition(PullState.VERIFYING)

        if record.is_success:
            self._transition(PullState.DONE)
            self.display.complete(self.model)
            logger.info("Pulled %s in %s (%d records)", self.model, self.elapsed, self.records)
            return True

        if self.strict and not record.status.startswith(KNOWN_STATUS_PREFIXES):
            raise self._fail(UnexpectedStatusError(record.status))

        if self.clock() - self.started_at > self.timeout.total_seconds():
            raise self._fail(PullTimeoutError(self.model, self.timeout), PullState.TIMED_OUT)
        return False
