"""Streaming pull protocol: decoding, state tracking and progress rendering."""

from ollamaclient.pull.decoder import iter_json_objects, iter_pull_records
from ollamaclient.pull.digest import DigestTracker, short_digest
from ollamaclient.pull.progress import Palette, render_progress_bar
from ollamaclient.pull.session import DEFAULT_PULL_TIMEOUT, PullDisplay, PullSession, PullState

__all__ = [
    "DEFAULT_PULL_TIMEOUT",
    "DigestTracker",
    "Palette",
    "PullDisplay",
    "PullSession",
    "PullState",
    "iter_json_objects",
    "iter_pull_records",
    "render_progress_bar",
    "short_digest",
]
