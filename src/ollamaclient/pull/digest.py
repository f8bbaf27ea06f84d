from __future__ import annotations

DIGEST_PREFIX = "sha256:"
SHORT_DIGEST_LENGTH = 8


def short_digest(digest: str | None) -> str:
    """``sha256:abcdef1234567890`` -> ``abcdef12``."""
    if not digest:
        return ""
    if digest.startswith(DIGEST_PREFIX):
        digest = digest[len(DIGEST_PREFIX) :]
    return digest[:SHORT_DIGEST_LENGTH]


class DigestTracker:
    """Remembers the layer digest of the previous record.

    A new, different digest after a known one marks a phase boundary: the
    server moved on to the next layer of the model.
    """

    def __init__(self) -> None:
        self.last_digest: str | None = None
        self.boundaries = 0

    def observe(self, digest: str | None) -> bool:
        previous = self.last_digest
        self.last_digest = digest
        boundary = bool(previous) and bool(digest) and previous != digest
        if boundary:
            self.boundaries += 1
        return boundary
