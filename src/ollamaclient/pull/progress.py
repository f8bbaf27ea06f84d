"""Terminal rendering helpers for pull progress.

Nothing in here holds state: the color palette is a value handed to each call,
so two pulls with different color settings can render side by side.
"""

from __future__ import annotations

from collections.abc import Mapping
import math
import os

from pydantic.dataclasses import dataclass

SPINNER = ("-", "\\", "|", "/")
BAR_WIDTH = 30
FILL_CHAR = "="

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Palette:
    blue: str = ""
    cyan: str = ""
    gray: str = ""
    magenta: str = ""
    red: str = ""
    white: str = ""
    reset: str = ""

    @classmethod
    def plain(cls) -> Palette:
        return cls()

    @classmethod
    def ansi(cls) -> Palette:
        return cls(
            blue="\033[94m",
            cyan="\033[96m",
            gray="\033[37m",
            magenta="\033[95m",
            red="\033[91m",
            white="\033[97m",
            reset="\033[0m",
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Palette:
        """Honor https://no-color.org: any truthy ``NO_COLOR`` disables escape codes."""
        env = os.environ if environ is None else environ
        if env.get("NO_COLOR", "").strip().lower() in _TRUTHY:
            return cls.plain()
        return cls.ansi()

    @property
    def enabled(self) -> bool:
        return bool(self.reset)


PLAIN = Palette.plain()


def spinner_frame(index: int) -> str:
    return SPINNER[index % len(SPINNER)]


def filled_cells(progress: float, width: int) -> int:
    if math.isnan(progress):
        return 0
    if math.isinf(progress):
        return width if progress > 0 else 0
    filled = round(progress / 100 * width)
    return max(0, min(width, filled))


def render_progress_bar(progress: float, width: int = BAR_WIDTH, palette: Palette = PLAIN) -> str:
    """Render ``progress`` (a percentage) as a bar exactly ``width`` cells wide.

    The filled part is tinted by thirds (blue, magenta, cyan) when the palette
    has colors. Out of range input is clamped rather than rejected.
    """
    if width < 1:
        raise ValueError(f"width must be positive, got {width}")
    filled = filled_cells(progress, width)

    first = width // 3
    second = 2 * width // 3
    segments = (
        (palette.blue, min(filled, first)),
        (palette.magenta, max(0, min(filled, second) - first)),
        (palette.cyan, max(0, filled - second)),
    )
    bar = "".join(color + FILL_CHAR * count for color, count in segments if count)
    return bar + palette.white + " " * (width - filled) + palette.reset
