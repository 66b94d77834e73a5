"""Font metrics for layout and drawing."""

from __future__ import annotations

import threading
from typing import Protocol

from PIL import ImageFont

from typereel.exceptions import ResourceError
from typereel.utils.logging import get_logger

log = get_logger(__name__)

# Tried in order when no font file is configured.
DEFAULT_FONT_CANDIDATES = (
    "Arial.ttf",
    "arial.ttf",
    "DejaVuSans.ttf",
    "LiberationSans-Regular.ttf",
)

Font = ImageFont.FreeTypeFont | ImageFont.ImageFont


class TextMeasurer(Protocol):
    def measure(self, text: str, font_size: int) -> float: ...


class PillowTextMeasurer:
    """
    Measures and supplies Pillow fonts, one cached font per size.

    Safe to share between render threads: fonts are only read after
    construction and the cache is guarded.
    """

    def __init__(self, font_path: str | None = None) -> None:
        self.font_path = font_path
        self._cache: dict[int, Font] = {}
        self._lock = threading.Lock()
        self._resolved_path: str | None = None

    @property
    def font_source(self) -> str | None:
        """Font file in use, or None for Pillow's built-in font."""
        return self.font_path or self._resolved_path

    def font(self, font_size: int) -> Font:
        with self._lock:
            font = self._cache.get(font_size)
            if font is None:
                font = self._load(font_size)
                self._cache[font_size] = font
            return font

    def measure(self, text: str, font_size: int) -> float:
        if not text:
            return 0.0
        return float(self.font(font_size).getlength(text))

    def _load(self, font_size: int) -> Font:
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size=font_size)
            except OSError as exc:
                raise ResourceError(f"Cannot load font {self.font_path}: {exc}") from exc

        if self._resolved_path is not None:
            return ImageFont.truetype(self._resolved_path, size=font_size)

        for candidate in DEFAULT_FONT_CANDIDATES:
            try:
                font = ImageFont.truetype(candidate, size=font_size)
            except OSError:
                continue
            self._resolved_path = candidate
            log.debug("Using system font %s", candidate)
            return font

        log.debug("No system font found; using Pillow's built-in font")
        return ImageFont.load_default(size=font_size)
