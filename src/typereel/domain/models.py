from __future__ import annotations

import math
import re
from dataclasses import dataclass
from pathlib import Path

from PIL import ImageColor

from typereel.config.settings import Settings
from typereel.exceptions import ValidationError

RGB = tuple[int, int, int]

RESOLUTION_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
FRAMES_MODES = ("stream", "files")


@dataclass(frozen=True)
class Resolution:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Margins:
    top: float = 0.1
    bottom: float = 0.1
    left: float = 0.1
    right: float = 0.1


@dataclass(frozen=True)
class LayoutSpec:
    font_size: int
    lines: tuple[str, ...]
    line_height: float

    @property
    def total_height(self) -> float:
        return len(self.lines) * self.line_height


@dataclass(frozen=True)
class FrameDescriptor:
    index: int
    visible_char_count: int
    display_lines: tuple[str, ...]


@dataclass(frozen=True)
class RenderSettings:
    text: str
    resolution: Resolution
    text_color: RGB = (255, 255, 255)
    background_color: RGB = (0, 0, 0)
    background_image: str | None = None
    video_length: float = 3.0
    buffer_time: float = 0.0
    margins: Margins = Margins()
    flow_from_top: bool = True
    highlight_text: bool = True
    highlight_opacity: float = 0.7
    fps: int = 30
    font_path: str | None = None
    min_font_size: int = 12
    max_font_size: int = 100
    output_path: Path = Path("output.mp4")

    @property
    def width(self) -> int:
        return self.resolution.width

    @property
    def height(self) -> int:
        return self.resolution.height

    @property
    def total_frames(self) -> int:
        return int(round(self.video_length * self.fps))

    @property
    def buffer_frames(self) -> int:
        return int(round(self.buffer_time * self.fps))

    @property
    def max_width(self) -> float:
        return self.width * (1 - self.margins.left - self.margins.right)

    @property
    def max_height(self) -> float:
        return self.height * (1 - self.margins.top - self.margins.bottom)

    @property
    def origin_x(self) -> float:
        return self.width * self.margins.left


def parse_resolution(value: str) -> Resolution:
    match = RESOLUTION_PATTERN.match(value or "")
    if not match:
        raise ValidationError(f"Invalid resolution {value!r}; expected WIDTHxHEIGHT.")
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ValidationError(f"Resolution must be positive, got {value!r}.")
    return Resolution(width=width, height=height)


def parse_color(value: str, *, field: str) -> RGB:
    try:
        rgb = ImageColor.getrgb(value.strip())
    except (ValueError, AttributeError) as exc:
        raise ValidationError(f"Invalid {field} {value!r}.") from exc
    return rgb[:3]


def _check_fraction(name: str, value: float) -> None:
    if not (0 <= value < 1):
        raise ValidationError(f"Margin {name} must be in [0, 1), got {value}.")


def validate_margins(margins: Margins) -> Margins:
    for name in ("top", "bottom", "left", "right"):
        _check_fraction(name, getattr(margins, name))
    if margins.left + margins.right >= 1:
        raise ValidationError("Left and right margins must sum to less than 1.")
    if margins.top + margins.bottom >= 1:
        raise ValidationError("Top and bottom margins must sum to less than 1.")
    return margins


def _normalize_background(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() in {"false", "none", "no", "0"}:
        return None
    return value


def build_render_settings(settings: Settings) -> RenderSettings:
    """Validate raw settings once, before any rendering starts."""
    if not settings.text or not settings.text.strip():
        raise ValidationError("Text is required and must not be blank.")

    resolution = parse_resolution(settings.resolution)

    if not math.isfinite(settings.video_length) or settings.video_length <= 0:
        raise ValidationError(f"Video length must be positive, got {settings.video_length}.")
    if settings.fps <= 0:
        raise ValidationError(f"FPS must be positive, got {settings.fps}.")
    if not math.isfinite(settings.buffer_time) or settings.buffer_time < 0:
        raise ValidationError(f"Buffer time must be a non-negative number, got {settings.buffer_time}.")
    if settings.buffer_time * 2 >= settings.video_length:
        raise ValidationError(
            f"Buffer time {settings.buffer_time}s leaves no time for typing "
            f"in a {settings.video_length}s video."
        )
    if int(round(settings.video_length * settings.fps)) <= 0:
        raise ValidationError("Video length and fps produce zero frames.")

    if not (0 <= settings.highlight_opacity <= 1):
        raise ValidationError(
            f"Highlight opacity must be in [0, 1], got {settings.highlight_opacity}."
        )
    if settings.min_font_size <= 0 or settings.max_font_size < settings.min_font_size:
        raise ValidationError(
            f"Font size range {settings.min_font_size}..{settings.max_font_size} is invalid."
        )

    margins = validate_margins(
        Margins(
            top=settings.margins.top,
            bottom=settings.margins.bottom,
            left=settings.margins.left,
            right=settings.margins.right,
        )
    )

    if settings.frames_mode not in FRAMES_MODES:
        raise ValidationError(
            f"Unknown frames mode {settings.frames_mode!r}. Use one of: {', '.join(FRAMES_MODES)}."
        )
    if settings.workers <= 0:
        raise ValidationError(f"Workers must be positive, got {settings.workers}.")

    return RenderSettings(
        text=settings.text,
        resolution=resolution,
        text_color=parse_color(settings.text_color, field="text color"),
        background_color=parse_color(settings.background_color, field="background color"),
        background_image=_normalize_background(settings.background_image),
        video_length=settings.video_length,
        buffer_time=settings.buffer_time,
        margins=margins,
        flow_from_top=settings.flow_from_top,
        highlight_text=settings.highlight_text,
        highlight_opacity=settings.highlight_opacity,
        fps=settings.fps,
        font_path=settings.font_path,
        min_font_size=settings.min_font_size,
        max_font_size=settings.max_font_size,
        output_path=Path(settings.output_file_name).expanduser(),
    )
