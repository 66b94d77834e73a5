"""
Per-frame composition.

Every frame is a pure function of its index, the validated settings, the
fixed layout and the cached background surface. Nothing is carried over
between frames, so frames may be rendered in any order or in parallel.
"""

from __future__ import annotations

from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from typereel.domain.models import FrameDescriptor, LayoutSpec, RenderSettings
from typereel.layout.measure import PillowTextMeasurer
from typereel.render.typing_progress import describe_frame

HIGHLIGHT_PADDING = 5
HIGHLIGHT_RGB = (0, 0, 0)


class FrameRenderer:
    def __init__(
        self,
        settings: RenderSettings,
        layout: LayoutSpec,
        measurer: PillowTextMeasurer,
        background: Image.Image | None = None,
    ) -> None:
        self.settings = settings
        self.layout = layout
        self.measurer = measurer
        size = (settings.width, settings.height)
        if background is not None:
            if background.size != size:
                raise ValueError(f"Background is {background.size}, expected {size}")
            self._background = background.convert("RGB")
        else:
            self._background = Image.new("RGB", size, settings.background_color)
        self._font = measurer.font(layout.font_size)
        self._highlight_fill = (*HIGHLIGHT_RGB, round(settings.highlight_opacity * 255))

    def describe(self, frame_index: int) -> FrameDescriptor:
        return describe_frame(
            frame_index,
            self.settings.total_frames,
            self.settings.buffer_frames,
            self.layout.lines,
            self.settings.text,
        )

    def start_y(self, display_lines: Sequence[str]) -> float:
        if self.settings.flow_from_top:
            return self.settings.height * self.settings.margins.top
        return (self.settings.height - len(display_lines) * self.layout.line_height) / 2

    def render_frame(self, frame_index: int) -> Image.Image:
        return self.compose(self.describe(frame_index).display_lines)

    def compose(self, display_lines: Sequence[str]) -> Image.Image:
        # The cached background is shared; always draw on a copy.
        frame = self._background.copy()
        draw = ImageDraw.Draw(frame, "RGBA")

        x = self.settings.origin_x
        top = self.start_y(display_lines)
        line_height = self.layout.line_height
        for index, line in enumerate(display_lines):
            y = top + index * line_height
            if self.settings.highlight_text:
                self._draw_highlight(draw, line, x, y)
            if line:
                self._draw_line(draw, line, x, y)
        return frame

    def _draw_highlight(self, draw: ImageDraw.ImageDraw, line: str, x: float, y: float) -> None:
        width = self.measurer.measure(line, self.layout.font_size)
        left = round(x - HIGHLIGHT_PADDING)
        top = round(y - HIGHLIGHT_PADDING)
        right = round(x - HIGHLIGHT_PADDING + width + 2 * HIGHLIGHT_PADDING) - 1
        bottom = round(y - HIGHLIGHT_PADDING + self.layout.line_height) - 1
        draw.rectangle((left, top, right, bottom), fill=self._highlight_fill)

    def _draw_line(self, draw: ImageDraw.ImageDraw, line: str, x: float, y: float) -> None:
        # Bitmap fonts do not support anchors; they already draw from the top.
        anchor = "la" if isinstance(self._font, ImageFont.FreeTypeFont) else None
        draw.text((x, y), line, font=self._font, fill=self.settings.text_color, anchor=anchor)
