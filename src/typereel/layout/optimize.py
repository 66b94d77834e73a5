from __future__ import annotations

from typereel.domain.models import LayoutSpec
from typereel.exceptions import ValidationError
from typereel.layout.measure import TextMeasurer
from typereel.layout.wrap import wrap_text
from typereel.utils.logging import get_logger

log = get_logger(__name__)

LINE_HEIGHT_RATIO = 1.2
MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 100


def _layout_at(text: str, max_width: float, measurer: TextMeasurer, font_size: int) -> LayoutSpec:
    lines = wrap_text(text, max_width, lambda value: measurer.measure(value, font_size))
    return LayoutSpec(
        font_size=font_size,
        lines=tuple(lines),
        line_height=font_size * LINE_HEIGHT_RATIO,
    )


def optimize_layout(
    text: str,
    max_width: float,
    max_height: float,
    measurer: TextMeasurer,
    min_font_size: int = MIN_FONT_SIZE,
    max_font_size: int = MAX_FONT_SIZE,
) -> LayoutSpec:
    """
    Pick the largest font size whose wrapped text fits the box.

    Sizes are tried from `max_font_size` down by one; the first fit wins.
    When nothing fits, the layout at `min_font_size` is returned even
    though it overflows `max_height`.
    """
    if min_font_size <= 0 or max_font_size < min_font_size:
        raise ValidationError(f"Font size range {min_font_size}..{max_font_size} is invalid.")

    for font_size in range(max_font_size, min_font_size - 1, -1):
        layout = _layout_at(text, max_width, measurer, font_size)
        if layout.total_height <= max_height:
            return layout

    layout = _layout_at(text, max_width, measurer, min_font_size)
    log.warning(
        "Text does not fit at minimum font size %d: %d lines need %.0fpx of %.0fpx",
        min_font_size,
        len(layout.lines),
        layout.total_height,
        max_height,
    )
    return layout
