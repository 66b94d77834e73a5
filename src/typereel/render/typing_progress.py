"""
Frame index to visible text.

A video is split into three regimes: a leading hold where nothing is
shown, the typing phase where characters appear at a constant rate, and
a trailing hold where the full text is shown.
"""

from __future__ import annotations

import math
from typing import Sequence

from typereel.domain.models import FrameDescriptor


def typing_frames(total_frames: int, buffer_frames: int) -> int:
    return total_frames - 2 * buffer_frames


def visible_char_count(
    frame_index: int,
    total_frames: int,
    buffer_frames: int,
    full_text: str,
) -> int:
    """Characters of `full_text` revealed at `frame_index`."""
    if frame_index < buffer_frames:
        return 0
    frames = typing_frames(total_frames, buffer_frames)
    # No room left for typing: treat the text as already typed.
    if frames <= 0 or frame_index >= total_frames - buffer_frames:
        return len(full_text)
    progress = (frame_index - buffer_frames) / frames
    return math.floor(len(full_text) * progress)


def visible_lines(
    frame_index: int,
    total_frames: int,
    buffer_frames: int,
    lines: Sequence[str],
    full_text: str,
) -> list[str]:
    if frame_index < buffer_frames:
        return []
    if typing_frames(total_frames, buffer_frames) <= 0 or frame_index >= total_frames - buffer_frames:
        return list(lines)

    visible = visible_char_count(frame_index, total_frames, buffer_frames, full_text)
    shown: list[str] = []
    count = 0
    for line in lines:
        if count + len(line) <= visible:
            shown.append(line)
            count += len(line)
        else:
            # Partial line; may be empty right after a line boundary.
            shown.append(line[: visible - count])
            break
    return shown


def describe_frame(
    frame_index: int,
    total_frames: int,
    buffer_frames: int,
    lines: Sequence[str],
    full_text: str,
) -> FrameDescriptor:
    shown = visible_lines(frame_index, total_frames, buffer_frames, lines, full_text)
    return FrameDescriptor(
        index=frame_index,
        visible_char_count=sum(len(line) for line in shown),
        display_lines=tuple(shown),
    )
