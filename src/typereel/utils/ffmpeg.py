from __future__ import annotations

import re
from pathlib import Path

from typereel.utils.checks import require_binary

H264_CODEC = "libx264"
H264_PRESET = "medium"
H264_CRF = "20"
PIXEL_FORMAT = "yuv420p"
# yuv420p needs even dimensions.
EVEN_DIMENSIONS_FILTER = "pad=ceil(iw/2)*2:ceil(ih/2)*2"

PROGRESS_FRAME_PATTERN = re.compile(r"^frame=\s*(\d+)\s*$")


def ensure_ffmpeg() -> str:
    return require_binary("ffmpeg")


def _output_args(out: str | Path, fps: int) -> list[str]:
    return [
        "-vf",
        EVEN_DIMENSIONS_FILTER,
        "-c:v",
        H264_CODEC,
        "-preset",
        H264_PRESET,
        "-crf",
        H264_CRF,
        "-pix_fmt",
        PIXEL_FORMAT,
        "-r",
        str(fps),
        "-movflags",
        "+faststart",
        str(out),
    ]


def build_stream_encode_cmd(
    out: str | Path,
    *,
    width: int,
    height: int,
    fps: int,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """ffmpeg reading raw RGB24 frames from stdin."""
    cmd = [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgb24",
        "-s",
        f"{width}x{height}",
        "-r",
        str(fps),
        "-i",
        "-",
        "-an",
    ]
    return cmd + _output_args(out, fps)


def build_sequence_encode_cmd(
    frames_pattern: str | Path,
    out: str | Path,
    *,
    fps: int,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """ffmpeg reading numbered images, reporting progress on stdout."""
    cmd = [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-nostats",
        "-progress",
        "pipe:1",
        "-framerate",
        str(fps),
        "-i",
        str(frames_pattern),
        "-an",
    ]
    return cmd + _output_args(out, fps)


def parse_progress_frame(line: str) -> int | None:
    match = PROGRESS_FRAME_PATTERN.match(line.strip())
    if not match:
        return None
    return int(match.group(1))
