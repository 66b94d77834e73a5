"""
Encoder boundary.

The encoder receives frames in strictly increasing index order and turns
them into an MP4. ffmpeg is the only implementation; anything with the
same `encode` signature can stand in for it (tests use an in-memory one).

Does NOT:
- Render frames or decide their order
- Own the temporary frame directory (the job's Workspace does)
"""

from __future__ import annotations

import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable, Protocol

from PIL import Image

from typereel.domain.artifacts import VideoArtifact
from typereel.domain.workspace import FRAME_PATTERN
from typereel.exceptions import EncodingError
from typereel.utils import ffmpeg
from typereel.utils.logging import get_logger
from typereel.utils.progress import NullProgress, ProgressSink

log = get_logger(__name__)


class FrameSequenceEncoder(Protocol):
    def encode(
        self,
        frames: Iterable[Image.Image],
        *,
        fps: int,
        width: int,
        height: int,
        output: Path,
        progress: ProgressSink | None = None,
    ) -> VideoArtifact: ...


def _read_stderr(handle: IO[bytes]) -> str:
    handle.seek(0)
    return handle.read().decode("utf-8", errors="replace").strip()


def _check_output(output: Path) -> None:
    if not output.exists() or output.stat().st_size == 0:
        raise EncodingError(f"ffmpeg produced no output: {output}")


@dataclass
class FfmpegEncoder:
    """ffmpeg-backed encoder producing H.264 MP4 files."""

    def encode(
        self,
        frames: Iterable[Image.Image],
        *,
        fps: int,
        width: int,
        height: int,
        output: Path,
        progress: ProgressSink | None = None,
    ) -> VideoArtifact:
        binary = ffmpeg.ensure_ffmpeg()
        progress = progress or NullProgress()
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = ffmpeg.build_stream_encode_cmd(output, width=width, height=height, fps=fps, ffmpeg=binary)
        log.debug("ffmpeg cmd: %s", " ".join(cmd))

        written = 0
        # stderr goes to a file so a chatty ffmpeg can never block our writes.
        with tempfile.TemporaryFile() as stderr:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=stderr,
            )
            try:
                for frame in frames:
                    if frame.size != (width, height):
                        raise EncodingError(
                            f"Frame {written} is {frame.size[0]}x{frame.size[1]}, expected {width}x{height}."
                        )
                    try:
                        proc.stdin.write(frame.convert("RGB").tobytes())
                    except BrokenPipeError:
                        break
                    written += 1
                    progress.advance(1)
                try:
                    proc.stdin.close()
                except BrokenPipeError:
                    pass
                return_code = proc.wait()
            finally:
                if proc.poll() is None:
                    proc.kill()
                    proc.wait()

            if return_code != 0:
                raise EncodingError(
                    f"ffmpeg failed with exit code {return_code}. {_read_stderr(stderr)}"
                )

        _check_output(output)
        log.info("Encoded %d frames -> %s", written, output)
        return VideoArtifact(path=output, format="mp4", frame_count=written, fps=fps)

    def encode_directory(
        self,
        frames_dir: Path,
        *,
        fps: int,
        output: Path,
        total_frames: int | None = None,
        progress: ProgressSink | None = None,
        pattern: str = FRAME_PATTERN,
    ) -> VideoArtifact:
        """Encode sequentially named images from `frames_dir`."""
        binary = ffmpeg.ensure_ffmpeg()
        progress = progress or NullProgress()
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = ffmpeg.build_sequence_encode_cmd(frames_dir / pattern, output, fps=fps, ffmpeg=binary)
        log.debug("ffmpeg cmd: %s", " ".join(cmd))

        encoded = 0
        with tempfile.TemporaryFile() as stderr:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=stderr,
                text=True,
            )
            try:
                for line in proc.stdout:
                    frame = ffmpeg.parse_progress_frame(line)
                    if frame is None or frame <= encoded:
                        continue
                    progress.advance(frame - encoded)
                    encoded = frame
                return_code = proc.wait()
            finally:
                if proc.poll() is None:
                    proc.kill()
                    proc.wait()

            if return_code != 0:
                raise EncodingError(
                    f"ffmpeg failed with exit code {return_code}. {_read_stderr(stderr)}"
                )

        if total_frames is not None and encoded < total_frames:
            progress.advance(total_frames - encoded)
            encoded = total_frames
        _check_output(output)
        log.info("Encoded %d frames -> %s", encoded, output)
        return VideoArtifact(path=output, format="mp4", frame_count=encoded, fps=fps)
