from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from typereel.exceptions import DependencyMissingError, EncodingError
from typereel.services import encode
from typereel.utils import ffmpeg


class RecordingPipe:
    def __init__(self) -> None:
        self.data = bytearray()
        self.closed = False

    def write(self, chunk: bytes) -> int:
        self.data.extend(chunk)
        return len(chunk)

    def close(self) -> None:
        self.closed = True


class FakeProcess:
    instances: list["FakeProcess"] = []
    return_code = 0
    stderr_text = b""
    stdout_lines: list[str] = []

    def __init__(self, cmd, stdin=None, stdout=None, stderr=None, text=False):  # noqa: ANN001
        self.cmd = cmd
        self.stdin = RecordingPipe() if stdin is not None else None
        self.stdout = iter(self.stdout_lines)
        self._stderr = stderr
        self.returncode = None
        self.killed = False
        FakeProcess.instances.append(self)

    def wait(self) -> int:
        if self.return_code == 0:
            Path(self.cmd[-1]).write_bytes(b"mp4")
        elif self._stderr is not None:
            self._stderr.write(self.stderr_text)
        self.returncode = self.return_code
        return self.returncode

    def poll(self):  # noqa: ANN201
        return self.returncode

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    FakeProcess.instances = []
    FakeProcess.return_code = 0
    FakeProcess.stderr_text = b""
    FakeProcess.stdout_lines = []
    monkeypatch.setattr(encode.ffmpeg, "ensure_ffmpeg", lambda: "ffmpeg")
    monkeypatch.setattr(encode.subprocess, "Popen", FakeProcess)
    return FakeProcess


def _frames(count: int, size=(6, 4)) -> list[Image.Image]:
    return [Image.new("RGB", size, (index, index, index)) for index in range(count)]


def test_stream_cmd_reads_raw_frames_from_stdin() -> None:
    cmd = ffmpeg.build_stream_encode_cmd("out.mp4", width=20, height=10, fps=30)
    assert cmd[0] == "ffmpeg"
    assert cmd[-1] == "out.mp4"
    assert cmd[cmd.index("-f") + 1] == "rawvideo"
    assert cmd[cmd.index("-s") + 1] == "20x10"
    assert cmd[cmd.index("-i") + 1] == "-"
    assert cmd[cmd.index("-c:v") + 1] == "libx264"
    assert "yuv420p" in cmd
    assert ffmpeg.EVEN_DIMENSIONS_FILTER in cmd


def test_sequence_cmd_reads_numbered_images() -> None:
    cmd = ffmpeg.build_sequence_encode_cmd("/tmp/frames/frame_%05d.png", "out.mp4", fps=24)
    assert cmd[cmd.index("-framerate") + 1] == "24"
    assert cmd[cmd.index("-i") + 1] == "/tmp/frames/frame_%05d.png"
    assert cmd[cmd.index("-progress") + 1] == "pipe:1"
    assert cmd[cmd.index("-r") + 1] == "24"


@pytest.mark.parametrize(
    "line, expected",
    [("frame=12\n", 12), ("frame=  3", 3), ("fps=30.0\n", None), ("progress=end", None)],
)
def test_parse_progress_frame(line: str, expected) -> None:  # noqa: ANN001
    assert ffmpeg.parse_progress_frame(line) == expected


def test_missing_ffmpeg_is_a_dependency_error(monkeypatch) -> None:
    monkeypatch.setattr("typereel.utils.checks.shutil.which", lambda _: None)
    with pytest.raises(DependencyMissingError):
        ffmpeg.ensure_ffmpeg()


def test_encode_streams_frames_in_order(fake_ffmpeg, tmp_path: Path, recording_progress_factory) -> None:
    progress = recording_progress_factory(3, "encode")
    output = tmp_path / "nested" / "out.mp4"
    artifact = encode.FfmpegEncoder().encode(
        _frames(3), fps=30, width=6, height=4, output=output, progress=progress
    )

    proc = fake_ffmpeg.instances[0]
    assert proc.stdin.closed
    frame_bytes = 6 * 4 * 3
    assert len(proc.stdin.data) == 3 * frame_bytes
    assert [proc.stdin.data[i * frame_bytes] for i in range(3)] == [0, 1, 2]
    assert progress.advanced == 3
    assert artifact.path == output
    assert artifact.frame_count == 3
    assert artifact.fps == 30


def test_encode_failure_carries_ffmpeg_message(fake_ffmpeg, tmp_path: Path) -> None:
    fake_ffmpeg.return_code = 1
    fake_ffmpeg.stderr_text = b"Unknown encoder 'libx264'"
    with pytest.raises(EncodingError, match="Unknown encoder"):
        encode.FfmpegEncoder().encode(_frames(2), fps=30, width=6, height=4, output=tmp_path / "o.mp4")


def test_encode_rejects_wrong_frame_size_and_stops_ffmpeg(fake_ffmpeg, tmp_path: Path) -> None:
    frames = _frames(1) + _frames(1, size=(8, 8))
    with pytest.raises(EncodingError, match="expected 6x4"):
        encode.FfmpegEncoder().encode(frames, fps=30, width=6, height=4, output=tmp_path / "o.mp4")
    assert fake_ffmpeg.instances[0].killed


def test_render_failure_stops_ffmpeg(fake_ffmpeg, tmp_path: Path) -> None:
    def frames():
        yield Image.new("RGB", (6, 4))
        raise RuntimeError("render blew up")

    with pytest.raises(RuntimeError, match="render blew up"):
        encode.FfmpegEncoder().encode(frames(), fps=30, width=6, height=4, output=tmp_path / "o.mp4")
    assert fake_ffmpeg.instances[0].killed


def test_encode_directory_reports_ffmpeg_progress(fake_ffmpeg, tmp_path: Path, recording_progress_factory) -> None:
    fake_ffmpeg.stdout_lines = ["frame=2\n", "fps=0.0\n", "progress=continue\n", "frame=5\n", "progress=end\n"]
    progress = recording_progress_factory(5, "compile")
    artifact = encode.FfmpegEncoder().encode_directory(
        tmp_path, fps=30, output=tmp_path / "out.mp4", total_frames=5, progress=progress
    )
    cmd = fake_ffmpeg.instances[0].cmd
    assert cmd[cmd.index("-i") + 1] == str(tmp_path / "frame_%05d.png")
    assert progress.advanced == 5
    assert artifact.frame_count == 5


def test_empty_output_is_an_error(fake_ffmpeg, monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(FakeProcess, "wait", lambda self: 0)
    with pytest.raises(EncodingError, match="no output"):
        encode.FfmpegEncoder().encode(_frames(1), fps=30, width=6, height=4, output=tmp_path / "o.mp4")
