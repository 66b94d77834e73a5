from __future__ import annotations

import inspect
import os

import pytest
import typer.testing


def _patch_clirunner() -> None:
    if "mix_stderr" in inspect.signature(typer.testing.CliRunner).parameters:
        return

    class PatchedCliRunner(typer.testing.CliRunner):
        def __init__(self, *args, **kwargs):  # noqa: ANN002, ANN003
            kwargs.pop("mix_stderr", None)
            super().__init__(*args, **kwargs)

    typer.testing.CliRunner = PatchedCliRunner


_patch_clirunner()


class FixedWidthMeasurer:
    """Every character is `ratio * font_size` pixels wide."""

    def __init__(self, ratio: float = 0.5) -> None:
        self.ratio = ratio
        self.calls = 0

    def measure(self, text: str, font_size: int) -> float:
        self.calls += 1
        return len(text) * font_size * self.ratio


class RecordingProgress:
    def __init__(self, total: int = 0, description: str = "") -> None:
        self.total = total
        self.description = description
        self.advanced = 0
        self.closed = False

    def advance(self, n: int = 1) -> None:
        self.advanced += n

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fixed_measurer() -> FixedWidthMeasurer:
    return FixedWidthMeasurer()


@pytest.fixture
def progress_log() -> list[RecordingProgress]:
    return []


@pytest.fixture
def recording_progress_factory(progress_log):
    def factory(total: int, description: str) -> RecordingProgress:
        sink = RecordingProgress(total, description)
        progress_log.append(sink)
        return sink

    return factory


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path) -> None:
    # Keep a developer's TYPEREEL_* env or .env out of the tests.
    for key in list(os.environ):
        if key.startswith("TYPEREEL_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
