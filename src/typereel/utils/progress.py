"""
Progress reporting for long-running stages.

Stages never reach for a shared progress bar. The pipeline is handed a
factory and asks it for one sink per stage, so tests can swap in
`NullProgress` or a recording sink.
"""

from __future__ import annotations

from typing import Callable, Protocol

from tqdm import tqdm


class ProgressSink(Protocol):
    def advance(self, n: int = 1) -> None: ...

    def close(self) -> None: ...


ProgressFactory = Callable[[int, str], ProgressSink]


class NullProgress:
    def advance(self, n: int = 1) -> None:
        return None

    def close(self) -> None:
        return None


class TqdmProgress:
    def __init__(self, total: int, description: str) -> None:
        self._bar = tqdm(total=total, desc=description, unit="frame", leave=True)

    def advance(self, n: int = 1) -> None:
        self._bar.update(n)

    def close(self) -> None:
        self._bar.close()


def tqdm_progress(total: int, description: str) -> ProgressSink:
    return TqdmProgress(total, description)


def null_progress(total: int, description: str) -> ProgressSink:
    return NullProgress()
