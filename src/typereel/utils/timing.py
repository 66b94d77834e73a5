from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, List

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StepTiming:
    name: str
    started_at: datetime
    finished_at: datetime

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class StepTimer:
    """Records how long each pipeline stage took, logging as stages finish."""

    def __init__(self, *, clock: Clock = utc_now, logger: logging.Logger | None = None) -> None:
        self._clock = clock
        self._log = logger
        self.steps: List[StepTiming] = []

    @property
    def total_s(self) -> float:
        return sum(step.duration_s for step in self.steps)

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        started_at = self._clock()
        try:
            yield
        finally:
            timing = StepTiming(
                name=name,
                started_at=started_at,
                finished_at=self._clock(),
            )
            self.steps.append(timing)
            if self._log is not None:
                self._log.debug("Step %s took %.2fs", name, timing.duration_s)
