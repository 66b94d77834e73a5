from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from typereel.domain.models import LayoutSpec


@dataclass(frozen=True)
class VideoArtifact:
    path: Path
    format: str = "mp4"
    frame_count: int | None = None
    fps: int | None = None


@dataclass
class Artifacts:
    layout: Optional[LayoutSpec] = None
    video: Optional[VideoArtifact] = None
