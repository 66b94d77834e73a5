from __future__ import annotations

from dataclasses import dataclass, field

from typereel.config.settings import Settings
from typereel.domain.artifacts import Artifacts
from typereel.domain.models import RenderSettings, build_render_settings
from typereel.domain.workspace import Workspace


@dataclass
class Job:
    settings: Settings
    render: RenderSettings
    workspace: Workspace | None = None
    artifacts: Artifacts = field(default_factory=Artifacts)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Job":
        return cls(settings=settings, render=build_render_settings(settings))
