from __future__ import annotations

import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path

from typereel.exceptions import ResourceError

FRAME_PATTERN = "frame_%05d.png"


@dataclass(frozen=True)
class Workspace:
    """Per-run scratch directory. Owned by one job and removed by it."""

    root: Path
    run_id: str

    @classmethod
    def create(cls, workdir: str | None = None, run_id: str | None = None) -> "Workspace":
        rid = run_id or uuid.uuid4().hex[:12]
        try:
            if workdir is None:
                root = Path(tempfile.mkdtemp(prefix=f"typereel-{rid}-"))
            else:
                root = Path(workdir).expanduser().resolve() / rid
                root.mkdir(parents=True, exist_ok=True)
            (root / "frames").mkdir(exist_ok=True)
        except OSError as exc:
            raise ResourceError(f"Cannot create temporary frame directory: {exc}") from exc
        return cls(root=root, run_id=rid)

    @property
    def frames_dir(self) -> Path:
        return self.root / "frames"

    def frame_path(self, index: int) -> Path:
        return self.frames_dir / (FRAME_PATTERN % index)

    def cleanup(self) -> None:
        shutil.rmtree(self.root, ignore_errors=True)
