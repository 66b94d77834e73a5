from __future__ import annotations

import importlib.metadata
import subprocess
import sys
import tempfile
from pathlib import Path

import PIL

from typereel.config.settings import Settings
from typereel.exceptions import ResourceError
from typereel.layout.measure import PillowTextMeasurer


def _run_cmd(cmd: list[str]) -> tuple[int, str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        return 1, ""
    return proc.returncode, proc.stdout.strip() or proc.stderr.strip()


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    try:
        return importlib.metadata.version("typereel")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def run_doctor(settings: Settings) -> int:
    required_ok = True
    lines: list[str] = []

    lines.append("typereel doctor")
    lines.append("")

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "typereel version", f": {_get_version()}"))
    lines.append(_status_line(True, "Pillow", f": {PIL.__version__}"))

    workdir = Path(settings.workdir).expanduser().resolve() if settings.workdir else Path(tempfile.gettempdir())
    writable = _check_writable(workdir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Frame directory writable", f": {workdir}"))

    ffmpeg_code, ffmpeg_out = _run_cmd(["ffmpeg", "-version"])
    if ffmpeg_code != 0:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", " (not found)"))
    else:
        first_line = ffmpeg_out.splitlines()[0] if ffmpeg_out else "available"
        lines.append(_status_line(True, "ffmpeg", f": {first_line}"))

    measurer = PillowTextMeasurer(settings.font_path)
    try:
        font = measurer.font(settings.max_font_size)
    except ResourceError as exc:
        required_ok = False
        lines.append(_status_line(False, "Font", f": {exc.message}"))
    else:
        name = " ".join(part for part in getattr(font, "getname", lambda: ())() if part)
        if measurer.font_source:
            lines.append(_status_line(True, "Font", f": {name or 'loaded'}"))
        else:
            lines.append(_warn_line("Font", ": no system font found, using Pillow's built-in font"))

    print("\n".join(lines))
    return 0 if required_ok else 1
