from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, Optional

import typer
from pydantic import ValidationError as SettingsParseError

from typereel.config.settings import MarginSettings, Settings
from typereel.domain.job import Job
from typereel.exceptions import TypeReelError, ValidationError
from typereel.pipeline import Pipeline
from typereel.utils.doctor import run_doctor
from typereel.utils.logging import configure_logging, get_logger
from typereel.utils.progress import null_progress, tqdm_progress

app = typer.Typer(add_completion=False)
log = get_logger(__name__)

ConfigOpt = Annotated[Optional[Path], typer.Option("--config", help="JSON file with settings.")]
TextOpt = Annotated[Optional[str], typer.Option("--text", help="Text to type out.")]
TextFileOpt = Annotated[Optional[Path], typer.Option("--text-file", help="Read the text from a UTF-8 file.")]
ResolutionOpt = Annotated[Optional[str], typer.Option("--resolution", help="WIDTHxHEIGHT, e.g. 1080x1920.")]
TextColorOpt = Annotated[Optional[str], typer.Option("--text-color", help="Text color.")]
BackgroundColorOpt = Annotated[Optional[str], typer.Option("--background-color", help="Background color.")]
BackgroundImageOpt = Annotated[
    Optional[str], typer.Option("--background-image", help="Background image path or URL.")
]
VideoLengthOpt = Annotated[Optional[float], typer.Option("--video-length", help="Duration in seconds.")]
BufferTimeOpt = Annotated[Optional[float], typer.Option("--buffer-time", help="Hold time in seconds.")]
FpsOpt = Annotated[Optional[int], typer.Option("--fps", help="Frames per second.")]
MarginsOpt = Annotated[
    Optional[str],
    typer.Option("--margins", help="One fraction for all sides, or top,bottom,left,right."),
]
FlowOpt = Annotated[
    Optional[bool],
    typer.Option("--flow-from-top/--center", help="Anchor text at the top margin or center it."),
]
HighlightOpt = Annotated[
    Optional[bool], typer.Option("--highlight/--no-highlight", help="Draw a box behind each line.")
]
OpacityOpt = Annotated[Optional[float], typer.Option("--highlight-opacity", help="Highlight opacity 0..1.")]
FontOpt = Annotated[Optional[str], typer.Option("--font", help="TrueType font file.")]
LogLevelOpt = Annotated[Optional[str], typer.Option("--log-level", help="Log level (overrides config).")]


@contextmanager
def _reported_errors() -> Iterator[None]:
    try:
        yield
    except TypeReelError as err:
        typer.echo(f"{err.label()}: {err.message}", err=True)
        raise typer.Exit(code=err.exit_code)


def _parse_margins(value: str) -> MarginSettings:
    try:
        parts = [float(part) for part in value.split(",")]
    except ValueError as exc:
        raise ValidationError(f"Invalid margins {value!r}.") from exc
    if len(parts) == 1:
        parts = parts * 4
    if len(parts) != 4:
        raise ValidationError(f"Invalid margins {value!r}; expected 1 or 4 values.")
    top, bottom, left, right = parts
    return MarginSettings(top=top, bottom=bottom, left=left, right=right)


def _load_settings(config: Path | None = None, **overrides) -> Settings:
    """Build Settings from env/.env, an optional JSON file, then CLI overrides."""
    values: dict = {}
    if config is not None:
        try:
            values.update(json.loads(config.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValidationError(f"Cannot read config file {config}: {exc}") from exc

    text_file = overrides.pop("text_file", None)
    if text_file is not None:
        try:
            values["text"] = text_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ValidationError(f"Cannot read text file {text_file}: {exc}") from exc

    margins = overrides.pop("margins", None)
    if margins is not None:
        values["margins"] = _parse_margins(margins)

    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings(**values)
    except SettingsParseError as exc:
        raise ValidationError(str(exc)) from exc


def _configure(settings: Settings, log_level: str | None) -> None:
    # Configure logging after overrides so we use the final resolved level
    configure_logging(log_level or settings.log_level)


@app.command()
def render(
    config: ConfigOpt = None,
    text: TextOpt = None,
    text_file: TextFileOpt = None,
    resolution: ResolutionOpt = None,
    text_color: TextColorOpt = None,
    background_color: BackgroundColorOpt = None,
    background_image: BackgroundImageOpt = None,
    video_length: VideoLengthOpt = None,
    buffer_time: BufferTimeOpt = None,
    fps: FpsOpt = None,
    margins: MarginsOpt = None,
    flow_from_top: FlowOpt = None,
    highlight: HighlightOpt = None,
    highlight_opacity: OpacityOpt = None,
    font: FontOpt = None,
    output: str = typer.Option(None, "--output", "-o", help="Output MP4 path."),
    workers: int = typer.Option(None, help="Frame render threads."),
    frames_mode: str = typer.Option(None, help="stream or files."),
    workdir: str = typer.Option(None, help="Parent directory for temporary frames."),
    keep_frames: bool = typer.Option(None, help="Keep PNG frames after encoding (files mode)."),
    progress: bool = typer.Option(True, help="Show progress bars."),
    log_level: LogLevelOpt = None,
) -> None:
    """Render the typing video."""
    with _reported_errors():
        settings = _load_settings(
            config,
            text=text,
            text_file=text_file,
            resolution=resolution,
            text_color=text_color,
            background_color=background_color,
            background_image=background_image,
            video_length=video_length,
            buffer_time=buffer_time,
            fps=fps,
            margins=margins,
            flow_from_top=flow_from_top,
            highlight_text=highlight,
            highlight_opacity=highlight_opacity,
            font_path=font,
            output_file_name=output,
            workers=workers,
            frames_mode=frames_mode,
            workdir=workdir,
            keep_frames=keep_frames,
        )
        _configure(settings, log_level)
        job = Job.from_settings(settings)
        pipeline = Pipeline(progress_factory=tqdm_progress if progress else null_progress)
        job = pipeline.run(job)

    out = job.artifacts.video.path if job.artifacts.video else None
    typer.echo("✅ Done.")
    if out:
        typer.echo(f"📦 Output: {out}")


@app.command()
def layout(
    config: ConfigOpt = None,
    text: TextOpt = None,
    text_file: TextFileOpt = None,
    resolution: ResolutionOpt = None,
    margins: MarginsOpt = None,
    font: FontOpt = None,
    json_output: bool = typer.Option(False, "--json", help="Output the layout as JSON."),
    log_level: LogLevelOpt = None,
) -> None:
    """Print the chosen font size and line breaks."""
    with _reported_errors():
        settings = _load_settings(
            config,
            text=text,
            text_file=text_file,
            resolution=resolution,
            margins=margins,
            font_path=font,
        )
        _configure(settings, log_level or "WARNING")
        job = Job.from_settings(settings)
        fitted = Pipeline().layout(job.render)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "font_size": fitted.font_size,
                    "line_height": fitted.line_height,
                    "lines": list(fitted.lines),
                },
                indent=2,
            )
        )
        return

    typer.echo(f"font_size\t{fitted.font_size}")
    typer.echo(f"line_height\t{fitted.line_height:.1f}")
    typer.echo(f"lines\t{len(fitted.lines)}")
    for line in fitted.lines:
        typer.echo(line)


@app.command()
def preview(
    config: ConfigOpt = None,
    text: TextOpt = None,
    text_file: TextFileOpt = None,
    resolution: ResolutionOpt = None,
    text_color: TextColorOpt = None,
    background_color: BackgroundColorOpt = None,
    background_image: BackgroundImageOpt = None,
    video_length: VideoLengthOpt = None,
    buffer_time: BufferTimeOpt = None,
    fps: FpsOpt = None,
    margins: MarginsOpt = None,
    flow_from_top: FlowOpt = None,
    highlight: HighlightOpt = None,
    highlight_opacity: OpacityOpt = None,
    font: FontOpt = None,
    frame: int = typer.Option(None, help="Frame index to render (default: last frame)."),
    seconds: float = typer.Option(None, help="Timestamp to render instead of a frame index."),
    out: Path = typer.Option(Path("preview.png"), "--out", help="PNG to write."),
    log_level: LogLevelOpt = None,
) -> None:
    """Render a single frame to a PNG."""
    with _reported_errors():
        settings = _load_settings(
            config,
            text=text,
            text_file=text_file,
            resolution=resolution,
            text_color=text_color,
            background_color=background_color,
            background_image=background_image,
            video_length=video_length,
            buffer_time=buffer_time,
            fps=fps,
            margins=margins,
            flow_from_top=flow_from_top,
            highlight_text=highlight,
            highlight_opacity=highlight_opacity,
            font_path=font,
        )
        _configure(settings, log_level)
        job = Job.from_settings(settings)

        total = job.render.total_frames
        if seconds is not None:
            index = int(seconds * job.render.fps)
        elif frame is not None:
            index = frame
        else:
            index = total - 1
        if not 0 <= index < total:
            raise typer.BadParameter(f"Frame {index} is outside 0..{total - 1}.")

        image = Pipeline().preview(job, index)
        image.save(out)

    typer.echo(f"🧪 Frame {index}: {out}")


@app.command("config")
def show_config(
    config: ConfigOpt = None,
) -> None:
    """Print resolved config."""
    with _reported_errors():
        settings = _load_settings(config)
    typer.echo(json.dumps(settings.to_public_dict(), indent=2))


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    with _reported_errors():
        settings = _load_settings()
        code = run_doctor(settings)
    raise typer.Exit(code=code)


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
