"""
Pipeline orchestration for typereel.

The pipeline executes a single render job:

1) Load and cache the background image (if any)
2) Fit the text: choose font size and line breaks once
3) Render frames in index order (optionally on a thread pool)
4) Encode the frames into an MP4
5) Remove temporary frames

Responsibilities:
- Coordinate stage order and hand frames to the encoder in order
- Own the job's temporary workspace and clean it up on every path

Does NOT:
- Validate raw settings (`build_render_settings` does, before this runs)
- Know how ffmpeg is invoked (services/encode.py does)
"""

from __future__ import annotations

from collections import deque
from contextlib import closing
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterator

from PIL import Image

from typereel.domain.artifacts import Artifacts, VideoArtifact
from typereel.domain.job import Job
from typereel.domain.models import LayoutSpec, RenderSettings
from typereel.domain.workspace import Workspace
from typereel.exceptions import ValidationError
from typereel.layout.measure import PillowTextMeasurer
from typereel.layout.optimize import optimize_layout
from typereel.render.background import load_background
from typereel.render.frame import FrameRenderer
from typereel.services.encode import FfmpegEncoder, FrameSequenceEncoder
from typereel.utils.logging import get_logger
from typereel.utils.progress import ProgressFactory, ProgressSink, tqdm_progress
from typereel.utils.timing import StepTimer, utc_now

log = get_logger(__name__)

BackgroundLoader = Callable[[str, int, int], Image.Image]

# Frames queued per worker when rendering in parallel.
RENDER_WINDOW_PER_WORKER = 4


def iter_frames(renderer: FrameRenderer, total_frames: int, workers: int = 1) -> Iterator[Image.Image]:
    """Yield rendered frames in strictly increasing index order."""
    if workers <= 1:
        for index in range(total_frames):
            yield renderer.render_frame(index)
        return

    window = workers * RENDER_WINDOW_PER_WORKER
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="typereel-render")
    pending: deque[Future[Image.Image]] = deque()
    next_index = 0
    try:
        while next_index < total_frames and len(pending) < window:
            pending.append(executor.submit(renderer.render_frame, next_index))
            next_index += 1
        while pending:
            frame = pending.popleft().result()
            if next_index < total_frames:
                pending.append(executor.submit(renderer.render_frame, next_index))
                next_index += 1
            yield frame
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


def _read_frames(workspace: Workspace, total_frames: int) -> Iterator[Image.Image]:
    for index in range(total_frames):
        with Image.open(workspace.frame_path(index)) as image:
            yield image.convert("RGB")


class Pipeline:
    """
    Renders one typing video from validated settings.

    Notes:
    - The encoder, progress sinks, measurer and background loader are
      injected for testability; defaults talk to ffmpeg, tqdm and Pillow.
    - `workers` and `frames_mode` default to the job's settings.
    """

    def __init__(
        self,
        *,
        encoder: FrameSequenceEncoder | None = None,
        progress_factory: ProgressFactory | None = None,
        measurer: PillowTextMeasurer | None = None,
        background_loader: BackgroundLoader | None = None,
        workers: int | None = None,
        frames_mode: str | None = None,
    ) -> None:
        self.encoder = encoder or FfmpegEncoder()
        self.progress_factory = progress_factory or tqdm_progress
        self.measurer = measurer
        self.background_loader = background_loader or load_background
        self.workers = workers
        self.frames_mode = frames_mode

    def _measurer_for(self, render: RenderSettings) -> PillowTextMeasurer:
        return self.measurer or PillowTextMeasurer(render.font_path)

    def layout(self, render: RenderSettings, measurer: PillowTextMeasurer | None = None) -> LayoutSpec:
        layout = optimize_layout(
            render.text,
            render.max_width,
            render.max_height,
            measurer or self._measurer_for(render),
            min_font_size=render.min_font_size,
            max_font_size=render.max_font_size,
        )
        log.info("Optimal font size: %dpx", layout.font_size)
        log.info("Number of lines: %d", len(layout.lines))
        return layout

    def build_renderer(self, render: RenderSettings) -> FrameRenderer:
        measurer = self._measurer_for(render)
        background = None
        if render.background_image:
            log.info("Loading and caching background image...")
            background = self.background_loader(render.background_image, render.width, render.height)
        layout = self.layout(render, measurer)
        return FrameRenderer(render, layout, measurer, background)

    def preview(self, job: Job, frame_index: int) -> Image.Image:
        """Render a single frame without encoding anything."""
        total = job.render.total_frames
        if not 0 <= frame_index < total:
            raise ValidationError(f"Frame {frame_index} is outside 0..{total - 1}.")
        return self.build_renderer(job.render).render_frame(frame_index)

    def run(self, job: Job) -> Job:
        """
        Run the job once.

        Returns:
            The same Job with populated Artifacts. Temporary frames are
            removed whether encoding succeeds or fails.
        """
        timer = StepTimer(clock=utc_now, logger=log)
        render = job.render
        workers = self.workers or job.settings.workers
        frames_mode = self.frames_mode or job.settings.frames_mode
        total = render.total_frames
        job.artifacts = Artifacts()

        log.info(
            "Rendering %s at %s, %d frames @ %dfps",
            render.output_path,
            render.resolution,
            total,
            render.fps,
        )
        try:
            with timer.step("prepare"):
                renderer = self.build_renderer(render)
                job.artifacts.layout = renderer.layout

            if frames_mode == "files":
                video = self._run_files(job, renderer, workers, timer)
            else:
                with timer.step("render_and_encode"), closing(iter_frames(renderer, total, workers)) as frames:
                    video = self._encode(frames, render, "Rendering frames")
            job.artifacts.video = video
            log.info("Video generation finished in %.2fs: %s", timer.total_s, video.path)
            return job
        finally:
            if job.workspace is not None and not job.settings.keep_frames:
                log.debug("Removing temporary frames in %s", job.workspace.root)
                job.workspace.cleanup()

    def _encode(self, frames: Iterator[Image.Image], render: RenderSettings, description: str) -> VideoArtifact:
        progress = self.progress_factory(render.total_frames, description)
        try:
            return self.encoder.encode(
                frames,
                fps=render.fps,
                width=render.width,
                height=render.height,
                output=render.output_path,
                progress=progress,
            )
        finally:
            progress.close()

    def _run_files(self, job: Job, renderer: FrameRenderer, workers: int, timer: StepTimer) -> VideoArtifact:
        render = job.render
        total = render.total_frames
        if job.workspace is None:
            job.workspace = Workspace.create(job.settings.workdir)
        workspace = job.workspace

        with timer.step("render_frames"):
            progress: ProgressSink = self.progress_factory(total, "Generating frames")
            try:
                with closing(iter_frames(renderer, total, workers)) as frames:
                    for index, frame in enumerate(frames):
                        frame.save(workspace.frame_path(index))
                        progress.advance(1)
            finally:
                progress.close()
        log.info("Frames written to %s", workspace.frames_dir)

        with timer.step("encode"):
            encode_directory = getattr(self.encoder, "encode_directory", None)
            if encode_directory is None:
                with closing(_read_frames(workspace, total)) as frames:
                    return self._encode(frames, render, "Compiling video")
            progress = self.progress_factory(total, "Compiling video")
            try:
                return encode_directory(
                    workspace.frames_dir,
                    fps=render.fps,
                    output=render.output_path,
                    total_frames=total,
                    progress=progress,
                )
            finally:
                progress.close()
