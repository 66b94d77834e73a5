from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarginSettings(BaseModel):
    """Fractions of the canvas kept empty on each side."""

    top: float = 0.1
    bottom: float = 0.1
    left: float = 0.1
    right: float = 0.1


class Settings(BaseSettings):
    """
    Runtime configuration for typereel.

    All settings are loaded from environment variables with the
    `TYPEREEL_` prefix and optional `.env` support. Margins are nested:
    `TYPEREEL_MARGINS__TOP=0.2`.

    Values are not range-checked here; `build_render_settings` validates
    them once at job start and raises `ValidationError`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TYPEREEL_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------
    text: str = Field(
        default="",
        description="Text to type out. Required.",
    )
    resolution: str = Field(
        default="1080x1920",
        description="Output resolution as WIDTHxHEIGHT.",
    )
    text_color: str = Field(
        default="white",
        description="Text color (CSS name or #rrggbb).",
    )
    background_color: str = Field(
        default="black",
        description="Flat background color used when no image is set.",
    )
    background_image: str | None = Field(
        default=None,
        description="Path or http(s) URL of a still background image.",
    )

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    video_length: float = Field(
        default=3.0,
        description="Video duration in seconds.",
    )
    buffer_time: float = Field(
        default=0.0,
        description="Hold time in seconds before typing starts and after it ends.",
    )
    fps: int = Field(
        default=30,
        description="Frames per second.",
    )

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    margins: MarginSettings = Field(default_factory=MarginSettings)
    flow_from_top: bool = Field(
        default=True,
        description="Anchor text at the top margin instead of centering it vertically.",
    )
    highlight_text: bool = Field(
        default=True,
        description="Draw a translucent black box behind each line.",
    )
    highlight_opacity: float = Field(
        default=0.7,
        description="Opacity of the highlight box (0.0 to 1.0).",
    )
    font_path: str | None = Field(
        default=None,
        description="TrueType font file. Falls back to a system sans font.",
    )
    min_font_size: int = Field(default=12, description="Smallest font size tried.")
    max_font_size: int = Field(default=100, description="Largest font size tried.")

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    output_file_name: str = Field(
        default="output.mp4",
        description="Path of the encoded MP4.",
    )
    frames_mode: str = Field(
        default="stream",
        description="stream (pipe frames to ffmpeg) or files (write PNGs first).",
    )
    workers: int = Field(
        default=1,
        description="Frame render threads. 1 renders sequentially.",
    )
    workdir: str | None = Field(
        default=None,
        description="Parent directory for temporary frames. Defaults to the system temp dir.",
    )
    keep_frames: bool = Field(
        default=False,
        description="Keep written PNG frames after encoding (files mode).",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    def to_public_dict(self) -> dict:
        """Settings as plain data for CLI display. Long text is truncated."""
        data = self.model_dump()
        text = data["text"]
        if len(text) > 80:
            data["text"] = text[:77] + "..."
        return data
