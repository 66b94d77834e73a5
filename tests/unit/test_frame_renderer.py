from __future__ import annotations

import pytest
from PIL import Image, ImageChops

from typereel.config.settings import MarginSettings, Settings
from typereel.domain.models import LayoutSpec, build_render_settings
from typereel.layout.measure import PillowTextMeasurer
from typereel.layout.optimize import optimize_layout
from typereel.render.frame import FrameRenderer


def _renderer(background: Image.Image | None = None, **overrides) -> FrameRenderer:
    values = {
        "text": "Hi there",
        "resolution": "200x100",
        "text_color": "white",
        "background_color": "white",
        "video_length": 1,
        "fps": 10,
        "highlight_opacity": 1.0,
    }
    values.update(overrides)
    render = build_render_settings(Settings(**values))
    measurer = PillowTextMeasurer()
    layout = optimize_layout(render.text, render.max_width, render.max_height, measurer)
    return FrameRenderer(render, layout, measurer, background)


def test_frame_matches_resolution() -> None:
    renderer = _renderer()
    frame = renderer.render_frame(9)
    assert frame.size == (200, 100)
    assert frame.mode == "RGB"


def test_highlight_box_is_drawn_behind_text() -> None:
    frame = _renderer().render_frame(9)
    # Text origin is (20, 10); the box starts 5px up and left of it.
    assert frame.getpixel((17, 7)) == (0, 0, 0)
    assert frame.getpixel((2, 2)) == (255, 255, 255)


def test_highlight_opacity_blends_with_background() -> None:
    frame = _renderer(highlight_opacity=0.5).render_frame(9)
    red, green, blue = frame.getpixel((17, 7))
    assert red == green == blue
    assert 120 <= red <= 135


def test_no_highlight_leaves_background() -> None:
    frame = _renderer(highlight_text=False).render_frame(9)
    assert frame.getpixel((17, 7)) == (255, 255, 255)


def test_text_is_drawn() -> None:
    renderer = _renderer(text_color="black", highlight_text=False)
    blank = renderer.compose([])
    typed = renderer.render_frame(9)
    assert ImageChops.difference(blank, typed).getbbox() is not None


def test_leading_buffer_frame_is_plain_background() -> None:
    frame = _renderer(buffer_time=0.2).render_frame(0)
    assert frame.getcolors() == [(200 * 100, (255, 255, 255))]


def test_background_image_is_used_and_never_mutated() -> None:
    background = Image.new("RGB", (200, 100), "red")
    renderer = _renderer(background=background)
    frame = renderer.render_frame(9)
    assert frame.getpixel((199, 99)) == (255, 0, 0)
    assert background.getcolors() == [(200 * 100, (255, 0, 0))]


def test_background_size_must_match() -> None:
    with pytest.raises(ValueError):
        _renderer(background=Image.new("RGB", (10, 10)))


def test_frames_are_independent() -> None:
    renderer = _renderer(text_color="black")
    first = renderer.render_frame(5).tobytes()
    renderer.render_frame(9)
    renderer.render_frame(2)
    assert renderer.render_frame(5).tobytes() == first


def test_vertical_origin() -> None:
    render = build_render_settings(
        Settings(
            text="x",
            resolution="100x200",
            flow_from_top=False,
            margins=MarginSettings(top=0.25, bottom=0.1, left=0.1, right=0.1),
        )
    )
    layout = LayoutSpec(font_size=10, lines=("a", "b", "c"), line_height=12.0)
    renderer = FrameRenderer(render, layout, PillowTextMeasurer())
    assert renderer.start_y(["a", "b"]) == pytest.approx((200 - 24) / 2)
    assert renderer.start_y([]) == pytest.approx(100)

    top_renderer = FrameRenderer(
        build_render_settings(
            Settings(
                text="x",
                resolution="100x200",
                margins=MarginSettings(top=0.25, bottom=0.1, left=0.1, right=0.1),
            )
        ),
        layout,
        PillowTextMeasurer(),
    )
    assert top_renderer.start_y(["a", "b"]) == pytest.approx(50)
