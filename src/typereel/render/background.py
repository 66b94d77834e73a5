from __future__ import annotations

from io import BytesIO
from pathlib import Path

import requests
from PIL import Image

from typereel.exceptions import ResourceError
from typereel.utils.logging import get_logger

log = get_logger(__name__)

FETCH_TIMEOUT_S = 30


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _fetch(url: str) -> BytesIO:
    try:
        response = requests.get(url, timeout=FETCH_TIMEOUT_S)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ResourceError(f"Failed to fetch background image {url}: {exc}") from exc
    return BytesIO(response.content)


def load_background(source: str, width: int, height: int) -> Image.Image:
    """Load a still image from a path or URL, scaled to exactly width x height."""
    if _is_url(source):
        log.info("Fetching background image %s", source)
        handle = _fetch(source)
    else:
        path = Path(source).expanduser()
        if not path.is_file():
            raise ResourceError(f"Background image not found: {path}")
        handle = path

    try:
        with Image.open(handle) as image:
            image.load()
            surface = image.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ResourceError(f"Failed to decode background image {source}: {exc}") from exc

    if surface.size != (width, height):
        surface = surface.resize((width, height), Image.Resampling.LANCZOS)
    return surface
