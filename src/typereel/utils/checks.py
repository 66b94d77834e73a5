from __future__ import annotations

import shutil

from typereel.exceptions import DependencyMissingError


def require_binary(binary: str) -> str:
    path = shutil.which(binary)
    if path is None:
        raise DependencyMissingError(
            f"Missing required dependency '{binary}'. Install it and try again."
        )
    return path
