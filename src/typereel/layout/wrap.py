from __future__ import annotations

from typing import Callable

Measure = Callable[[str], float]


def wrap_text(text: str, max_width: float, measure: Measure) -> list[str]:
    """
    Greedily wrap words into lines narrower than `max_width`.

    A word is appended while the joined line stays strictly under the
    limit. Words are never broken: one wider than the limit gets a line
    to itself. Blank text yields a single empty line.
    """
    words = text.split()
    if not words:
        return [""]

    lines: list[str] = []
    current = words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        if measure(candidate) < max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines
