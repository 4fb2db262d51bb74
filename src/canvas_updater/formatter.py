"""Token-based date rendering for directive format specs."""

from __future__ import annotations

from typing import Callable

from canvas_updater.dates import CalendarDate

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
MONTH_ABBRS = tuple(name[:3] for name in MONTH_NAMES)

# Indexed by CalendarDate.weekday (Monday = 0)
WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
WEEKDAY_ABBRS = tuple(name[:3] for name in WEEKDAY_NAMES)

Renderer = Callable[[CalendarDate], str]

# Longest tokens first so that "Y" never pre-empts "YYYY", "M" never "MM", ...
TOKENS: list[tuple[str, Renderer]] = [
    ("YYYY", lambda d: str(d.year)),
    ("MM", lambda d: MONTH_NAMES[d.month - 1]),
    ("NN", lambda d: WEEKDAY_NAMES[d.weekday]),
    ("DD", lambda d: f"{d.day:02d}"),
    ("Y", lambda d: str(d.year)),
    ("M", lambda d: MONTH_ABBRS[d.month - 1]),
    ("N", lambda d: WEEKDAY_ABBRS[d.weekday]),
    ("D", lambda d: str(d.day)),
]


def format_date(d: CalendarDate, spec: str) -> str:
    """Render *d* according to *spec*.

    Tokens are applied in ``TOKENS`` order. Each pass only looks at text that
    is still literal spec text: output of an earlier token is never matched
    again, so "MM" -> "March" is not turned into "Mararch" by "M".
    """
    # (text, is_literal) segments
    segments: list[tuple[str, bool]] = [(spec, True)]
    for token, render in TOKENS:
        value: str | None = None
        next_segments: list[tuple[str, bool]] = []
        for text, is_literal in segments:
            if not is_literal or token not in text:
                next_segments.append((text, is_literal))
                continue
            if value is None:
                value = render(d)
            parts = text.split(token)
            for i, part in enumerate(parts):
                if i:
                    next_segments.append((value, False))
                if part:
                    next_segments.append((part, True))
        segments = next_segments
    return "".join(text for text, _ in segments)
