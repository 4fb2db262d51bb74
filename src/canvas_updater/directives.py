"""Scanner for ``DateReplace(...)`` directives embedded in course content."""

from __future__ import annotations

import logging
import re

from canvas_updater.models import Directive, DirectiveWarning

logger = logging.getLogger(__name__)

MARKER = "DateReplace("
TRIM_CHARS = " \t\n\r\"_()"

# Leading whitespace, optional sign, digits; anything after is ignored
DAY_NUMBER_RE = re.compile(r"\s*([+-]?\d+)")


def _warn(warnings: list[DirectiveWarning] | None, source: str, position: int, message: str) -> None:
    warning = DirectiveWarning(source, position, message)
    logger.warning("%s", warning)
    if warnings is not None:
        warnings.append(warning)


def parse_day_number(text: str) -> int | None:
    """Parse a day number the lenient way authors write it. None if no digits."""
    m = DAY_NUMBER_RE.match(text)
    if m is None:
        return None
    return int(m.group(1))


def parse_arguments(args: str, start_index: int) -> tuple[str, int | None]:
    """Split a directive's argument string into (format spec, day number).

    The rightmost comma separates the two. Without a comma the whole string is
    the format spec and the day number defaults to *start_index*. The day
    number is None when it cannot be parsed.
    """
    comma = args.rfind(",")
    if comma == -1:
        return args.strip(TRIM_CHARS), start_index
    format_spec = args[:comma].strip(TRIM_CHARS)
    return format_spec, parse_day_number(args[comma + 1:])


def find_replace_span(buffer: str, from_pos: int) -> tuple[int, int] | None:
    """Locate the text between the next ``>`` and the ``<`` that follows it."""
    gt = buffer.find(">", from_pos)
    if gt == -1:
        return None
    lt = buffer.find("<", gt + 1)
    if lt == -1:
        return None
    return gt + 1, lt


def find_next(
    buffer: str,
    from_pos: int,
    start_index: int = 0,
    warnings: list[DirectiveWarning] | None = None,
    source: str = "",
) -> Directive | None:
    """Return the next well-formed directive at or after *from_pos*.

    Malformed occurrences are reported to *warnings* and skipped; scanning
    resumes right after the close parenthesis. When no close parenthesis
    follows a marker, that marker and every later one are reported and the
    scan ends.
    """
    pos = from_pos
    while True:
        start = buffer.find(MARKER, pos)
        if start == -1:
            return None
        args_start = start + len(MARKER)

        close = buffer.find(")", args_start)
        if close == -1:
            # No later marker can be closed either
            while start != -1:
                _warn(warnings, source, start, "DateReplace( without closing parenthesis, skipped")
                start = buffer.find(MARKER, start + len(MARKER))
            return None

        args = buffer[args_start:close]
        format_spec, day_number = parse_arguments(args, start_index)
        logger.debug(
            "%s:%d: directive args %r -> spec %r, day %r",
            source, start, args, format_spec, day_number,
        )
        if day_number is None:
            _warn(
                warnings, source, start,
                f"Invalid day number in DateReplace({args}), skipped",
            )
            pos = close + 1
            continue

        span = find_replace_span(buffer, close)
        if span is None:
            _warn(
                warnings, source, start,
                f"No >...< text after DateReplace({args}), skipped",
            )
            pos = close + 1
            continue

        return Directive(
            format_spec=format_spec,
            day_number=day_number,
            day_offset=day_number - start_index,
            directive_span=(start, close + 1),
            replace_span=span,
        )
