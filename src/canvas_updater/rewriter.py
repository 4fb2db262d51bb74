"""Apply every directive in a buffer and build the rewritten text."""

from __future__ import annotations

import logging

from canvas_updater.dates import CalendarDate, add_days
from canvas_updater.directives import MARKER, find_next
from canvas_updater.formatter import format_date
from canvas_updater.models import DirectiveWarning, Replacement, RewriteResult

logger = logging.getLogger(__name__)


class ContentRewriter:
    """Rewrites directive targets relative to a fixed start date and index."""

    def __init__(self, start_date: CalendarDate, start_index: int = 0) -> None:
        self.start_date = start_date
        self.start_index = start_index

    def target_date(self, day_number: int) -> CalendarDate:
        return add_days(self.start_date, day_number - self.start_index)

    def render(self, format_spec: str, day_number: int | None = None) -> str:
        """Render one directive; a missing day number means the start date."""
        if day_number is None:
            day_number = self.start_index
        return format_date(self.target_date(day_number), format_spec)

    def collect(
        self,
        buffer: str,
        source: str = "",
        warnings: list[DirectiveWarning] | None = None,
    ) -> list[Replacement]:
        """Scan *buffer* and return the replacements in buffer order.

        Scanning resumes after each replace span, so text that will be
        overwritten is never searched for further directives.
        """
        replacements: list[Replacement] = []
        pos = 0
        while True:
            directive = find_next(buffer, pos, self.start_index, warnings, source)
            if directive is None:
                break
            start, end = directive.replace_span
            rendered = format_date(self.target_date(directive.day_number), directive.format_spec)
            replacements.append(Replacement(directive, buffer[start:end], rendered))
            pos = end
        return replacements

    def rewrite(self, buffer: str, source: str = "") -> RewriteResult:
        """Return *buffer* with every directive's replace span filled in."""
        if MARKER not in buffer:
            return RewriteResult(content=buffer)

        warnings: list[DirectiveWarning] = []
        replacements = self.collect(buffer, source, warnings)

        parts: list[str] = []
        last = 0
        for repl in replacements:
            start, end = repl.directive.replace_span
            parts.append(buffer[last:start])
            parts.append(repl.rendered)
            last = end
        parts.append(buffer[last:])
        content = "".join(parts)

        changed = content != buffer
        if replacements:
            logger.debug("%s: %d directive(s) applied", source, len(replacements))
        return RewriteResult(
            content=content,
            changed=changed,
            replacements=replacements,
            warnings=warnings,
        )
