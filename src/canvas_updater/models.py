"""Data models and error types for canvas-updater."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from canvas_updater.dates import CalendarDate


class CanvasUpdaterError(Exception):
    """Base class for errors that abort a run."""


class ConfigError(CanvasUpdaterError):
    """Invalid or missing run configuration (start date, paths, index)."""


class ExtractionError(CanvasUpdaterError):
    """The input container could not be unpacked."""


class PackagingError(CanvasUpdaterError):
    """The working directory could not be packed into the output container."""


DEFAULT_EXTENSIONS: tuple[str, ...] = (".html", ".htm", ".xml", ".txt")
DEFAULT_OUTPUT_SUFFIX = "_updated"


@dataclass
class DirectiveWarning:
    """A malformed directive that was skipped during scanning."""

    source: str
    position: int
    message: str

    def __str__(self) -> str:
        return f"{self.source}:{self.position}: {self.message}"


@dataclass(frozen=True)
class Directive:
    """A parsed ``DateReplace(...)`` occurrence.

    Spans are half-open ``(start, end)`` offsets into the scanned buffer.
    ``replace_span`` always lies after ``directive_span`` and may be empty.
    """

    format_spec: str
    day_number: int
    day_offset: int
    directive_span: tuple[int, int]
    replace_span: tuple[int, int]


@dataclass(frozen=True)
class Replacement:
    """One substitution applied to a buffer."""

    directive: Directive
    original: str
    rendered: str


@dataclass
class RewriteResult:
    """Outcome of rewriting a single buffer."""

    content: str
    changed: bool = False
    replacements: list[Replacement] = field(default_factory=list)
    warnings: list[DirectiveWarning] = field(default_factory=list)


@dataclass
class FileResult:
    """Outcome of processing one file of the working tree."""

    path: Path
    changed: bool = False
    replacements: list[Replacement] = field(default_factory=list)
    warnings: list[DirectiveWarning] = field(default_factory=list)
    error: str | None = None  # file access problem, file skipped

    @property
    def status(self) -> str:
        if self.error is not None:
            return "skipped"
        if self.changed:
            return "updated"
        return "unchanged"


@dataclass
class RunConfig:
    """Everything a run needs, after merging settings, config file and CLI."""

    start_date: CalendarDate
    input_path: Path
    start_index: int = 0
    output_path: Path | None = None
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX
    jobs: int = 1
    dry_run: bool = False
    keep_workdir: bool = False
    system_zip: bool = False


@dataclass
class RunReport:
    """Results of a whole run, one entry per eligible file."""

    start_date: CalendarDate
    start_index: int
    input_path: Path
    output_path: Path | None = None
    dry_run: bool = False
    workdir: Path | None = None  # set when the working directory is kept
    files: list[FileResult] = field(default_factory=list)

    def changed_files(self) -> list[FileResult]:
        return [f for f in self.files if f.changed]

    def failed_files(self) -> list[FileResult]:
        return [f for f in self.files if f.error is not None]

    def all_warnings(self) -> list[DirectiveWarning]:
        result: list[DirectiveWarning] = []
        for f in self.files:
            result.extend(f.warnings)
        return result

    @property
    def replacement_count(self) -> int:
        return sum(len(f.replacements) for f in self.files)
