"""Run configuration: YAML settings defaults plus a per-course TOML file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
import yaml
from tomlkit.exceptions import ParseError as TomlParseError

from canvas_updater.dates import CalendarDate, parse_start_date
from canvas_updater.models import (
    DEFAULT_EXTENSIONS,
    DEFAULT_OUTPUT_SUFFIX,
    ConfigError,
    RunConfig,
)

CONFIG_DIR = ".canvas-updater"
SETTINGS_FILE = "settings.yaml"
CONFIG_FILE = "canvas-updater.toml"


# ── Settings (YAML) ─────────────────────────────────────────────

def _load_yaml(path: Path) -> dict:
    """Load a YAML file and return a dict (empty dict if it holds no mapping)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read settings '{path}': {e}") from e
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (returns a new dict)."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val  # lists are replaced, not appended
    return result


def user_settings_path() -> Path:
    return Path.home() / CONFIG_DIR / SETTINGS_FILE


def load_settings(settings_path: Path | None = None) -> dict[str, Any]:
    """Load settings from default_settings.yaml + optional override.

    1. Load ``default_settings.yaml`` bundled with the package.
    2. Deep-merge *settings_path* if given, else ``~/.canvas-updater/settings.yaml``
       when it exists.
    3. Return the merged dict.
    """
    default_path = Path(__file__).parent / "default_settings.yaml"
    data = _load_yaml(default_path)

    if settings_path is None:
        candidate = user_settings_path()
        settings_path = candidate if candidate.is_file() else None
    elif not settings_path.is_file():
        raise ConfigError(f"Settings file not found: '{settings_path}'")

    if settings_path is not None:
        override = _load_yaml(settings_path)
        if override:
            data = _deep_merge(data, override)

    return data


# ── Run config (TOML) ───────────────────────────────────────────

def load_run_config(path: Path) -> dict[str, Any]:
    """Read a course TOML file into a flat dict of run options.

    Recognized keys: ``[course] start, start_index, input, output`` and
    ``[files] extensions``. Relative paths resolve against the file's folder.
    """
    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config '{path}': {e}") from e
    except TomlParseError as e:
        raise ConfigError(f"Invalid config '{path}': {e}") from e

    result: dict[str, Any] = {}
    course = doc.get("course", {})
    if "start" in course:
        result["start"] = str(course["start"])
    if "start_index" in course:
        result["start_index"] = course["start_index"]
    for key in ("input", "output"):
        if key in course:
            p = Path(str(course[key]))
            result[key] = p if p.is_absolute() else path.parent / p

    files = doc.get("files", {})
    exts = files.get("extensions")
    if isinstance(exts, list):
        result["extensions"] = [str(e) for e in exts]
    return result


def save_run_config(
    path: Path,
    start: str,
    start_index: int = 0,
    input_path: str | None = None,
    output_path: str | None = None,
    extensions: list[str] | None = None,
) -> None:
    """Write a course TOML file."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("canvas-updater course configuration"))

    course = tomlkit.table()
    course.add("start", start)
    course["start"].comment("MM/DD/YYYY or YYYY-MM-DD")
    course.add("start_index", start_index)
    if input_path:
        course.add("input", input_path)
    if output_path:
        course.add("output", output_path)
    doc.add("course", course)

    files = tomlkit.table()
    files.add("extensions", list(extensions or DEFAULT_EXTENSIONS))
    doc.add("files", files)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


# ── Merge + validation ──────────────────────────────────────────

def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid number for {name}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid number for {name}: {value!r}") from None


def build_run_config(
    settings: dict[str, Any],
    file_config: dict[str, Any] | None = None,
    **overrides: Any,
) -> RunConfig:
    """Merge settings < config file < command-line overrides into a RunConfig.

    ``None`` overrides are ignored. Raises ConfigError before any archive I/O
    when the start date or input path is missing or invalid.
    """
    merged: dict[str, Any] = dict(settings)
    merged.update(file_config or {})
    merged.update({k: v for k, v in overrides.items() if v is not None})

    start = merged.get("start")
    if start is None or str(start).strip() == "":
        raise ConfigError("Missing start date. Use --start MM/DD/YYYY or set [course] start.")
    if isinstance(start, CalendarDate):
        start_date = start
    else:
        start_date = parse_start_date(str(start))
        if start_date is None:
            raise ConfigError(f"Invalid start date '{start}'. Please use MM/DD/YYYY.")

    input_path = merged.get("input")
    if not input_path:
        raise ConfigError("Missing input archive path.")

    output = merged.get("output")
    extensions = merged.get("extensions", DEFAULT_EXTENSIONS)
    if not isinstance(extensions, (list, tuple)) or not all(isinstance(e, str) for e in extensions):
        raise ConfigError(f"extensions must be a list of suffixes, got {extensions!r}")

    jobs = _parse_int(merged.get("jobs", 1), "jobs")
    if jobs < 1:
        raise ConfigError(f"jobs must be at least 1, got {jobs}")

    return RunConfig(
        start_date=start_date,
        input_path=Path(input_path),
        start_index=_parse_int(merged.get("start_index", 0), "start index"),
        output_path=Path(output) if output else None,
        extensions=tuple(extensions),
        output_suffix=str(merged.get("output_suffix", DEFAULT_OUTPUT_SUFFIX)),
        jobs=jobs,
        dry_run=bool(merged.get("dry_run", False)),
        keep_workdir=bool(merged.get("keep_workdir", False)),
        system_zip=bool(merged.get("system_zip", False)),
    )
