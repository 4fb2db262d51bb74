"""Walk an unpacked course tree and rewrite eligible files in place."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator

from canvas_updater.models import DEFAULT_EXTENSIONS, FileResult
from canvas_updater.rewriter import ContentRewriter

logger = logging.getLogger(__name__)

# Undecodable bytes round-trip unchanged through surrogateescape
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


def is_eligible(path: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    """Case-sensitive suffix match against *extensions*."""
    return path.suffix in tuple(extensions)


def iter_eligible_files(root: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> Iterator[Path]:
    """Yield regular files under *root* with an eligible suffix, sorted."""
    exts = tuple(extensions)
    for path in sorted(root.rglob("*")):
        if path.is_file() and not path.is_symlink() and is_eligible(path, exts):
            yield path


def read_content(path: Path) -> str:
    """Read a file as text without altering line endings or odd bytes."""
    return path.read_bytes().decode(ENCODING, ENCODING_ERRORS)


def write_content(path: Path, content: str) -> None:
    """Atomically replace *path* with *content*.

    1. Write to a temp file in the same directory
    2. Atomic rename (os.replace) temp -> target
    """
    data = content.encode(ENCODING, ENCODING_ERRORS)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=".canvas-updater-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def process_file(path: Path, rewriter: ContentRewriter, root: Path | None = None, dry_run: bool = False) -> FileResult:
    """Rewrite a single file. File access problems are reported, not raised."""
    rel = path.relative_to(root) if root is not None else path
    result = FileResult(path=rel)

    try:
        content = read_content(path)
    except OSError as e:
        result.error = f"Cannot read file: {e}"
        logger.warning("%s: %s, skipping", rel, result.error)
        return result

    rewritten = rewriter.rewrite(content, source=str(rel))
    result.replacements = rewritten.replacements
    result.warnings = rewritten.warnings

    if not rewritten.changed:
        return result

    if dry_run:
        result.changed = True
        logger.info("%s: %d replacement(s) (dry run)", rel, len(rewritten.replacements))
        return result

    try:
        write_content(path, rewritten.content)
    except OSError as e:
        result.error = f"Cannot write file: {e}"
        logger.warning("%s: %s, skipping", rel, result.error)
        return result

    result.changed = True
    logger.info("%s: %d replacement(s)", rel, len(rewritten.replacements))
    return result


def process_tree(
    root: Path,
    rewriter: ContentRewriter,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    dry_run: bool = False,
    jobs: int = 1,
) -> list[FileResult]:
    """Rewrite every eligible file under *root*.

    Files are independent, so with ``jobs > 1`` they are processed on a
    thread pool. Results always come back in sorted path order.
    """
    files = list(iter_eligible_files(root, extensions))
    logger.info("Scanning %d eligible file(s) under %s", len(files), root)

    if jobs <= 1 or len(files) <= 1:
        return [process_file(p, rewriter, root, dry_run) for p in files]

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(lambda p: process_file(p, rewriter, root, dry_run), files))
