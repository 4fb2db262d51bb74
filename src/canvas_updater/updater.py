"""Run orchestration: unpack, rewrite every eligible file, repack."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from canvas_updater.archive import ArchiveService, CommandArchiveService, ZipArchiveService
from canvas_updater.models import ConfigError, RunConfig, RunReport
from canvas_updater.rewriter import ContentRewriter
from canvas_updater.walker import process_tree

logger = logging.getLogger(__name__)


def default_output_path(input_path: Path, suffix: str = "_updated") -> Path:
    """``course.imscc`` -> ``course_updated.imscc`` in the same folder."""
    return input_path.with_name(f"{input_path.stem}{suffix}{input_path.suffix}")


def archive_service_for(config: RunConfig) -> ArchiveService:
    if config.system_zip:
        return CommandArchiveService()
    return ZipArchiveService()


def update_archive(config: RunConfig, archive: ArchiveService | None = None) -> RunReport:
    """Shift every directive date inside the container named by *config*.

    Extraction and packaging errors propagate; per-file problems end up in
    the returned report. The working directory is always cleaned up unless
    ``keep_workdir`` is set.
    """
    output_path = config.output_path or default_output_path(config.input_path, config.output_suffix)
    if output_path.resolve() == config.input_path.resolve():
        raise ConfigError(f"Output path '{output_path}' would overwrite the input archive")

    archive = archive or archive_service_for(config)
    report = RunReport(
        start_date=config.start_date,
        start_index=config.start_index,
        input_path=config.input_path,
        output_path=None if config.dry_run else output_path,
        dry_run=config.dry_run,
    )

    workdir = archive.unpack(config.input_path)
    try:
        rewriter = ContentRewriter(config.start_date, config.start_index)
        report.files = process_tree(
            workdir,
            rewriter,
            extensions=config.extensions,
            dry_run=config.dry_run,
            jobs=config.jobs,
        )
        logger.info(
            "Date replacement complete: %d replacement(s) in %d file(s)",
            report.replacement_count, len(report.changed_files()),
        )
        if not config.dry_run:
            archive.pack(workdir, output_path)
    finally:
        if config.keep_workdir:
            report.workdir = workdir
            logger.info("Working directory kept at %s", workdir)
        else:
            shutil.rmtree(workdir, ignore_errors=True)

    return report
