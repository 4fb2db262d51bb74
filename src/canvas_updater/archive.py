"""Unpack and repack course containers (.imscc / .zip).

``ArchiveService`` is the interface the run depends on; the zipfile-based
implementation is the default and the command-based one mirrors the classic
``unzip``/``zip`` workflow.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import zipfile
import zlib
from abc import ABC, abstractmethod
from pathlib import Path

from canvas_updater.models import ExtractionError, PackagingError

logger = logging.getLogger(__name__)

WORKDIR_PREFIX = "canvas-updater-"

# Raised by extractall for damaged, encrypted or unsupported members
UNPACK_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    RuntimeError,
    NotImplementedError,
    OSError,
)


class ArchiveService(ABC):
    """Port for container extraction and packaging"""

    @abstractmethod
    def unpack(self, container_path: Path) -> Path:
        """Extract the container into a fresh working directory and return it"""

    @abstractmethod
    def pack(self, working_dir: Path, output_path: Path) -> None:
        """Pack the contents of working_dir into output_path"""


def _new_workdir() -> Path:
    return Path(tempfile.mkdtemp(prefix=WORKDIR_PREFIX))


def _check_input(container_path: Path) -> None:
    if not container_path.is_file():
        raise ExtractionError(f"Archive file not found at '{container_path}'")


def _temp_output(output_path: Path) -> Path:
    """Reserve a temp file next to output_path for an atomic rename."""
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=output_path.parent, suffix=".tmp", prefix=".canvas-updater-")
    except OSError as e:
        raise PackagingError(f"Cannot write to '{output_path.parent}': {e}") from e
    os.close(fd)
    return Path(tmp)


class ZipArchiveService(ArchiveService):
    """Container handling with the zipfile module"""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression

    def unpack(self, container_path: Path) -> Path:
        _check_input(container_path)
        workdir = _new_workdir()
        try:
            with zipfile.ZipFile(container_path) as zf:
                zf.extractall(workdir)
        except UNPACK_ERRORS as e:
            shutil.rmtree(workdir, ignore_errors=True)
            raise ExtractionError(f"Failed to unpack '{container_path}': {e}") from e
        logger.info("Unpacked %s to %s", container_path, workdir)
        return workdir

    def pack(self, working_dir: Path, output_path: Path) -> None:
        tmp = _temp_output(output_path)
        try:
            with zipfile.ZipFile(tmp, "w", compression=self.compression) as zf:
                for path in sorted(working_dir.rglob("*")):
                    if path.is_dir() or path.is_file():
                        zf.write(path, path.relative_to(working_dir).as_posix())
            os.replace(tmp, output_path)
        except (zipfile.LargeZipFile, OSError) as e:
            tmp.unlink(missing_ok=True)
            raise PackagingError(f"Failed to create '{output_path}': {e}") from e
        logger.info("Packed %s into %s", working_dir, output_path)


class CommandArchiveService(ArchiveService):
    """Container handling through the external unzip and zip commands"""

    def __init__(self, unzip_cmd: str = "unzip", zip_cmd: str = "zip", timeout: float = 600):
        self.unzip_cmd = unzip_cmd
        self.zip_cmd = zip_cmd
        self.timeout = timeout

    def _run(self, args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess:
        logger.debug("Running %s", " ".join(args))
        return subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=self.timeout,
        )

    def unpack(self, container_path: Path) -> Path:
        _check_input(container_path)
        workdir = _new_workdir()
        try:
            result = self._run([self.unzip_cmd, "-o", "-q", str(container_path), "-d", str(workdir)])
        except (OSError, subprocess.TimeoutExpired) as e:
            shutil.rmtree(workdir, ignore_errors=True)
            raise ExtractionError(
                f"Failed to run '{self.unzip_cmd}'. Make sure it is installed and in your PATH: {e}"
            ) from e
        if result.returncode != 0:
            shutil.rmtree(workdir, ignore_errors=True)
            raise ExtractionError(
                f"'{self.unzip_cmd}' exited with status {result.returncode}: {result.stderr.strip()}"
            )
        logger.info("Unpacked %s to %s", container_path, workdir)
        return workdir

    def pack(self, working_dir: Path, output_path: Path) -> None:
        tmp = _temp_output(output_path)
        # zip refuses to append to an empty non-zip file
        tmp.unlink()
        try:
            # Run from inside working_dir so entries are stored relative to its root
            result = self._run(
                [self.zip_cmd, "-r", "-q", str(tmp.resolve()), "."], cwd=working_dir,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            tmp.unlink(missing_ok=True)
            raise PackagingError(
                f"Failed to run '{self.zip_cmd}'. Make sure it is installed and in your PATH: {e}"
            ) from e
        if result.returncode != 0:
            tmp.unlink(missing_ok=True)
            raise PackagingError(
                f"'{self.zip_cmd}' exited with status {result.returncode}: {result.stderr.strip()}"
            )
        try:
            os.replace(tmp, output_path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PackagingError(f"Failed to create '{output_path}': {e}") from e
        logger.info("Packed %s into %s", working_dir, output_path)
