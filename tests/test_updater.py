"""Tests for run orchestration."""

import shutil
import tempfile
import zipfile
from pathlib import Path

import pytest

from canvas_updater.archive import ArchiveService, CommandArchiveService, ZipArchiveService
from canvas_updater.dates import CalendarDate
from canvas_updater.models import ConfigError, ExtractionError, PackagingError, RunConfig
from canvas_updater.updater import archive_service_for, default_output_path, update_archive

PAGE = "<p title='DateReplace(\"NN, MM D\", 1)'>Tuesday, August 20</p>"


class FakeArchiveService(ArchiveService):
    """In-memory container: unpack writes *files* into a temp dir."""

    def __init__(self, files: dict[str, str], fail_unpack: bool = False, fail_pack: bool = False):
        self.files = files
        self.fail_unpack = fail_unpack
        self.fail_pack = fail_pack
        self.workdir: Path | None = None
        self.packed: dict[str, str] | None = None
        self.output_path: Path | None = None

    def unpack(self, container_path: Path) -> Path:
        if self.fail_unpack:
            raise ExtractionError("boom")
        self.workdir = Path(tempfile.mkdtemp(prefix="canvas-updater-test-"))
        for name, content in self.files.items():
            path = self.workdir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return self.workdir

    def pack(self, working_dir: Path, output_path: Path) -> None:
        if self.fail_pack:
            raise PackagingError("boom")
        self.output_path = output_path
        self.packed = {
            p.relative_to(working_dir).as_posix(): p.read_text(encoding="utf-8")
            for p in working_dir.rglob("*")
            if p.is_file()
        }


@pytest.fixture
def config(tmp_path):
    return RunConfig(
        start_date=CalendarDate(2025, 8, 25),
        input_path=tmp_path / "course.imscc",
        start_index=1,
    )


class TestDefaultOutputPath:
    def test_suffix_before_extension(self):
        assert default_output_path(Path("exports/course.imscc")) == Path("exports/course_updated.imscc")

    def test_custom_suffix(self):
        assert default_output_path(Path("course.zip"), "_fall") == Path("course_fall.zip")

    def test_no_extension(self):
        assert default_output_path(Path("course")) == Path("course_updated")


class TestArchiveServiceFor:
    def test_default_is_zipfile(self, config):
        assert isinstance(archive_service_for(config), ZipArchiveService)

    def test_system_zip(self, config):
        config.system_zip = True
        assert isinstance(archive_service_for(config), CommandArchiveService)


class TestUpdateArchive:
    def test_rewrites_and_packs(self, config):
        fake = FakeArchiveService({
            "wiki_content/week1.html": PAGE,
            "imsmanifest.xml": "<manifest/>",
            "notes.md": "DateReplace(D, 1)>x<",
        })
        report = update_archive(config, fake)

        assert fake.output_path == config.input_path.with_name("course_updated.imscc")
        assert fake.packed["wiki_content/week1.html"] == (
            "<p title='DateReplace(\"NN, MM D\", 1)'>Monday, August 25</p>"
        )
        assert fake.packed["notes.md"] == "DateReplace(D, 1)>x<"
        assert report.replacement_count == 1
        assert [f.path.as_posix() for f in report.changed_files()] == ["wiki_content/week1.html"]
        assert report.output_path == fake.output_path

    def test_workdir_removed(self, config):
        fake = FakeArchiveService({"a.html": PAGE})
        update_archive(config, fake)
        assert not fake.workdir.exists()

    def test_keep_workdir(self, config):
        config.keep_workdir = True
        fake = FakeArchiveService({"a.html": PAGE})
        report = update_archive(config, fake)
        try:
            assert report.workdir == fake.workdir
            assert "Monday, August 25" in (fake.workdir / "a.html").read_text(encoding="utf-8")
        finally:
            shutil.rmtree(fake.workdir)

    def test_explicit_output(self, config, tmp_path):
        config.output_path = tmp_path / "fall.imscc"
        fake = FakeArchiveService({"a.html": PAGE})
        update_archive(config, fake)
        assert fake.output_path == tmp_path / "fall.imscc"

    def test_dry_run_does_not_pack(self, config):
        config.dry_run = True
        fake = FakeArchiveService({"a.html": PAGE})
        report = update_archive(config, fake)
        assert fake.packed is None
        assert report.output_path is None
        assert report.replacement_count == 1

    def test_extraction_error_propagates(self, config):
        fake = FakeArchiveService({}, fail_unpack=True)
        with pytest.raises(ExtractionError):
            update_archive(config, fake)
        assert fake.packed is None

    def test_packaging_error_propagates_and_cleans_up(self, config):
        fake = FakeArchiveService({"a.html": PAGE}, fail_pack=True)
        with pytest.raises(PackagingError):
            update_archive(config, fake)
        assert not fake.workdir.exists()

    def test_output_same_as_input(self, config):
        config.output_path = config.input_path
        with pytest.raises(ConfigError):
            update_archive(config, FakeArchiveService({}))

    def test_custom_extensions(self, config):
        config.extensions = (".md",)
        fake = FakeArchiveService({"a.html": PAGE, "b.md": PAGE})
        update_archive(config, fake)
        assert fake.packed["a.html"] == PAGE
        assert "Monday, August 25" in fake.packed["b.md"]


class TestEndToEnd:
    def test_real_zip(self, tmp_path):
        src = tmp_path / "course.imscc"
        with zipfile.ZipFile(src, "w") as zf:
            zf.writestr("imsmanifest.xml", "<manifest/>")
            zf.writestr("wiki_content/week1.html", PAGE)
            zf.writestr("web_resources/image.png", b"\x89PNG")

        config = RunConfig(start_date=CalendarDate(2025, 8, 25), input_path=src, start_index=1)
        report = update_archive(config)

        out = tmp_path / "course_updated.imscc"
        assert report.output_path == out
        with zipfile.ZipFile(out) as zf:
            page = zf.read("wiki_content/week1.html").decode("utf-8")
            assert page.endswith(">Monday, August 25</p>")
            assert zf.read("web_resources/image.png") == b"\x89PNG"
        # input untouched
        with zipfile.ZipFile(src) as zf:
            assert zf.read("wiki_content/week1.html").decode("utf-8") == PAGE
