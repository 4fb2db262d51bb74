"""CLI entry point using Click."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import click

from canvas_updater.models import CanvasUpdaterError

REPORT_SUFFIXES = (".json", ".csv")


class _DefaultGroup(click.Group):
    """Insert 'run' when the first arg is not a registered subcommand."""

    def parse_args(self, ctx, args):
        # run's own options may come before INPUT: route them to 'run' here,
        # the group parser would reject them
        args = list(args)
        idx = 0
        while idx < len(args) and self._is_group_option(ctx, args[idx]):
            idx += 1
        if idx < len(args) and args[idx].startswith("-") and args[idx] != "--":
            args.insert(idx, "run")
        return super().parse_args(ctx, args)

    def _is_group_option(self, ctx, arg: str) -> bool:
        names = {opt for param in self.get_params(ctx) for opt in param.opts + param.secondary_opts}
        if arg in names:
            return True
        # Bundled short flags such as -vv or -qv
        shorts = {name[1] for name in names if len(name) == 2 and name[0] == "-"}
        return len(arg) > 1 and arg[0] == "-" and arg[1] != "-" and set(arg[1:]) <= shorts

    def resolve_command(self, ctx, args):
        cmd_name = args[0] if args else None
        if cmd_name and cmd_name in self.commands:
            return super().resolve_command(ctx, args)
        return super().resolve_command(ctx, ["run"] + list(args))


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
    )


def _fail(message: str) -> NoReturn:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    raise SystemExit(1)


@click.group(cls=_DefaultGroup)
@click.option("-v", "--verbose", count=True, help="-v for progress, -vv for every directive")
@click.option("-q", "--quiet", is_flag=True, help="Do not print the summary table")
@click.version_option(package_name="canvas-updater")
@click.pass_context
def main(ctx, verbose: int, quiet: bool) -> None:
    """canvas-updater - shift DateReplace dates inside course archives."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    _setup_logging(verbose)


@main.command()
@click.argument("input_path", metavar="INPUT", required=False, type=click.Path(path_type=Path))
@click.option("-s", "--start", help="School-year start date, MM/DD/YYYY")
@click.option("-o", "--output", type=click.Path(path_type=Path),
              help="Output archive (default: <input>_updated<ext>)")
@click.option("-i", "--start-index", type=int, help="Number of the first day in directives (default 0)")
@click.option("-c", "--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Course TOML config file")
@click.option("--settings", "settings_path", type=click.Path(path_type=Path),
              help="Settings YAML (default: ~/.canvas-updater/settings.yaml)")
@click.option("-j", "--jobs", type=int, help="Process files in parallel")
@click.option("--dry-run", is_flag=True, help="Scan and report, write nothing")
@click.option("--keep-workdir", is_flag=True, help="Keep the unpacked working directory")
@click.option("--system-zip", is_flag=True, help="Use the external unzip/zip commands")
@click.option("--report", "report_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Write a .json or .csv report of every replacement")
@click.pass_context
def run(
    ctx,
    input_path: Path | None,
    start: str | None,
    output: Path | None,
    start_index: int | None,
    config_path: Path | None,
    settings_path: Path | None,
    jobs: int | None,
    dry_run: bool | None,
    keep_workdir: bool | None,
    system_zip: bool | None,
    report_path: Path | None,
) -> None:
    """Rewrite every DateReplace directive in INPUT and repack it."""
    from canvas_updater.config import build_run_config, load_run_config, load_settings
    from canvas_updater.export import export_report, print_summary
    from canvas_updater.updater import update_archive

    if report_path is not None and report_path.suffix.lower() not in REPORT_SUFFIXES:
        raise click.BadParameter("report must end in .json or .csv", param_hint="--report")

    try:
        settings = load_settings(settings_path)
        file_config = load_run_config(config_path) if config_path else None
        config = build_run_config(
            settings,
            file_config,
            start=start,
            start_index=start_index,
            input=input_path,
            output=output,
            jobs=jobs,
            dry_run=dry_run or None,
            keep_workdir=keep_workdir or None,
            system_zip=system_zip or None,
        )
        report = update_archive(config)
    except CanvasUpdaterError as e:
        _fail(str(e))

    if report_path is not None:
        try:
            export_report(report, report_path)
        except OSError as e:
            _fail(f"Cannot write report '{report_path}': {e}")
        click.echo(f"Report written to {report_path}")

    if not ctx.obj.get("quiet"):
        print_summary(report)
    if report.workdir is not None:
        click.echo(f"Working directory kept at {report.workdir}")
    for failed in report.failed_files():
        click.echo(f"Warning: {failed.path}: {failed.error}", err=True)


@main.command("init")
@click.argument("path", default="canvas-updater.toml", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-s", "--start", prompt="School-year start date (MM/DD/YYYY)", help="Start date")
@click.option("-i", "--start-index", type=int, default=0, show_default=True, help="Number of the first day")
@click.option("--input", "input_path", help="Input archive path")
@click.option("--output", "output_path", help="Output archive path")
def init_cmd(path: Path, start: str, start_index: int, input_path: str | None, output_path: str | None) -> None:
    """Write a course TOML config for use with --config."""
    from canvas_updater.config import save_run_config
    from canvas_updater.dates import parse_start_date

    if path.exists():
        click.echo(f"Already exists: {path}", err=True)
        raise SystemExit(1)
    if parse_start_date(start) is None:
        _fail(f"Invalid start date '{start}'. Please use MM/DD/YYYY.")

    save_run_config(path, start, start_index, input_path, output_path)
    click.echo(f"Created {path}")


@main.command("preview")
@click.argument("format_spec", metavar="FORMAT")
@click.argument("day", required=False)
@click.option("-s", "--start", required=True, help="School-year start date, MM/DD/YYYY")
@click.option("-i", "--start-index", type=int, default=0, show_default=True, help="Number of the first day")
def preview_cmd(format_spec: str, day: str | None, start: str, start_index: int) -> None:
    """Render FORMAT for DAY the way a DateReplace directive would."""
    from canvas_updater.dates import parse_start_date
    from canvas_updater.directives import TRIM_CHARS, parse_day_number
    from canvas_updater.rewriter import ContentRewriter

    start_date = parse_start_date(start)
    if start_date is None:
        _fail(f"Invalid start date '{start}'. Please use MM/DD/YYYY.")

    day_number = None
    if day is not None:
        day_number = parse_day_number(day)
        if day_number is None:
            _fail(f"Invalid day number '{day}'")

    rewriter = ContentRewriter(start_date, start_index)
    click.echo(rewriter.render(format_spec.strip(TRIM_CHARS), day_number))
