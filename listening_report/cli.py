"""Command line for building listening reports.

Commands:
  summary        Print totals, peaks and the top songs.
  export-excel   Write the full report workbook.
  monthly        Print the per-month breakdown (DuckDB).
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from listening_report.config import get_settings
from listening_report.export import default_report_filename, export_excel_report
from listening_report.io import LoadedHistory, load_listening_records
from listening_report.metrics.trends import collect_events, get_listening_time_by_month
from listening_report.metrics.utils import round2
from listening_report.report import NoUsableRecordsError, Report, build_report


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(asctime)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load(paths: tuple[Path, ...]) -> LoadedHistory:
    targets = list(paths) or [get_settings().history_dir]
    try:
        history = load_listening_records(targets)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    if not history.records:
        raise click.ClickException("No valid JSON streaming records were found in the given paths.")
    click.echo(
        f"Loaded {len(history.records):,} total records from "
        f"{history.meta.parsed_json_count} JSON file(s)."
    )
    return history


def _build(history: LoadedHistory) -> Report:
    try:
        return build_report(history.records, input_meta=history.meta)
    except NoUsableRecordsError as exc:
        raise click.ClickException(str(exc)) from exc


paths_argument = click.argument(
    "paths",
    nargs=-1,
    type=click.Path(path_type=Path, exists=True),
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (defaults to env LOG_LEVEL or INFO).",
)
def main(log_level: str | None) -> None:
    """Listening report CLI."""
    _configure_logging((log_level or get_settings().log_level).upper())


@main.command("summary")
@paths_argument
def summary(paths: tuple[Path, ...]) -> None:
    """Print the headline numbers of a listening history.

    PATHS are JSON files, ZIP archives or directories; defaults to
    LISTENING_HISTORY_DIR.
    """
    report = _build(_load(paths))

    click.echo(
        " | ".join(
            [
                f"records={report.total_records_read}",
                f"used={report.song_records_used}",
                f"non_song={report.ignored_non_song}",
                f"bad_timestamp={report.ignored_bad_timestamp}",
            ]
        )
    )
    click.echo(f"Unique songs: {report.unique_songs}")
    click.echo(
        f"Total listened: {round2(report.total_minutes)} min ({round2(report.total_hours)} h)"
    )
    click.echo(f"Data range: {report.data_range}")
    if report.peak_month is not None:
        click.echo(
            f"Peak month: {report.peak_month.month_label} ({round2(report.peak_month.minutes)} min)"
        )
    if report.peak_year is not None:
        click.echo(f"Peak year: {report.peak_year.year} ({round2(report.peak_year.minutes)} min)")

    click.echo("Top songs by play count:")
    for rank, row in enumerate(report.top10_by_play_count, start=1):
        click.echo(
            f"{rank:>3}. {row.song} - {row.artist} "
            f"({row.play_count} plays, {round2(row.total_minutes)} min)"
        )


@main.command("export-excel")
@paths_argument
@click.option(
    "--output",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Workbook path (defaults to REPORT_OUTPUT_DIR/spotify_report_full_<timestamp>.xlsx).",
)
def export_excel(paths: tuple[Path, ...], output_path: Path | None) -> None:
    """Write the full report workbook."""
    report = _build(_load(paths))
    if output_path is None:
        output_path = get_settings().output_dir / default_report_filename()
    written = export_excel_report(report, output_path)
    click.echo(f"Excel report generated: {written}")


@main.command("monthly")
@paths_argument
def monthly(paths: tuple[Path, ...]) -> None:
    """Print unique tracks, artists and hours per month."""
    history = _load(paths)
    breakdown = get_listening_time_by_month(collect_events(history.records))
    if breakdown.empty:
        raise click.ClickException("No song records were found after filtering out non-song entries.")
    click.echo(breakdown.to_string(index=False))


if __name__ == "__main__":
    main()
