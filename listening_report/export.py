"""Render a `Report` as pandas frames and write them to an Excel workbook."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path

import pandas as pd

from listening_report.metrics.utils import NOT_AVAILABLE, round2, round4
from listening_report.report import Report

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 70


def _summary_frame(report: Report, generated_at: dt.datetime) -> pd.DataFrame:
    peak_month = (
        f"{report.peak_month.month} ({round2(report.peak_month.minutes)} min)"
        if report.peak_month
        else NOT_AVAILABLE
    )
    peak_year = (
        f"{report.peak_year.year} ({round2(report.peak_year.minutes)} min)"
        if report.peak_year
        else NOT_AVAILABLE
    )

    rows: list[tuple[str, object]] = [
        ("Generated At (UTC)", generated_at.strftime("%Y-%m-%d %H:%M:%S UTC")),
    ]
    if report.input_meta is not None:
        rows.append(("JSON Files Parsed", report.input_meta.parsed_json_count))
    rows.extend(
        [
            ("Total Records Read", report.total_records_read),
            ("Song Records Used", report.song_records_used),
            ("Ignored Non-song Records", report.ignored_non_song),
            ("Ignored Bad Timestamp Records", report.ignored_bad_timestamp),
            ("Unique Songs", report.unique_songs),
            ("Total Minutes Listened", round2(report.total_minutes)),
            ("Total Hours Listened", round2(report.total_hours)),
            ("Data Range", report.data_range),
            ("Month With Most Minutes", peak_month),
            ("Year With Most Minutes", peak_year),
        ]
    )
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def report_to_frames(
    report: Report, generated_at: dt.datetime | None = None
) -> dict[str, pd.DataFrame]:
    """Build one display frame per workbook sheet, keyed by sheet name.

    Rankings are already ordered and capped in the report; rows are only
    numbered and rounded here (minutes/hours to 2 places, rates to 4).
    """
    generated_at = generated_at or dt.datetime.now(dt.timezone.utc)

    songs = pd.DataFrame(
        [
            (
                row.song,
                row.artist,
                row.album,
                row.uri,
                row.play_count,
                row.skip_count,
                round4(row.skip_rate),
                round2(row.total_minutes),
                round2(row.total_hours),
            )
            for row in report.song_rows
        ],
        columns=[
            "Song",
            "Artist",
            "Album",
            "Spotify Track URI",
            "Play Count",
            "Skip Count",
            "Skip Rate (0-1)",
            "Total Minutes Listened",
            "Total Hours Listened",
        ],
    )

    top_plays = pd.DataFrame(
        [
            (rank, row.song, row.artist, row.play_count, round2(row.total_minutes), row.skip_count)
            for rank, row in enumerate(report.top10_by_play_count, start=1)
        ],
        columns=["Rank", "Song", "Artist", "Play Count", "Total Minutes", "Skip Count"],
    )

    top_time = pd.DataFrame(
        [
            (rank, row.song, row.artist, round2(row.total_minutes), row.play_count, row.skip_count)
            for rank, row in enumerate(report.top10_by_time, start=1)
        ],
        columns=["Rank", "Song", "Artist", "Total Minutes", "Play Count", "Skip Count"],
    )

    top_skipped = pd.DataFrame(
        [
            (
                rank,
                row.song,
                row.artist,
                row.skip_count,
                row.play_count,
                round4(row.skip_rate),
                round2(row.total_minutes),
            )
            for rank, row in enumerate(report.top10_skipped, start=1)
        ],
        columns=[
            "Rank",
            "Song",
            "Artist",
            "Skip Count",
            "Play Count",
            "Skip Rate (0-1)",
            "Total Minutes",
        ],
    )

    top_artists = pd.DataFrame(
        [
            (rank, row.artist, row.play_count, row.skip_count, round2(row.total_minutes))
            for rank, row in enumerate(report.top_artists_by_time, start=1)
        ],
        columns=["Rank", "Artist", "Play Count", "Skip Count", "Total Minutes"],
    )

    per_month = pd.DataFrame(
        [
            (row.month, row.rank, row.song, row.artist, row.play_count, round2(row.minutes_listened))
            for row in report.top3_per_month
        ],
        columns=["Month", "Rank", "Song", "Artist", "Play Count", "Minutes Listened"],
    )

    monthly = pd.DataFrame(
        [(row.month, round2(row.minutes), round2(row.hours)) for row in report.monthly_totals],
        columns=["Month", "Minutes Listened", "Hours Listened"],
    )

    yearly = pd.DataFrame(
        [(row.year, round2(row.minutes), round2(row.hours)) for row in report.yearly_totals],
        columns=["Year", "Minutes Listened", "Hours Listened"],
    )

    return {
        "Summary": _summary_frame(report, generated_at),
        "Songs_Play_Counts": songs,
        "Top10_Play_Count": top_plays,
        "Top10_Listen_Time": top_time,
        "Top10_Skipped": top_skipped,
        "Top10_Artists": top_artists,
        "Top3_Per_Month": per_month,
        "Monthly_Minutes": monthly,
        "Yearly_Minutes": yearly,
    }


def column_widths(frame: pd.DataFrame) -> list[int]:
    """Character widths fitting each column's header and values."""
    widths = []
    for column in frame.columns:
        longest = max(
            [len(str(column))] + [len(str(value)) for value in frame[column].tolist()]
        )
        widths.append(min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH))
    return widths


def default_report_filename(now: dt.datetime | None = None) -> str:
    now = now or dt.datetime.now()
    return f"spotify_report_full_{now.strftime('%Y%m%d_%H%M%S')}.xlsx"


def export_excel_report(
    report: Report,
    path: str | Path,
    *,
    generated_at: dt.datetime | None = None,
) -> Path:
    """Write the report workbook (one sheet per frame) and return its path."""
    from openpyxl.utils import get_column_letter

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frames = report_to_frames(report, generated_at=generated_at)

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, frame in frames.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            for index, width in enumerate(column_widths(frame), start=1):
                worksheet.column_dimensions[get_column_letter(index)].width = width
            worksheet.auto_filter.ref = worksheet.dimensions

    logger.info("Excel report written to %s", path)
    return path


__all__ = [
    "column_widths",
    "default_report_filename",
    "export_excel_report",
    "report_to_frames",
]
