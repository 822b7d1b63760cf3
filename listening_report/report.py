"""Assemble the final listening report from raw history records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from listening_report.metrics.aggregation import AggregationState, aggregate_records
from listening_report.metrics.ranking import (
    ArtistRow,
    MonthlyTopRow,
    SongRow,
    rank_songs_by_play_count,
    top_artists_by_time,
    top_skipped_songs,
    top_songs_by_play_count,
    top_songs_by_time,
    top_songs_per_month,
)
from listening_report.metrics.trends import (
    MonthlyTotal,
    YearlyTotal,
    monthly_totals,
    pick_peak,
    yearly_totals,
)
from listening_report.metrics.utils import NOT_AVAILABLE, ms_to_hours, ms_to_minutes

if TYPE_CHECKING:
    from listening_report.io import InputMeta

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class NoUsableRecordsError(ValueError):
    """Raised when no song play survives classification and normalization."""

    def __init__(
        self,
        total_records_read: int,
        ignored_non_song: int,
        ignored_bad_timestamp: int,
    ) -> None:
        self.total_records_read = total_records_read
        self.ignored_non_song = ignored_non_song
        self.ignored_bad_timestamp = ignored_bad_timestamp
        super().__init__(
            "No usable song records found "
            f"(read={total_records_read}, non_song={ignored_non_song}, "
            f"bad_timestamp={ignored_bad_timestamp})."
        )


@dataclass(frozen=True)
class Report:
    total_records_read: int
    song_records_used: int
    ignored_non_song: int
    ignored_bad_timestamp: int
    unique_songs: int
    total_song_ms: int
    peak_month: MonthlyTotal | None
    peak_year: YearlyTotal | None
    data_range: str
    song_rows: tuple[SongRow, ...]
    top10_by_play_count: tuple[SongRow, ...]
    top10_by_time: tuple[SongRow, ...]
    top10_skipped: tuple[SongRow, ...]
    top3_per_month: tuple[MonthlyTopRow, ...]
    monthly_totals: tuple[MonthlyTotal, ...]
    yearly_totals: tuple[YearlyTotal, ...]
    top_artists_by_time: tuple[ArtistRow, ...]
    input_meta: InputMeta | None = None

    @property
    def total_minutes(self) -> float:
        return ms_to_minutes(self.total_song_ms)

    @property
    def total_hours(self) -> float:
        return ms_to_hours(self.total_song_ms)


def format_data_range(months: tuple[MonthlyTotal, ...]) -> str:
    """'May 2023 - Jan 2024' from the first and last month, or 'N/A'."""
    if not months:
        return NOT_AVAILABLE
    return f"{months[0].month_label} - {months[-1].month_label}"


def assemble_report(state: AggregationState, input_meta: InputMeta | None = None) -> Report:
    """Derive every ranked view and total from a finished aggregation.

    Raises:
        NoUsableRecordsError: If the state holds no accepted song plays.
    """
    if state.song_records_used == 0:
        raise NoUsableRecordsError(
            total_records_read=state.total_records_read,
            ignored_non_song=state.ignored_non_song,
            ignored_bad_timestamp=state.ignored_bad_timestamp,
        )

    months = monthly_totals(state)
    years = yearly_totals(state)
    song_rows = rank_songs_by_play_count(state)

    report = Report(
        total_records_read=state.total_records_read,
        song_records_used=state.song_records_used,
        ignored_non_song=state.ignored_non_song,
        ignored_bad_timestamp=state.ignored_bad_timestamp,
        unique_songs=len(song_rows),
        total_song_ms=sum(row.total_ms for row in song_rows),
        peak_month=pick_peak(months),
        peak_year=pick_peak(years),
        data_range=format_data_range(months),
        song_rows=song_rows,
        top10_by_play_count=top_songs_by_play_count(state),
        top10_by_time=top_songs_by_time(state),
        top10_skipped=top_skipped_songs(state),
        top3_per_month=top_songs_per_month(state),
        monthly_totals=months,
        yearly_totals=years,
        top_artists_by_time=top_artists_by_time(state),
        input_meta=input_meta,
    )
    logger.info(
        "Built report: %d unique songs, %.2f hours, range %s",
        report.unique_songs,
        report.total_hours,
        report.data_range,
    )
    return report


def build_report(
    records: Iterable[Mapping[str, Any]],
    input_meta: InputMeta | None = None,
) -> Report:
    """Aggregate raw history records and assemble the report in one call.

    Raises:
        NoUsableRecordsError: If no record is a song play with a valid timestamp.
    """
    return assemble_report(aggregate_records(records), input_meta=input_meta)


__all__ = [
    "NoUsableRecordsError",
    "Report",
    "assemble_report",
    "build_report",
    "format_data_range",
]
