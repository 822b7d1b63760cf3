import contextlib
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import pandas as pd

from listening_report.metrics.aggregation import AggregationState
from listening_report.metrics.utils import format_month_label, ms_to_hours, ms_to_minutes
from listening_report.preprocessing import ListeningEvent, is_song_record, normalize_event

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MONTHLY_BREAKDOWN_COLUMNS = [
    "month",
    "unique_tracks",
    "unique_artists",
    "total_hours",
    "avg_hours_per_day",
]


@dataclass(frozen=True)
class MonthlyTotal:
    month: str
    total_ms: int

    @property
    def key(self) -> str:
        return self.month

    @property
    def month_label(self) -> str:
        return format_month_label(self.month)

    @property
    def minutes(self) -> float:
        return ms_to_minutes(self.total_ms)

    @property
    def hours(self) -> float:
        return ms_to_hours(self.total_ms)


@dataclass(frozen=True)
class YearlyTotal:
    year: int
    total_ms: int

    @property
    def key(self) -> str:
        return str(self.year)

    @property
    def minutes(self) -> float:
        return ms_to_minutes(self.total_ms)

    @property
    def hours(self) -> float:
        return ms_to_hours(self.total_ms)


PeriodT = TypeVar("PeriodT", MonthlyTotal, YearlyTotal)


def monthly_totals(state: AggregationState) -> tuple[MonthlyTotal, ...]:
    """Listening time per UTC calendar month, months ascending."""
    return tuple(
        MonthlyTotal(month=month, total_ms=total_ms)
        for month, total_ms in sorted(state.monthly_ms.items())
    )


def yearly_totals(state: AggregationState) -> tuple[YearlyTotal, ...]:
    """Listening time per UTC calendar year, years ascending."""
    return tuple(
        YearlyTotal(year=year, total_ms=total_ms)
        for year, total_ms in sorted(state.yearly_ms.items())
    )


def pick_peak(rows: Sequence[PeriodT]) -> PeriodT | None:
    """Period with the most listening time.

    Ties go to the period whose key, compared as a string, is greatest
    (the later month or year). Returns None for an empty series.
    """
    if not rows:
        return None
    return max(rows, key=lambda row: (row.total_ms, row.key))


def collect_events(records: Iterable[Mapping[str, Any]]) -> Iterator[ListeningEvent]:
    """Yield the accepted song events of a raw record stream."""
    for record in records:
        if not is_song_record(record):
            continue
        event = normalize_event(record)
        if event is not None:
            yield event


def events_frame(events: Iterable[ListeningEvent]) -> pd.DataFrame:
    rows = [
        (event.timestamp.tz_convert(None), event.ms_played, event.song, event.artist)
        for event in events
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "ts",
            "ms_played",
            "master_metadata_track_name",
            "master_metadata_album_artist_name",
        ],
    )


def get_listening_time_by_month(
    events: Iterable[ListeningEvent],
    *,
    db_path: str | Path | None = None,
    con: Any | None = None,
) -> pd.DataFrame:
    """Calculate listening statistics by month with DuckDB.

    Args:
        events: Accepted listening events (see `collect_events`).
        db_path: Optional DuckDB database path if `con` not provided.
        con: DuckDB connection to use. An in-memory connection is opened
            when neither `con` nor `db_path` is given.

    Returns:
        pd.DataFrame: Monthly listening statistics with columns:
            - month (str): Year-month in 'YYYY-MM' format (UTC)
            - unique_tracks (int): Number of unique (track, artist) pairs
            - unique_artists (int): Number of unique artists
            - total_hours (float): Total listening time in hours
            - avg_hours_per_day (float): Average listening time per day
    """
    df = events_frame(events)

    # Empty input → empty output with stable columns
    if df.empty:
        return pd.DataFrame(columns=MONTHLY_BREAKDOWN_COLUMNS)

    import duckdb

    close_conn = False
    if con is None:
        con = duckdb.connect(str(db_path) if db_path is not None else ":memory:")
        close_conn = True

    try:
        rel = "df_monthly_in"
        with contextlib.suppress(Exception):
            con.unregister(rel)
        con.register(rel, df)

        sql = f"""
            WITH base AS (
                SELECT strftime(ts, '%Y-%m') AS month,
                       ms_played,
                       master_metadata_track_name AS track,
                       master_metadata_album_artist_name AS artist
                FROM {rel}
            ), monthly AS (
                SELECT month,
                       SUM(ms_played) AS ms_played,
                       COUNT(DISTINCT artist) AS unique_artists
                FROM base
                GROUP BY 1
            ), tracks AS (
                SELECT month, COUNT(*) AS unique_tracks
                FROM (SELECT DISTINCT month, track, artist FROM base)
                GROUP BY 1
            ), days AS (
                SELECT month,
                       CAST(EXTRACT(day FROM (date_trunc('month', strptime(month || '-01', '%Y-%m-%d'))
                              + INTERVAL 1 MONTH - INTERVAL 1 DAY)) AS INTEGER) AS days_in_month
                FROM monthly
            )
            SELECT m.month,
                   CAST(t.unique_tracks AS INTEGER) AS unique_tracks,
                   CAST(m.unique_artists AS INTEGER) AS unique_artists,
                   ROUND(m.ms_played / (1000.0 * 60.0 * 60.0), 2) AS total_hours,
                   ROUND((m.ms_played / (1000.0 * 60.0 * 60.0)) / NULLIF(d.days_in_month, 0), 2) AS avg_hours_per_day
            FROM monthly m
            JOIN tracks t USING (month)
            JOIN days d USING (month)
            ORDER BY m.month
        """
        out = con.execute(sql).df().reset_index(drop=True)
        logger.debug("Monthly breakdown covers %d months", len(out))
        return out
    finally:
        with contextlib.suppress(Exception):
            con.unregister(rel)
        if close_conn:
            con.close()


__all__ = [
    "MonthlyTotal",
    "YearlyTotal",
    "collect_events",
    "events_frame",
    "get_listening_time_by_month",
    "monthly_totals",
    "pick_peak",
    "yearly_totals",
]
