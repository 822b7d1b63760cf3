"""Ranked views over finished aggregation state.

Every ordering is a total order: the numeric keys are followed by the
artist and song names, which are unique per accumulated entry, so the
output never depends on the order records were seen in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import pandas as pd

from listening_report.metrics.aggregation import AggregationState
from listening_report.metrics.utils import (
    format_month_label,
    ms_to_hours,
    ms_to_minutes,
    safe_rate,
)

TOP_N = 10
TOP_PER_MONTH = 3

# (column, ascending) pairs
BY_PLAY_COUNT = (
    ("play_count", False),
    ("total_ms", False),
    ("skip_count", False),
    ("artist", True),
    ("song", True),
)
BY_LISTEN_TIME = (
    ("total_ms", False),
    ("play_count", False),
    ("artist", True),
    ("song", True),
)
BY_SKIP_COUNT = (
    ("skip_count", False),
    ("play_count", False),
    ("artist", True),
    ("song", True),
)
MONTHLY_RANK = (
    ("month", True),
    ("play_count", False),
    ("total_ms", False),
    ("artist", True),
    ("song", True),
)
ARTIST_BY_TIME = (
    ("total_ms", False),
    ("play_count", False),
    ("artist", True),
)

SONG_COLUMNS = ["song", "artist", "album", "uri", "play_count", "skip_count", "total_ms"]
ARTIST_COLUMNS = ["artist", "play_count", "skip_count", "total_ms"]
MONTHLY_SONG_COLUMNS = ["month", "song", "artist", "play_count", "total_ms"]


@dataclass(frozen=True)
class SongRow:
    song: str
    artist: str
    album: str
    uri: str
    play_count: int
    skip_count: int
    total_ms: int

    @property
    def skip_rate(self) -> float:
        return safe_rate(self.skip_count, self.play_count)

    @property
    def total_minutes(self) -> float:
        return ms_to_minutes(self.total_ms)

    @property
    def total_hours(self) -> float:
        return ms_to_hours(self.total_ms)


@dataclass(frozen=True)
class ArtistRow:
    artist: str
    play_count: int
    skip_count: int
    total_ms: int

    @property
    def skip_rate(self) -> float:
        return safe_rate(self.skip_count, self.play_count)

    @property
    def total_minutes(self) -> float:
        return ms_to_minutes(self.total_ms)

    @property
    def total_hours(self) -> float:
        return ms_to_hours(self.total_ms)


@dataclass(frozen=True)
class MonthlyTopRow:
    month: str
    rank: int
    song: str
    artist: str
    play_count: int
    total_ms: int

    @property
    def month_label(self) -> str:
        return format_month_label(self.month)

    @property
    def minutes_listened(self) -> float:
        return ms_to_minutes(self.total_ms)

    @property
    def hours_listened(self) -> float:
        return ms_to_hours(self.total_ms)


def _sort(frame: pd.DataFrame, order: Sequence[tuple[str, bool]]) -> pd.DataFrame:
    return frame.sort_values(
        by=[column for column, _ in order],
        ascending=[ascending for _, ascending in order],
        kind="mergesort",
    ).reset_index(drop=True)


def _head(frame: pd.DataFrame, limit: int | None) -> pd.DataFrame:
    if limit is None:
        return frame
    return frame.head(max(int(limit), 0))


def song_frame(state: AggregationState) -> pd.DataFrame:
    """One row per song with its representative album and track URI."""
    rows = [
        (
            acc.song,
            acc.artist,
            acc.representative_album,
            acc.representative_uri,
            acc.play_count,
            acc.skip_count,
            acc.total_ms,
        )
        for acc in state.songs.values()
    ]
    return pd.DataFrame(rows, columns=SONG_COLUMNS)


def artist_frame(state: AggregationState) -> pd.DataFrame:
    rows = [
        (acc.artist, acc.play_count, acc.skip_count, acc.total_ms)
        for acc in state.artists.values()
    ]
    return pd.DataFrame(rows, columns=ARTIST_COLUMNS)


def monthly_song_frame(state: AggregationState) -> pd.DataFrame:
    rows = [
        (month, key.song, key.artist, acc.play_count, acc.total_ms)
        for month, songs in state.monthly_songs.items()
        for key, acc in songs.items()
    ]
    return pd.DataFrame(rows, columns=MONTHLY_SONG_COLUMNS)


def _song_rows(frame: pd.DataFrame) -> tuple[SongRow, ...]:
    return tuple(
        SongRow(
            song=row.song,
            artist=row.artist,
            album=row.album,
            uri=row.uri,
            play_count=int(row.play_count),
            skip_count=int(row.skip_count),
            total_ms=int(row.total_ms),
        )
        for row in frame.itertuples(index=False)
    )


def rank_songs_by_play_count(
    state: AggregationState, limit: int | None = None
) -> tuple[SongRow, ...]:
    """Song table ordered by plays, then time, skips, artist and title."""
    return _song_rows(_head(_sort(song_frame(state), BY_PLAY_COUNT), limit))


def top_songs_by_play_count(state: AggregationState, limit: int = TOP_N) -> tuple[SongRow, ...]:
    return rank_songs_by_play_count(state, limit=limit)


def top_songs_by_time(state: AggregationState, limit: int = TOP_N) -> tuple[SongRow, ...]:
    """Songs ordered by total listening time, then plays, artist and title."""
    return _song_rows(_head(_sort(song_frame(state), BY_LISTEN_TIME), limit))


def top_skipped_songs(state: AggregationState, limit: int = TOP_N) -> tuple[SongRow, ...]:
    """Songs skipped at least once, ordered by skips, then plays, artist and title."""
    frame = song_frame(state)
    frame = frame.loc[frame["skip_count"] > 0]
    return _song_rows(_head(_sort(frame, BY_SKIP_COUNT), limit))


def top_songs_per_month(
    state: AggregationState, limit: int = TOP_PER_MONTH
) -> tuple[MonthlyTopRow, ...]:
    """Top songs of every month, months ascending, ranks numbered from 1.

    Within a month songs are ordered by plays, then listening time, artist
    and title.
    """
    ranked = _sort(monthly_song_frame(state), MONTHLY_RANK)
    ranked = ranked.groupby("month", sort=False).head(max(int(limit), 0))
    ranks = ranked.groupby("month", sort=False).cumcount() + 1

    return tuple(
        MonthlyTopRow(
            month=row.month,
            rank=int(rank),
            song=row.song,
            artist=row.artist,
            play_count=int(row.play_count),
            total_ms=int(row.total_ms),
        )
        for row, rank in zip(ranked.itertuples(index=False), ranks)
    )


def top_artists_by_time(state: AggregationState, limit: int = TOP_N) -> tuple[ArtistRow, ...]:
    """Artists ordered by total listening time, then plays and name."""
    frame = _head(_sort(artist_frame(state), ARTIST_BY_TIME), limit)
    return tuple(
        ArtistRow(
            artist=row.artist,
            play_count=int(row.play_count),
            skip_count=int(row.skip_count),
            total_ms=int(row.total_ms),
        )
        for row in frame.itertuples(index=False)
    )


__all__ = [
    "ArtistRow",
    "MonthlyTopRow",
    "SongRow",
    "artist_frame",
    "monthly_song_frame",
    "rank_songs_by_play_count",
    "song_frame",
    "top_artists_by_time",
    "top_skipped_songs",
    "top_songs_by_play_count",
    "top_songs_by_time",
    "top_songs_per_month",
]
