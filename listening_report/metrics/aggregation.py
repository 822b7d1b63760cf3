"""Single-pass accumulation of listening events.

All totals live in explicit accumulator objects so that a history can be
folded in one go (`aggregate_records`) or in consecutive partitions that are
merged afterwards (`AggregationState.merge`). Counts and sums merge in any
order; the album/URI counters keep first-seen order, so partitions must be
merged in the order they appear in the input to reproduce a sequential run.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from listening_report.preprocessing import (
    ListeningEvent,
    RejectReason,
    SongKey,
    is_song_record,
    normalize_event,
)

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def most_common_key(counter: Counter[str]) -> str:
    """Most frequent key; ties go to the key inserted first. "" when empty."""
    if not counter:
        return ""
    return counter.most_common(1)[0][0]


@dataclass
class SongAccumulator:
    song: str
    artist: str
    play_count: int = 0
    skip_count: int = 0
    total_ms: int = 0
    albums: Counter[str] = field(default_factory=Counter)
    uris: Counter[str] = field(default_factory=Counter)

    def add(self, event: ListeningEvent) -> None:
        self.play_count += 1
        self.skip_count += int(event.skipped)
        self.total_ms += event.ms_played
        if event.album:
            self.albums[event.album] += 1
        if event.track_uri:
            self.uris[event.track_uri] += 1

    def merge(self, other: SongAccumulator) -> None:
        self.play_count += other.play_count
        self.skip_count += other.skip_count
        self.total_ms += other.total_ms
        self.albums.update(other.albums)
        self.uris.update(other.uris)

    @property
    def representative_album(self) -> str:
        return most_common_key(self.albums)

    @property
    def representative_uri(self) -> str:
        return most_common_key(self.uris)


@dataclass
class ArtistAccumulator:
    artist: str
    play_count: int = 0
    skip_count: int = 0
    total_ms: int = 0

    def add(self, event: ListeningEvent) -> None:
        self.play_count += 1
        self.skip_count += int(event.skipped)
        self.total_ms += event.ms_played

    def merge(self, other: ArtistAccumulator) -> None:
        self.play_count += other.play_count
        self.skip_count += other.skip_count
        self.total_ms += other.total_ms


@dataclass
class MonthlySongAccumulator:
    play_count: int = 0
    total_ms: int = 0

    def add(self, event: ListeningEvent) -> None:
        self.play_count += 1
        self.total_ms += event.ms_played

    def merge(self, other: MonthlySongAccumulator) -> None:
        self.play_count += other.play_count
        self.total_ms += other.total_ms


@dataclass
class AggregationState:
    """Running totals for one history, plus input provenance counters."""

    songs: dict[SongKey, SongAccumulator] = field(default_factory=dict)
    artists: dict[str, ArtistAccumulator] = field(default_factory=dict)
    monthly_songs: dict[str, dict[SongKey, MonthlySongAccumulator]] = field(
        default_factory=dict
    )
    monthly_ms: dict[str, int] = field(default_factory=dict)
    yearly_ms: dict[int, int] = field(default_factory=dict)
    total_records_read: int = 0
    song_records_used: int = 0
    ignored_non_song: int = 0
    ignored_bad_timestamp: int = 0

    def add_event(self, event: ListeningEvent) -> None:
        key = event.song_key
        month = event.month
        year = event.year

        song = self.songs.get(key)
        if song is None:
            song = self.songs[key] = SongAccumulator(song=event.song, artist=event.artist)
        song.add(event)

        artist = self.artists.get(event.artist)
        if artist is None:
            artist = self.artists[event.artist] = ArtistAccumulator(artist=event.artist)
        artist.add(event)

        month_songs = self.monthly_songs.setdefault(month, {})
        month_song = month_songs.get(key)
        if month_song is None:
            month_song = month_songs[key] = MonthlySongAccumulator()
        month_song.add(event)

        self.monthly_ms[month] = self.monthly_ms.get(month, 0) + event.ms_played
        self.yearly_ms[year] = self.yearly_ms.get(year, 0) + event.ms_played
        self.song_records_used += 1

    def add_record(self, record: Mapping[str, Any]) -> RejectReason | None:
        """Classify, normalize and fold one raw record.

        Returns the reason the record was skipped, or None if it was used.
        """
        self.total_records_read += 1
        if not is_song_record(record):
            self.ignored_non_song += 1
            return RejectReason.NON_SONG

        event = normalize_event(record)
        if event is None:
            self.ignored_bad_timestamp += 1
            return RejectReason.BAD_TIMESTAMP

        self.add_event(event)
        return None

    def merge(self, other: AggregationState) -> AggregationState:
        """Fold `other` (a later slice of the same input) into this state."""
        for key, acc in other.songs.items():
            mine = self.songs.get(key)
            if mine is None:
                mine = self.songs[key] = SongAccumulator(song=acc.song, artist=acc.artist)
            mine.merge(acc)

        for name, acc in other.artists.items():
            mine_artist = self.artists.get(name)
            if mine_artist is None:
                mine_artist = self.artists[name] = ArtistAccumulator(artist=name)
            mine_artist.merge(acc)

        for month, songs in other.monthly_songs.items():
            month_songs = self.monthly_songs.setdefault(month, {})
            for key, acc in songs.items():
                month_songs.setdefault(key, MonthlySongAccumulator()).merge(acc)

        for month, ms in other.monthly_ms.items():
            self.monthly_ms[month] = self.monthly_ms.get(month, 0) + ms
        for year, ms in other.yearly_ms.items():
            self.yearly_ms[year] = self.yearly_ms.get(year, 0) + ms

        self.total_records_read += other.total_records_read
        self.song_records_used += other.song_records_used
        self.ignored_non_song += other.ignored_non_song
        self.ignored_bad_timestamp += other.ignored_bad_timestamp
        return self

    @property
    def total_song_ms(self) -> int:
        return sum(acc.total_ms for acc in self.songs.values())


def aggregate_records(
    records: Iterable[Mapping[str, Any]],
    state: AggregationState | None = None,
) -> AggregationState:
    """Fold every raw record into an `AggregationState` in one forward pass."""
    state = state if state is not None else AggregationState()
    for record in records:
        state.add_record(record)

    logger.info(
        "Aggregated %d records: %d used, %d non-song, %d bad timestamp",
        state.total_records_read,
        state.song_records_used,
        state.ignored_non_song,
        state.ignored_bad_timestamp,
    )
    return state


__all__ = [
    "AggregationState",
    "ArtistAccumulator",
    "MonthlySongAccumulator",
    "SongAccumulator",
    "SongKey",
    "aggregate_records",
    "most_common_key",
]
