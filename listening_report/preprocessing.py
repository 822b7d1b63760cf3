"""Classification and normalization of raw streaming-history records.

Raw records are the JSON objects of a Spotify extended streaming history
export. Values are loosely typed: any field may be missing, null, or of an
unexpected type. The helpers below never raise on bad values; they coerce
to a neutral default instead, and the only rejection a song record can
suffer here is an unparseable timestamp.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

import pandas as pd

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

TRACK_NAME_FIELD = "master_metadata_track_name"
ARTIST_NAME_FIELD = "master_metadata_album_artist_name"
ALBUM_NAME_FIELD = "master_metadata_album_album_name"
TRACK_URI_FIELD = "spotify_track_uri"
EPISODE_NAME_FIELD = "episode_name"
EPISODE_URI_FIELD = "spotify_episode_uri"

# pandas also accepts words such as "now" and "today"; an ISO date starts with digits.
_ISO_DATE_PREFIX = re.compile(r"\d{4}-?\d{2}")
# Years whose whole range fits pandas nanosecond timestamps.
_FAST_PATH_YEARS = range(1678, 2262)


class RejectReason(str, enum.Enum):
    NON_SONG = "non_song"
    BAD_TIMESTAMP = "bad_timestamp"


class SongKey(NamedTuple):
    """Identity of a song: exact (trimmed, case-sensitive) title and artist."""

    song: str
    artist: str


@dataclass(frozen=True)
class ListeningEvent:
    song: str
    artist: str
    album: str
    track_uri: str
    ms_played: int
    skipped: bool
    timestamp: pd.Timestamp

    @property
    def song_key(self) -> SongKey:
        return SongKey(self.song, self.artist)

    @property
    def month(self) -> str:
        return month_key(self.timestamp)

    @property
    def year(self) -> int:
        return year_key(self.timestamp)


def clean_string(value: Any) -> str:
    """Return the trimmed string, or "" for anything that is not a string."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def _number_from_text(text: str) -> float:
    """Parse a numeric string the way JSON producers write numbers.

    Hex, octal and binary literals (`0x10`) are accepted; digit-group
    underscores (`1_000`) are not.
    """
    if "_" in text:
        raise ValueError(f"Not a number: {text!r}")
    if text[:2].lower() in ("0x", "0o", "0b"):
        return float(int(text, 0))
    return float(text)


def sanitize_ms(value: Any) -> int:
    """Coerce a played duration to a non-negative integer of milliseconds.

    Numeric strings are parsed, booleans count as 0/1, and null, blank or
    unparseable values become 0. Non-finite and negative durations (including
    integers too large for a float) are clamped to 0; everything else is
    rounded half up to the nearest integer.
    """
    if value is None:
        return 0
    try:
        if isinstance(value, (bool, int, float)):
            num = float(value)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return 0
            num = _number_from_text(text)
        else:
            return 0
    except (OverflowError, ValueError):
        return 0

    if not math.isfinite(num) or num < 0:
        return 0
    return int(math.floor(num + 0.5))


def coerce_skipped(value: Any) -> bool:
    """Truthiness of the raw `skipped` value (NaN counts as false)."""
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _parse_iso(text: str) -> pd.Timestamp | None:
    if not _ISO_DATE_PREFIX.match(text):
        return None

    try:
        fast = dt.datetime.fromisoformat(text)
    except ValueError:
        fast = None
    if fast is not None and fast.year in _FAST_PATH_YEARS:
        ts = pd.Timestamp(fast)
        return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")

    parsed = pd.to_datetime(text, format="ISO8601", utc=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed


def parse_timestamp(value: Any) -> pd.Timestamp | None:
    """Parse the `ts` field into a UTC timestamp.

    A direct ISO-8601 parse is tried first. If that fails, the text is
    repaired (first space becomes the `T` separator when there is none, and
    a `Z` zone marker is appended when missing) and parsed again. Naive
    timestamps are taken to be UTC. Returns None when both attempts fail or
    the value is missing or blank.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()

    parsed = _parse_iso(text)
    if parsed is not None:
        return parsed

    repaired = text if "T" in text else text.replace(" ", "T", 1)
    if not repaired.endswith("Z"):
        repaired = f"{repaired}Z"
    return _parse_iso(repaired)


def month_key(ts: pd.Timestamp) -> str:
    """UTC calendar month as 'YYYY-MM'."""
    ts = ts.tz_convert("UTC") if ts.tzinfo is not None else ts
    return f"{ts.year:04d}-{ts.month:02d}"


def year_key(ts: pd.Timestamp) -> int:
    ts = ts.tz_convert("UTC") if ts.tzinfo is not None else ts
    return int(ts.year)


def is_song_record(record: Mapping[str, Any]) -> bool:
    """Decide whether a raw record is a qualifying song play.

    Track and artist names must be non-empty after trimming, and the record
    must not carry an episode name or episode URI (podcast plays sometimes
    carry track metadata as well).
    """
    if not clean_string(record.get(TRACK_NAME_FIELD)):
        return False
    if not clean_string(record.get(ARTIST_NAME_FIELD)):
        return False
    if clean_string(record.get(EPISODE_NAME_FIELD)) or clean_string(
        record.get(EPISODE_URI_FIELD)
    ):
        return False
    return True


def normalize_event(record: Mapping[str, Any]) -> ListeningEvent | None:
    """Build a `ListeningEvent` from a record already classified as a song.

    Returns None when the timestamp cannot be parsed.
    """
    timestamp = parse_timestamp(record.get("ts"))
    if timestamp is None:
        logger.debug("Rejected record with bad timestamp: %r", record.get("ts"))
        return None

    return ListeningEvent(
        song=clean_string(record.get(TRACK_NAME_FIELD)),
        artist=clean_string(record.get(ARTIST_NAME_FIELD)),
        album=clean_string(record.get(ALBUM_NAME_FIELD)),
        track_uri=clean_string(record.get(TRACK_URI_FIELD)),
        ms_played=sanitize_ms(record.get("ms_played")),
        skipped=coerce_skipped(record.get("skipped")),
        timestamp=timestamp,
    )


__all__ = [
    "ListeningEvent",
    "RejectReason",
    "SongKey",
    "clean_string",
    "coerce_skipped",
    "is_song_record",
    "month_key",
    "normalize_event",
    "parse_timestamp",
    "sanitize_ms",
    "year_key",
]
