import pytest


def make_record(
    song="Song X",
    artist="Artist A",
    *,
    album="Album 1",
    uri="spotify:track:0000000000000000000001",
    ms_played=1000,
    skipped=False,
    ts="2023-05-01T10:00:00Z",
    **extra,
):
    """Build a raw streaming-history record shaped like the Spotify export."""
    record = {
        "ts": ts,
        "ms_played": ms_played,
        "master_metadata_track_name": song,
        "master_metadata_album_artist_name": artist,
        "master_metadata_album_album_name": album,
        "spotify_track_uri": uri,
        "episode_name": None,
        "spotify_episode_uri": None,
        "skipped": skipped,
    }
    record.update(extra)
    return record


def make_podcast_record(**extra):
    record = {
        "ts": "2023-05-01T10:00:00Z",
        "ms_played": 600_000,
        "master_metadata_track_name": None,
        "master_metadata_album_artist_name": None,
        "master_metadata_album_album_name": None,
        "spotify_track_uri": None,
        "episode_name": "Episode 12",
        "spotify_episode_uri": "spotify:episode:abc",
        "skipped": None,
    }
    record.update(extra)
    return record


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def podcast_factory():
    return make_podcast_record


@pytest.fixture
def sample_records():
    return [
        make_record("Song X", "Artist A", ms_played=1000, ts="2023-05-01T10:00:00Z"),
        make_record("Song X", "Artist A", ms_played=2000, ts="2023-05-02T10:00:00Z", skipped=True),
        make_record("Song X", "Artist A", ms_played=3000, ts="2023-06-01T10:00:00Z"),
        make_record("Song Y", "Artist B", album="Album 2", ms_played=10_000, ts="2023-06-03T08:00:00Z"),
        make_record("Song Z", "Artist A", album="Album 3", ms_played=500, ts="2024-01-15T12:00:00Z"),
        make_podcast_record(),
        make_record("Song Y", "Artist B", ts="not a timestamp"),
    ]
