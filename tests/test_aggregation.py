from collections import Counter

from listening_report.metrics.aggregation import (
    AggregationState,
    SongKey,
    aggregate_records,
    most_common_key,
)
from listening_report.preprocessing import RejectReason


def test_scenario_three_plays_one_skip(record_factory):
    records = [
        record_factory(ms_played=1000),
        record_factory(ms_played=2000, skipped=True),
        record_factory(ms_played=3000),
    ]
    state = aggregate_records(records)

    song = state.songs[SongKey("Song X", "Artist A")]
    assert song.play_count == 3
    assert song.total_ms == 6000
    assert song.skip_count == 1

    artist = state.artists["Artist A"]
    assert (artist.play_count, artist.skip_count, artist.total_ms) == (3, 1, 6000)


def test_provenance_counters(sample_records):
    state = aggregate_records(sample_records)

    assert state.total_records_read == 7
    assert state.song_records_used == 5
    assert state.ignored_non_song == 1
    assert state.ignored_bad_timestamp == 1
    assert (
        state.song_records_used + state.ignored_non_song + state.ignored_bad_timestamp
        == state.total_records_read
    )


def test_add_record_reports_reason(record_factory, podcast_factory):
    state = AggregationState()
    assert state.add_record(record_factory()) is None
    assert state.add_record(podcast_factory()) is RejectReason.NON_SONG
    assert state.add_record(record_factory(ts="??")) is RejectReason.BAD_TIMESTAMP


def test_song_identity_ignores_album_and_uri(record_factory):
    state = aggregate_records(
        [
            record_factory(album="Deluxe", uri="spotify:track:1"),
            record_factory(album="Original", uri="spotify:track:2"),
            record_factory(song=" Song X  ", album="Original", uri="spotify:track:2"),
        ]
    )
    assert list(state.songs) == [SongKey("Song X", "Artist A")]
    assert state.songs[SongKey("Song X", "Artist A")].play_count == 3


def test_song_identity_is_case_sensitive(record_factory):
    state = aggregate_records([record_factory(song="Song X"), record_factory(song="song x")])
    assert len(state.songs) == 2


def test_song_identity_has_no_separator_collisions(record_factory):
    state = aggregate_records(
        [
            record_factory(song="A|B", artist="C"),
            record_factory(song="A", artist="B|C"),
        ]
    )
    assert len(state.songs) == 2


def test_representative_album_is_most_frequent_first_seen_on_tie(record_factory):
    albums = ["Live", "Studio", "Studio", "Live", "Bonus"]
    state = aggregate_records([record_factory(album=album) for album in albums])
    song = state.songs[SongKey("Song X", "Artist A")]

    assert song.albums == Counter({"Live": 2, "Studio": 2, "Bonus": 1})
    assert song.representative_album == "Live"


def test_representative_values_skip_blanks(record_factory):
    state = aggregate_records(
        [
            record_factory(album="", uri=None),
            record_factory(album=None, uri="spotify:track:b"),
            record_factory(album="  ", uri="spotify:track:a"),
        ]
    )
    song = state.songs[SongKey("Song X", "Artist A")]
    assert song.representative_album == ""
    assert song.representative_uri == "spotify:track:b"


def test_most_common_key_empty():
    assert most_common_key(Counter()) == ""


def test_month_and_year_tables(sample_records):
    state = aggregate_records(sample_records)

    assert state.monthly_ms == {"2023-05": 3000, "2023-06": 13000, "2024-01": 500}
    assert state.yearly_ms == {2023: 16000, 2024: 500}
    assert state.total_song_ms == 16500

    may = state.monthly_songs["2023-05"]
    assert list(may) == [SongKey("Song X", "Artist A")]
    assert (may[SongKey("Song X", "Artist A")].play_count, may[SongKey("Song X", "Artist A")].total_ms) == (2, 3000)


def test_negative_duration_counts_as_play_with_zero_time(record_factory):
    state = aggregate_records([record_factory(ms_played=-500), record_factory(ms_played=1000)])
    song = state.songs[SongKey("Song X", "Artist A")]
    assert song.play_count == 2
    assert song.total_ms == 1000


def test_merge_of_partitions_matches_single_pass(sample_records, record_factory):
    records = sample_records + [
        record_factory(album="Album 9"),
        record_factory(album="Album 9"),
        record_factory(album="Album 1", ts="2023-07-04T00:00:00Z"),
    ]
    sequential = aggregate_records(records)

    head = aggregate_records(records[:4])
    tail = aggregate_records(records[4:])
    merged = head.merge(tail)

    assert merged == sequential
    for key, song in sequential.songs.items():
        assert merged.songs[key].representative_album == song.representative_album
        assert merged.songs[key].representative_uri == song.representative_uri


def test_aggregate_records_extends_existing_state(record_factory):
    state = aggregate_records([record_factory()])
    aggregate_records([record_factory(ms_played=5)], state=state)

    assert state.total_records_read == 2
    assert state.songs[SongKey("Song X", "Artist A")].total_ms == 1005
