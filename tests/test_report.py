import dataclasses
import random

import pytest

from listening_report import NoUsableRecordsError, Report, build_report
from listening_report.io import InputMeta
from listening_report.metrics.aggregation import aggregate_records
from listening_report.report import assemble_report, format_data_range


def test_scenario_song_row(record_factory):
    report = build_report(
        [
            record_factory(ms_played=1000),
            record_factory(ms_played=2000, skipped=True),
            record_factory(ms_played=3000),
        ]
    )
    row = report.song_rows[0]

    assert (row.song, row.artist) == ("Song X", "Artist A")
    assert row.play_count == 3
    assert row.total_ms == 6000
    assert row.skip_count == 1
    assert row.skip_rate == pytest.approx(0.3333, abs=1e-4)
    assert row.total_minutes == pytest.approx(0.1)


def test_report_contents(sample_records):
    report = build_report(sample_records)

    assert report.total_records_read == 7
    assert report.song_records_used == 5
    assert report.ignored_non_song == 1
    assert report.ignored_bad_timestamp == 1
    assert report.unique_songs == 3
    assert report.total_song_ms == 16500
    assert report.total_minutes == pytest.approx(16500 / 60_000)
    assert report.total_hours == pytest.approx(16500 / 3_600_000)
    assert report.data_range == "May 2023 - Jan 2024"

    assert report.peak_month.month == "2023-06"
    assert report.peak_year.year == 2023

    assert [row.song for row in report.song_rows] == ["Song X", "Song Y", "Song Z"]
    assert [row.song for row in report.top10_by_time] == ["Song Y", "Song X", "Song Z"]
    assert [row.song for row in report.top10_skipped] == ["Song X"]
    assert [row.artist for row in report.top_artists_by_time] == ["Artist B", "Artist A"]
    assert [(row.month, row.rank, row.song) for row in report.top3_per_month] == [
        ("2023-05", 1, "Song X"),
        ("2023-06", 1, "Song Y"),
        ("2023-06", 2, "Song X"),
        ("2024-01", 1, "Song Z"),
    ]
    assert report.song_rows[0].album == "Album 1"


def test_provenance_adds_up(sample_records, podcast_factory, record_factory):
    records = sample_records + [podcast_factory() for _ in range(3)] + [record_factory(ts="")]
    report = build_report(records)
    assert (
        report.song_records_used + report.ignored_non_song + report.ignored_bad_timestamp
        == report.total_records_read
        == len(records)
    )


def test_only_podcasts_raises(podcast_factory):
    with pytest.raises(NoUsableRecordsError) as excinfo:
        build_report([podcast_factory() for _ in range(4)])

    assert excinfo.value.total_records_read == 4
    assert excinfo.value.ignored_non_song == 4
    assert excinfo.value.ignored_bad_timestamp == 0


def test_only_bad_timestamps_raises(record_factory):
    with pytest.raises(NoUsableRecordsError) as excinfo:
        build_report([record_factory(ts="garbage"), record_factory(ts=None)])
    assert excinfo.value.ignored_bad_timestamp == 2


def test_empty_input_raises():
    with pytest.raises(NoUsableRecordsError):
        build_report([])


def test_space_separated_timestamp_lands_in_utc_month(record_factory):
    report = build_report([record_factory(ts="2023-05-01 10:00:00")])
    assert [row.month for row in report.monthly_totals] == ["2023-05"]
    assert report.peak_month.month == "2023-05"
    assert report.data_range == "May 2023 - May 2023"


def test_peak_month_tie_picks_later_month(record_factory):
    report = build_report(
        [
            record_factory("A", "X", ms_played=60_000, ts="2023-02-01T00:00:00Z"),
            record_factory("B", "X", ms_played=60_000, ts="2023-09-01T00:00:00Z"),
            record_factory("C", "X", ms_played=1_000, ts="2024-01-01T00:00:00Z"),
        ]
    )
    assert report.peak_month.month == "2023-09"
    assert report.peak_month.minutes == 1.0
    assert report.peak_year.year == 2023


def test_build_report_is_idempotent(sample_records):
    assert build_report(sample_records) == build_report(sample_records)


def test_shuffled_input_gives_same_report(record_factory):
    records = [
        record_factory(
            f"Song {i % 7}",
            f"Artist {i % 3}",
            album=f"Album {i % 7}",
            uri=f"spotify:track:{i % 7}",
            ms_played=(i * 7919) % 240_000,
            skipped=i % 4 == 0,
            ts=f"202{i % 3}-{(i % 12) + 1:02d}-1{i % 10}T0{i % 10}:00:00Z",
        )
        for i in range(60)
    ]
    shuffled = list(records)
    random.Random(7).shuffle(shuffled)

    assert build_report(records) == build_report(shuffled)


def test_report_is_frozen(sample_records):
    report = build_report(sample_records)
    with pytest.raises(dataclasses.FrozenInstanceError):
        report.unique_songs = 0


def test_input_meta_is_carried(sample_records):
    meta = InputMeta(parsed_json_count=2, json_count=2)
    report = assemble_report(aggregate_records(sample_records), input_meta=meta)
    assert isinstance(report, Report)
    assert report.input_meta == meta


def test_format_data_range_without_months():
    assert format_data_range(()) == "N/A"


def test_relative_date_words_are_bad_timestamps(record_factory):
    report = build_report(
        [record_factory(ts="now"), record_factory(ts="today"), record_factory()]
    )
    assert report.ignored_bad_timestamp == 2
    assert [row.month for row in report.monthly_totals] == ["2023-05"]
    assert build_report([record_factory(ts="now"), record_factory()]) == build_report(
        [record_factory(ts="now"), record_factory()]
    )
