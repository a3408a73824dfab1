from datetime import datetime, timedelta, timezone

from conftest import make_record
from roleplay_eval.schemas.analytics import BucketGranularity
from roleplay_eval.services.aggregation import aggregate, bucket_start, compute_aggregates

UTC = timezone.utc


def at(text):
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def newest_first(records):
    return sorted(records, key=lambda r: r.created_at, reverse=True)


def test_no_records():
    snapshot = aggregate([])

    assert snapshot.aggregates.count == 0
    assert snapshot.aggregates.avg_overall is None
    assert snapshot.aggregates.avg_empathy is None
    assert snapshot.aggregates.avg_clarity is None
    assert snapshot.aggregates.avg_product_knowledge is None
    assert snapshot.time_series == []
    assert snapshot.buckets == []


def test_averages_over_window():
    records = newest_first([
        make_record("a", at("2025-11-23T10:00:00Z"), overall=8, empathy=5, clarity=7, product_knowledge=9),
        make_record("b", at("2025-11-23T11:00:00Z"), overall=6, empathy=6, clarity=8, product_knowledge=9),
        make_record("c", at("2025-11-23T12:00:00Z"), overall=10, empathy=8, clarity=8, product_knowledge=3),
    ])

    aggregates = aggregate(records).aggregates

    assert aggregates.count == 3
    assert aggregates.avg_overall == 8.00
    assert aggregates.avg_empathy == 6.33
    assert aggregates.avg_clarity == 7.67
    assert aggregates.avg_product_knowledge == 7.0


def test_zero_and_fractional_scores_count_toward_means():
    records = newest_first([
        make_record("a", at("2025-11-23T10:00:00Z"), overall=0, empathy=0, clarity=0.5, product_knowledge=10),
        make_record("b", at("2025-11-23T11:00:00Z"), overall=7.25, empathy=3, clarity=0, product_knowledge=9.5),
    ])

    snapshot = aggregate(records, granularity="hour")

    assert snapshot.aggregates.avg_overall == 3.62
    assert snapshot.aggregates.avg_empathy == 1.5
    assert snapshot.aggregates.avg_clarity == 0.25
    assert snapshot.aggregates.avg_product_knowledge == 9.75
    assert [b.avg_overall for b in snapshot.buckets] == [0.0, 7.25]
    assert [p.overall_score for p in snapshot.time_series] == [0, 7.25]


def test_hour_buckets_group_within_the_hour():
    records = newest_first([
        make_record("a", at("2025-11-23T14:10:00Z"), overall=6),
        make_record("b", at("2025-11-23T14:50:00Z"), overall=9),
    ])

    buckets = aggregate(records, granularity=BucketGranularity.HOUR).buckets

    assert len(buckets) == 1
    assert buckets[0].start == at("2025-11-23T14:00:00Z")
    assert buckets[0].count == 2
    assert buckets[0].avg_overall == 7.5


def test_day_buckets_split_at_utc_midnight():
    records = newest_first([
        make_record("a", at("2025-11-23T23:59:00Z")),
        make_record("b", at("2025-11-24T00:01:00Z")),
    ])

    buckets = aggregate(records, granularity=BucketGranularity.DAY).buckets

    assert [b.start for b in buckets] == [at("2025-11-23T00:00:00Z"), at("2025-11-24T00:00:00Z")]
    assert [b.count for b in buckets] == [1, 1]


def test_buckets_use_utc_for_offset_timestamps():
    # 01:30 at +02:00 is still 23:30 UTC on the previous day
    local = datetime(2025, 11, 24, 1, 30, tzinfo=timezone(timedelta(hours=2)))

    assert bucket_start(local, BucketGranularity.DAY) == at("2025-11-23T00:00:00Z")
    assert bucket_start(local, BucketGranularity.HOUR) == at("2025-11-23T23:00:00Z")


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2025, 11, 23, 14, 59, 59, 999999)

    assert bucket_start(naive, BucketGranularity.HOUR) == at("2025-11-23T14:00:00Z")


def test_string_granularity_is_accepted():
    records = [make_record("a", at("2025-11-23T14:10:00Z"))]

    assert aggregate(records, granularity="hour").buckets[0].start == at("2025-11-23T14:00:00Z")


def test_time_series_is_oldest_first():
    records = newest_first([
        make_record("first", at("2025-11-20T09:00:00Z"), overall=4),
        make_record("second", at("2025-11-21T09:00:00Z"), overall=5),
        make_record("third", at("2025-11-22T09:00:00Z"), overall=6),
    ])

    series = aggregate(records).time_series

    assert [p.id for p in series] == ["first", "second", "third"]
    assert [p.overall_score for p in series] == [4, 5, 6]
    assert [p.timestamp for p in series] == sorted(p.timestamp for p in series)


def test_buckets_sorted_ascending():
    records = newest_first([
        make_record(str(day), datetime(2025, 11, day, 12, tzinfo=UTC)) for day in (3, 1, 2)
    ])

    starts = [b.start.day for b in aggregate(records).buckets]

    assert starts == [1, 2, 3]


def test_limit_keeps_most_recent_records():
    records = newest_first([
        make_record(str(i), datetime(2025, 11, 23, i, tzinfo=UTC), overall=i) for i in range(1, 6)
    ])

    snapshot = aggregate(records, limit=2)

    assert snapshot.aggregates.count == 2
    assert [p.id for p in snapshot.time_series] == ["4", "5"]
    assert snapshot.aggregates.avg_overall == 4.5


def test_output_is_deterministic():
    records = newest_first([
        make_record(str(i), datetime(2025, 11, 23, i % 24, i % 60, tzinfo=UTC), overall=i % 11)
        for i in range(40)
    ])

    assert aggregate(records, granularity="hour") == aggregate(records, granularity="hour")


def test_snapshot_serializes_with_camel_case_keys():
    records = [make_record("a", at("2025-11-23T14:10:00Z"), overall=8)]

    payload = aggregate(records, granularity="hour").model_dump(by_alias=True, mode="json")

    assert set(payload) == {"aggregates", "timeSeries", "buckets"}
    assert payload["aggregates"]["avgOverall"] == 8.0
    assert payload["timeSeries"][0]["overallScore"] == 8.0
    assert payload["buckets"][0]["avgProductKnowledge"] == 6.0
    assert payload["buckets"][0]["start"] == "2025-11-23T14:00:00Z"


def test_compute_aggregates_matches_snapshot():
    records = [
        make_record("a", at("2025-11-23T14:10:00Z"), overall=8),
        make_record("b", at("2025-11-23T15:10:00Z"), overall=6),
    ]

    assert compute_aggregates(records) == aggregate(records).aggregates
