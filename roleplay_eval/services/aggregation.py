"""
Analytics over stored evaluations.

Everything here is a pure reduction over the records handed in: no store
access, no wall clock. All bucketing is done in UTC.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from roleplay_eval.schemas.analytics import (
    Aggregates,
    AnalyticsSnapshot,
    Bucket,
    BucketGranularity,
    TimeSeriesPoint,
)
from roleplay_eval.schemas.evaluation import EvaluationRecord

SCORE_FIELDS = ("overall", "empathy", "clarity", "product_knowledge")


def _score_values(record: EvaluationRecord) -> Dict[str, float]:
    result = record.result
    return {
        "overall": result.overall_score,
        "empathy": result.scores.empathy,
        "clarity": result.scores.clarity,
        "product_knowledge": result.scores.product_knowledge,
    }


def to_utc(ts: datetime) -> datetime:
    # Naive timestamps are assumed to already be UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def bucket_start(ts: datetime, granularity: BucketGranularity) -> datetime:
    ts = to_utc(ts)
    if granularity == BucketGranularity.HOUR:
        return ts.replace(minute=0, second=0, microsecond=0)
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


class _Accumulator:
    """Running score sums over a group of records."""

    def __init__(self):
        self.count = 0
        self.sums = {name: 0.0 for name in SCORE_FIELDS}

    def add(self, values: Dict[str, float]):
        self.count += 1
        for name in SCORE_FIELDS:
            self.sums[name] += values[name]

    def _avg(self, name: str) -> Optional[float]:
        if not self.count:
            return None
        return round(self.sums[name] / self.count, 2)

    def averages(self) -> dict:
        return {
            "count": self.count,
            "avg_overall": self._avg("overall"),
            "avg_empathy": self._avg("empathy"),
            "avg_clarity": self._avg("clarity"),
            "avg_product_knowledge": self._avg("product_knowledge"),
        }


def compute_aggregates(records: Iterable[EvaluationRecord]) -> Aggregates:
    acc = _Accumulator()
    for record in records:
        acc.add(_score_values(record))
    return Aggregates(**acc.averages())


def aggregate(
    records: Sequence[EvaluationRecord],
    limit: Optional[int] = None,
    granularity: BucketGranularity = BucketGranularity.DAY,
) -> AnalyticsSnapshot:
    """
    Build the time series, overall aggregates and time buckets from one set
    of records in a single pass.

    Args:
        records: evaluations ordered newest first, already filtered and
            capped by the caller's query
        limit: if given, only the first `limit` (most recent) records count
        granularity: bucket by UTC day or UTC hour

    The aggregates describe this window only, not every stored evaluation.
    """
    granularity = BucketGranularity(granularity)
    window = list(records) if limit is None else list(records)[: max(limit, 0)]

    overall = _Accumulator()
    buckets: Dict[datetime, _Accumulator] = {}
    points: List[TimeSeriesPoint] = []

    for record in window:
        values = _score_values(record)
        overall.add(values)

        key = bucket_start(record.created_at, granularity)
        if key not in buckets:
            buckets[key] = _Accumulator()
        buckets[key].add(values)

        points.append(
            TimeSeriesPoint(
                timestamp=to_utc(record.created_at),
                overall_score=values["overall"],
                id=record.id,
            )
        )

    # Input is newest first; reversing keeps ties in a stable order
    points.reverse()
    points.sort(key=lambda p: p.timestamp)

    return AnalyticsSnapshot(
        aggregates=Aggregates(**overall.averages()),
        time_series=points,
        buckets=[
            Bucket(start=start, **buckets[start].averages())
            for start in sorted(buckets)
        ],
    )
