from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BucketGranularity(str, Enum):
    DAY = "day"
    HOUR = "hour"


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ==================================================
# Analytics Snapshot
# ==================================================
class Aggregates(_View):
    """Rounded means over a set of evaluations; all None when count is 0."""

    count: int
    avg_overall: Optional[float] = None
    avg_empathy: Optional[float] = None
    avg_clarity: Optional[float] = None
    avg_product_knowledge: Optional[float] = None


class TimeSeriesPoint(_View):
    timestamp: datetime
    overall_score: Optional[float] = None
    id: str


class Bucket(Aggregates):
    start: datetime


class AnalyticsSnapshot(_View):
    aggregates: Aggregates
    time_series: List[TimeSeriesPoint]
    buckets: List[Bucket]


# ==================================================
# Evaluation Listing
# ==================================================
class EvaluationSummary(_View):
    id: str
    user_id: Optional[str] = None
    created_at: datetime
    overall_score: Optional[float] = None
    scores: Optional[Dict[str, float]] = None


class EvaluationListing(_View):
    meta: Aggregates
    data: List[EvaluationSummary]
