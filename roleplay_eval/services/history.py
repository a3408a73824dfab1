from typing import Optional

from roleplay_eval import config
from roleplay_eval.clients.postgres_client import EvaluationStore
from roleplay_eval.errors import InvalidInput, NotFound, StorageFailed
from roleplay_eval.logging_config import get_logger
from roleplay_eval.schemas.analytics import (
    AnalyticsSnapshot,
    BucketGranularity,
    EvaluationListing,
    EvaluationSummary,
)
from roleplay_eval.schemas.evaluation import EvaluationRecord
from roleplay_eval.services.aggregation import aggregate, compute_aggregates

logger = get_logger(__name__)


def _clamp_limit(limit, default: int, maximum: int) -> int:
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidInput(f"limit must be an integer, got {limit!r}")
    if limit < 1:
        raise InvalidInput(f"limit must be positive, got {limit}")
    return min(limit, maximum)


def _parse_granularity(group_by) -> BucketGranularity:
    try:
        return BucketGranularity(group_by or config.DEFAULT_BUCKET_GRANULARITY)
    except ValueError:
        raise InvalidInput(f"group_by must be 'day' or 'hour', got {group_by!r}") from None


class EvaluationHistory:
    """Read side: recent listings, replay lookup and analytics snapshots."""

    def __init__(self, store: EvaluationStore):
        self.store = store

    def _find(self, user_id: Optional[str], limit: int):
        try:
            return self.store.find_evaluations(user_id, limit)
        except StorageFailed:
            raise
        except Exception as e:
            logger.error("evaluation_query_failed", user_id=user_id, limit=limit, error=str(e))
            raise StorageFailed("Failed to load evaluations") from e

    def list_recent(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> EvaluationListing:
        limit = _clamp_limit(limit, config.LISTING_DEFAULT_LIMIT, config.LISTING_MAX_LIMIT)
        records = self._find(user_id, limit)

        return EvaluationListing(
            meta=compute_aggregates(records),
            data=[
                EvaluationSummary(
                    id=r.id,
                    user_id=r.user_id,
                    created_at=r.created_at,
                    overall_score=r.result.overall_score,
                    scores=r.result.scores.model_dump(by_alias=True),
                )
                for r in records
            ],
        )

    def replay(self, evaluation_id: str) -> EvaluationRecord:
        if not evaluation_id:
            raise InvalidInput("evaluation id is required")

        try:
            record = self.store.find_evaluation_by_id(evaluation_id)
        except StorageFailed:
            raise
        except Exception as e:
            logger.error("evaluation_lookup_failed", evaluation_id=evaluation_id, error=str(e))
            raise StorageFailed("Failed to load evaluation") from e

        if record is None:
            raise NotFound(f"Evaluation {evaluation_id} not found")
        return record

    def analytics(
        self,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
        group_by: Optional[str] = None,
    ) -> AnalyticsSnapshot:
        """
        Snapshot of the `limit` most recent evaluations (default 50, max 200).

        Aggregates are computed over that same window rather than over every
        stored evaluation, trading global accuracy for a single bounded query.
        """
        limit = _clamp_limit(limit, config.ANALYTICS_DEFAULT_LIMIT, config.ANALYTICS_MAX_LIMIT)
        granularity = _parse_granularity(group_by)

        records = self._find(user_id, limit)
        snapshot = aggregate(records, limit=limit, granularity=granularity)

        logger.debug(
            "analytics_computed",
            user_id=user_id,
            limit=limit,
            group_by=granularity.value,
            count=snapshot.aggregates.count,
        )
        return snapshot
