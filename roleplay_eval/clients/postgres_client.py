import json
import uuid
from typing import List, Optional, Protocol

import psycopg2
from psycopg2.extras import RealDictCursor
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from roleplay_eval import config
from roleplay_eval.errors import StorageFailed
from roleplay_eval.logging_config import get_logger
from roleplay_eval.schemas.evaluation import EvaluationRecord, NewEvaluation, ScoreResult

logger = get_logger(__name__)


class EvaluationStore(Protocol):
    def create_evaluation(self, new: NewEvaluation) -> EvaluationRecord:
        ...

    def find_evaluations(self, user_id: Optional[str], limit: int) -> List[EvaluationRecord]:
        """Most recent first."""
        ...

    def find_evaluation_by_id(self, evaluation_id: str) -> Optional[EvaluationRecord]:
        ...


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS evaluations (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    roleplay_text TEXT NOT NULL,
    result JSONB NOT NULL,
    model_name TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS evaluations_user_created_idx
    ON evaluations (user_id, created_at DESC);
"""

EVALUATION_COLUMNS = "id, user_id, roleplay_text, result, model_name, created_at"


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(min=1, max=10),
    retry=retry_if_exception_type(psycopg2.OperationalError),
    reraise=True,
)
def _connect(**params):
    return psycopg2.connect(**params)


class PostgresClient:
    """
    EvaluationStore over a single psycopg2 connection.

    Create one per process at startup and inject it; every method is a
    single statement committed (or rolled back) on its own.
    """

    def __init__(
        self,
        host=config.POSTGRES_HOST,
        port=config.POSTGRES_PORT,
        dbname=config.POSTGRES_DB,
        user=config.POSTGRES_USER,
        password=config.POSTGRES_PASSWORD,
    ):
        self.conn = _connect(
            host=host,
            port=port,
            dbname=dbname,
            user=user,
            password=password
        )
        self.conn.autocommit = False
        logger.info("postgres_connected", host=host, port=port, dbname=dbname)

    def close(self):
        self.conn.close()

    def ensure_schema(self):
        try:
            with self.conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error("schema_setup_failed", error=str(e))
            raise StorageFailed("Failed to create evaluations schema") from e

    # ----------
    # Evaluation
    # ----------

    def create_evaluation(self, new: NewEvaluation) -> EvaluationRecord:
        evaluation_id = str(uuid.uuid4())
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"""
                    INSERT INTO evaluations (
                        id,
                        user_id,
                        roleplay_text,
                        result,
                        model_name
                    )
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {EVALUATION_COLUMNS}
                    """,
                    (
                        evaluation_id,
                        new.user_id,
                        new.roleplay_text,
                        json.dumps(new.result.model_dump(by_alias=True)),
                        new.model_name
                    )
                )
                row = cur.fetchone()

            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error("evaluation_insert_failed", error=str(e))
            raise StorageFailed("Failed to save evaluation") from e

        return self._to_record(row)

    def find_evaluations(self, user_id: Optional[str], limit: int) -> List[EvaluationRecord]:
        query = f"SELECT {EVALUATION_COLUMNS} FROM evaluations"
        params = []
        if user_id:
            query += " WHERE user_id = %s"
            params.append(user_id)
        query += " ORDER BY created_at DESC LIMIT %s"
        params.append(limit)

        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, tuple(params))
                rows = cur.fetchall()
            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error("evaluation_query_failed", user_id=user_id, limit=limit, error=str(e))
            raise StorageFailed("Failed to load evaluations") from e

        return [self._to_record(row) for row in rows]

    def find_evaluation_by_id(self, evaluation_id: str) -> Optional[EvaluationRecord]:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {EVALUATION_COLUMNS} FROM evaluations WHERE id = %s",
                    (evaluation_id,)
                )
                row = cur.fetchone()
            self.conn.commit()
        except psycopg2.Error as e:
            self.conn.rollback()
            logger.error("evaluation_lookup_failed", evaluation_id=evaluation_id, error=str(e))
            raise StorageFailed("Failed to load evaluation") from e

        if not row:
            return None
        return self._to_record(row)

    @staticmethod
    def _to_record(row) -> EvaluationRecord:
        result = row["result"]
        if isinstance(result, str):
            result = json.loads(result)
        return EvaluationRecord(
            id=row["id"],
            user_id=row["user_id"],
            roleplay_text=row["roleplay_text"],
            result=ScoreResult.model_validate(result),
            model_name=row["model_name"],
            created_at=row["created_at"],
        )
