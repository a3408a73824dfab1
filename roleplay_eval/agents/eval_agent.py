from roleplay_eval import config
from roleplay_eval.clients.completion_client import ChatCompletionClient
from roleplay_eval.clients.postgres_client import PostgresClient
from roleplay_eval.clients.rabbitmq_client import RabbitMQClient
from roleplay_eval.errors import EvaluationError
from roleplay_eval.logging_config import bind_context, clear_context, configure_logging, get_logger
from roleplay_eval.services.evaluation import EvaluationService

logger = get_logger(__name__)


class ScoringAgent:
    """
    Queue worker around EvaluationService.

    Every job is scored at most once and settled by returning normally, so the
    consumer always acks it. The outcome goes to `evaluation_results` or
    `failed_jobs`; if that publish itself fails the outcome is only logged
    and the job is not redelivered. Resubmitting is up to the producer.
    """

    def __init__(self, service: EvaluationService, mq: RabbitMQClient):
        self.service = service
        self.mq = mq

    def _publish(self, queue_name: str, message: dict, **log_fields) -> bool:
        try:
            self.mq.publish(queue_name, message)
        except Exception as e:
            logger.error(
                "job_outcome_publish_failed",
                queue=queue_name,
                status=message.get("status"),
                error_type=type(e).__name__,
                error=str(e),
                **log_fields,
            )
            return False
        return True

    def process_evaluation_job(self, message: dict):
        job_id = message.get("job_id")
        clear_context()
        bind_context(job_id=job_id)
        try:
            logger.info("evaluation_job_received", user_id=message.get("user_id"))
            try:
                record = self.service.evaluate(
                    message.get("roleplay_text"),
                    user_id=message.get("user_id"),
                )
            except EvaluationError as e:
                logger.warning("evaluation_job_failed", error=e.code, message=e.message)
                self._publish(
                    config.FAILED_JOBS_QUEUE,
                    {"job_id": job_id, "status": "FAILED", **e.to_dict()},
                )
                return
            except Exception as e:
                logger.exception("evaluation_job_crashed", error_type=type(e).__name__, error=str(e))
                self._publish(
                    config.FAILED_JOBS_QUEUE,
                    {
                        "job_id": job_id,
                        "status": "FAILED",
                        "error": "INTERNAL_ERROR",
                        "message": "Evaluation failed unexpectedly",
                    },
                )
                return

            self._publish(
                config.EVALUATION_RESULTS_QUEUE,
                {
                    "job_id": job_id,
                    "status": "EVALUATED",
                    "evaluation": record.model_dump(by_alias=True, mode="json"),
                },
                evaluation_id=record.id,
            )
        finally:
            clear_context()


def main():
    configure_logging()

    mq = RabbitMQClient()
    db = PostgresClient()
    db.ensure_schema()

    service = EvaluationService(completion_client=ChatCompletionClient(), store=db)
    agent = ScoringAgent(service=service, mq=mq)

    logger.info("waiting_for_evaluation_jobs", queue=config.EVALUATION_JOBS_QUEUE)
    try:
        mq.consume(
            queue_name=config.EVALUATION_JOBS_QUEUE,
            callback=agent.process_evaluation_job
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
