import os

from dotenv import load_dotenv

load_dotenv()

# -------
# Limits
# -------

MAX_ROLEPLAY_CHARS = 8000

ANALYTICS_DEFAULT_LIMIT = 50
ANALYTICS_MAX_LIMIT = 200
LISTING_DEFAULT_LIMIT = 20
LISTING_MAX_LIMIT = 200

DEFAULT_BUCKET_GRANULARITY = "day"

# ---
# LLM
# ---

LLM_BASE_URL = os.getenv("LLM_BASE_URL")
LLM_API_KEY = os.getenv("LLM_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# --------
# Postgres
# --------

POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_DB = os.getenv("POSTGRES_DB", "roleplay_eval")
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")

# --------
# RabbitMQ
# --------

RABBITMQ_HOST = os.getenv("RABBITMQ_HOST", "localhost")
RABBITMQ_PORT = int(os.getenv("RABBITMQ_PORT", "5672"))
RABBITMQ_USER = os.getenv("RABBITMQ_USER", "admin")
RABBITMQ_PASSWORD = os.getenv("RABBITMQ_PASSWORD", "admin123")

EVALUATION_JOBS_QUEUE = "evaluation_jobs"
EVALUATION_RESULTS_QUEUE = "evaluation_results"
FAILED_JOBS_QUEUE = "failed_jobs"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "false").lower() == "true"
