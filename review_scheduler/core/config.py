import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_time(value: str | None, default: time) -> time:
    if not value:
        return default
    hours, minutes = value.strip().split(":", 1)
    return time(int(hours), int(minutes))


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./review_scheduler.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

BUSINESS_HOURS_START = _get_time(os.getenv("BUSINESS_HOURS_START"), time(9, 0))
BUSINESS_HOURS_END = _get_time(os.getenv("BUSINESS_HOURS_END"), time(18, 0))
SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "15"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

SMTP_SERVER = os.getenv("SMTP_SERVER", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _get_bool(os.getenv("SMTP_USE_TLS"), default=True)
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "noreply@company.local")
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Contract Review System")

NOTIFICATION_MAX_RETRIES = int(os.getenv("NOTIFICATION_MAX_RETRIES", "3"))
NOTIFICATION_RETRY_DELAY_SECONDS = float(os.getenv("NOTIFICATION_RETRY_DELAY_SECONDS", "60"))
ARQ_JOB_TIMEOUT = int(os.getenv("ARQ_JOB_TIMEOUT", "120"))
ARQ_KEEP_RESULT = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

REVIEWER_CACHE_TTL_SECONDS = int(os.getenv("REVIEWER_CACHE_TTL_SECONDS", "300"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if BUSINESS_HOURS_START >= BUSINESS_HOURS_END:
        raise RuntimeError("BUSINESS_HOURS_START must be earlier than BUSINESS_HOURS_END.")
    if SLOT_GRANULARITY_MINUTES <= 0 or 60 % SLOT_GRANULARITY_MINUTES != 0:
        raise RuntimeError("SLOT_GRANULARITY_MINUTES must be a positive divisor of 60.")
