from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from review_scheduler.database import SessionLocal, ensure_scheduler_schema
from review_scheduler.services.appointment_service import (
    CONFLICT_ERROR,
    NOT_FOUND_ERROR,
    VALIDATION_ERROR,
    WRONG_STATE_ERROR,
)
from review_scheduler.services.cache import RedisCache, reviewer_cache
from review_scheduler.services.leave_service import FORBIDDEN_ERROR
from review_scheduler.services.notifications import Notifier

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'

STATUS_BY_FAILURE_KIND = {
    VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    CONFLICT_ERROR: status.HTTP_409_CONFLICT,
    NOT_FOUND_ERROR: status.HTTP_404_NOT_FOUND,
    WRONG_STATE_ERROR: status.HTTP_409_CONFLICT,
    FORBIDDEN_ERROR: status.HTTP_403_FORBIDDEN,
}


def database_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE)


def failure_to_http(kind: str | None, error: str | None) -> HTTPException:
    return HTTPException(
        status_code=STATUS_BY_FAILURE_KIND.get(kind, status.HTTP_400_BAD_REQUEST),
        detail=error,
    )


def ensure_database_ready() -> None:
    try:
        ensure_scheduler_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_notifier(request: Request) -> Notifier | None:
    return getattr(request.app.state, 'notifier', None)


def get_reviewer_cache() -> RedisCache:
    return reviewer_cache
