import logging
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.auth.dependencies import get_current_user
from review_scheduler.models.user import User
from review_scheduler.repositories.schedule_repository import ScheduleRepository
from review_scheduler.routes.dependencies import database_unavailable, ensure_database_ready, get_db
from review_scheduler.scheduling.availability import DEFAULT_SLOT_MINUTES, available_slots

router = APIRouter(tags=['calendar'])

logger = logging.getLogger(__name__)


class TimeSlotResponse(BaseModel):
    start: time
    end: time


class CalendarResponse(BaseModel):
    reviewer_id: int
    date: date
    slot_minutes: int
    available_slots: list[TimeSlotResponse]


@router.get('/{reviewer_id}/{day}', response_model=CalendarResponse)
def get_calendar(
    reviewer_id: int,
    day: date,
    slot_minutes: int = Query(default=DEFAULT_SLOT_MINUTES),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    if reviewer_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid reviewer id.')

    ensure_database_ready()

    try:
        slots = [
            TimeSlotResponse(start=slot.start, end=slot.end)
            for slot in available_slots(ScheduleRepository(db), reviewer_id, day, slot_minutes)
        ]
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception('Availability query failed: reviewer=%s date=%s', reviewer_id, day)
        raise database_unavailable() from exc

    logger.debug('Calendar query: reviewer=%s date=%s available=%s', reviewer_id, day, len(slots))
    return CalendarResponse(reviewer_id=reviewer_id, date=day, slot_minutes=slot_minutes, available_slots=slots)
