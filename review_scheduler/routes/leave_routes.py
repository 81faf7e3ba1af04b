from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.auth.dependencies import get_current_user, require_reviewer
from review_scheduler.models.user import User
from review_scheduler.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    failure_to_http,
    get_db,
)
from review_scheduler.services.leave_service import LeaveService

router = APIRouter(tags=['leave-schedules'])


class CreateLeaveScheduleRequest(BaseModel):
    date: date
    time_start: time
    time_end: time


class LeaveScheduleResponse(BaseModel):
    id: int
    reviewer_id: int
    date: date
    time_start: time
    time_end: time
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.post('', response_model=LeaveScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_leave_schedule(
    data: CreateLeaveScheduleRequest,
    current_user: User = Depends(require_reviewer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = LeaveService(db).create(current_user.id, data.date, data.time_start, data.time_end)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise failure_to_http(result.kind, result.error)

    return result.leave


@router.get('/reviewer/{reviewer_id}', response_model=list[LeaveScheduleResponse])
def list_reviewer_leave_schedules(
    reviewer_id: int,
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        return LeaveService(db).list_for_reviewer(reviewer_id, from_date=from_date, to_date=to_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{leave_id}', response_model=LeaveScheduleResponse)
def get_leave_schedule(
    leave_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        leave = LeaveService(db).get(leave_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if leave is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Leave schedule not found.')

    return leave


@router.delete('/{leave_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_schedule(
    leave_id: int,
    current_user: User = Depends(require_reviewer),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = LeaveService(db).delete(leave_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not result.ok:
        raise failure_to_http(result.kind, result.error)
