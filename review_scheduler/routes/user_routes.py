from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from review_scheduler.auth.dependencies import get_current_user
from review_scheduler.models.user import ROLE_REVIEWER, User
from review_scheduler.routes.dependencies import database_unavailable, ensure_database_ready, get_db, get_reviewer_cache
from review_scheduler.services.cache import REVIEWER_LIST_KEY, RedisCache

router = APIRouter(tags=['users'])


class ReviewerResponse(BaseModel):
    id: int
    name: str
    email: str


class CurrentUserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str


@router.get('/me', response_model=CurrentUserResponse)
def me(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        id=current_user.id,
        name=current_user.name or '',
        email=current_user.email,
        role=current_user.role,
    )


@router.get('/reviewers', response_model=list[ReviewerResponse])
def list_reviewers(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_reviewer_cache),
):
    del current_user
    cached = cache.get(REVIEWER_LIST_KEY)
    if cached is not None:
        return [ReviewerResponse(**item) for item in cached]

    ensure_database_ready()

    try:
        reviewers = db.query(User).filter(
            User.role == ROLE_REVIEWER,
            User.is_active.is_(True),
        ).order_by(User.name.asc(), User.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    response = [
        ReviewerResponse(id=reviewer.id, name=reviewer.name or '', email=reviewer.email)
        for reviewer in reviewers
    ]
    cache.set(REVIEWER_LIST_KEY, [item.model_dump() for item in response])
    return response
