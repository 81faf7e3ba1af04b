import os
from datetime import time

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from review_scheduler.database import Base  # noqa: E402
from review_scheduler.models import (  # noqa: E402,F401
    appointment,
    appointment_history,
    leave_schedule,
    notification_log,
    reviewer_day_lock,
)
from review_scheduler.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from review_scheduler.models.leave_schedule import LeaveSchedule  # noqa: E402
from review_scheduler.models.user import ROLE_APPLICANT, ROLE_REVIEWER, User  # noqa: E402
from review_scheduler.services.cache import RedisCache  # noqa: E402


class RecordingNotifier:
    def __init__(self):
        self.requests = []

    def enqueue(self, request) -> bool:
        self.requests.append(request)
        return True


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "scheduler.db"}',
        connect_args={'check_same_thread': False, 'timeout': 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def people(db_session):
    applicant = User(id=1, email='applicant@example.com', name='Alice Applicant', role=ROLE_APPLICANT)
    reviewer = User(id=5, email='reviewer@example.com', name='Rita Reviewer', role=ROLE_REVIEWER)
    other_reviewer = User(id=6, email='other.reviewer@example.com', name='Oscar Reviewer', role=ROLE_REVIEWER)
    db_session.add_all([applicant, reviewer, other_reviewer])
    db_session.commit()
    return {'applicant': applicant, 'reviewer': reviewer, 'other_reviewer': other_reviewer}


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def redis_cache():
    return RedisCache(client=fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True), ttl_seconds=60)


def add_appointment(db, day, start, end, status=AppointmentStatus.PENDING, reviewer_id=5, applicant_id=1):
    row = Appointment(
        applicant_id=applicant_id,
        reviewer_id=reviewer_id,
        date=day,
        time_start=start,
        time_end=end,
        object_name='Supply agreement',
        status=status,
        created_by_id=applicant_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def add_leave(db, day, start, end, reviewer_id=5):
    row = LeaveSchedule(reviewer_id=reviewer_id, date=day, time_start=start, time_end=end)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def make_appointment(db_session):
    def factory(day, start: time, end: time, **kwargs):
        return add_appointment(db_session, day, start, end, **kwargs)
    return factory


@pytest.fixture
def make_leave(db_session):
    def factory(day, start: time, end: time, **kwargs):
        return add_leave(db_session, day, start, end, **kwargs)
    return factory
