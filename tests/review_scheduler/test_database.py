import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from review_scheduler import database


@pytest.fixture
def legacy_engine():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE appointments ('
            'id INTEGER PRIMARY KEY, applicant_id INTEGER, reviewer_id INTEGER, date DATE, '
            'time_start TIME, time_end TIME, object_name VARCHAR(500), status VARCHAR(50), '
            'created_by_id INTEGER, created_at TIMESTAMP, updated_at TIMESTAMP)'
        ))
        connection.execute(text(
            'CREATE TABLE leave_schedules (id INTEGER PRIMARY KEY, reviewer_id INTEGER, date DATE, '
            'time_start TIME, time_end TIME, created_at TIMESTAMP, updated_at TIMESTAMP)'
        ))
    try:
        yield engine
    finally:
        engine.dispose()


def test_ensure_scheduler_schema_adds_missing_columns_and_indexes(legacy_engine, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(database, '_scheduler_schema_checked', False)

    database.ensure_scheduler_schema(bind=legacy_engine)

    inspector = inspect(legacy_engine)
    columns = {column['name'] for column in inspector.get_columns('appointments')}
    assert {'delegate_reviewer_id', 'delegate_status', 'cancelled_at', 'cancelled_reason'} <= columns
    assert 'idx_appointments_reviewer_date' in {index['name'] for index in inspector.get_indexes('appointments')}
    assert 'idx_leave_schedules_reviewer_date' in {index['name'] for index in inspector.get_indexes('leave_schedules')}
    assert database._scheduler_schema_checked is True
