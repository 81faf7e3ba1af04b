from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from review_scheduler.core import config


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": 30}
    return {}


engine = create_engine(config.DATABASE_URL, connect_args=_connect_args(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduler_schema_checked = False


def ensure_scheduler_schema(bind: Engine | None = None) -> None:
    """Bring an existing database up to the current appointment/leave layout.

    Older deployments created ``appointments`` before delegation and
    cancellation columns existed; those columns are added in place and the
    per reviewer/day lookup indexes are created if missing.
    """
    global _scheduler_schema_checked

    if _scheduler_schema_checked:
        return

    with _schema_lock:
        if _scheduler_schema_checked:
            return

        bind = bind or engine
        inspector = inspect(bind)
        table_names = inspector.get_table_names()

        with bind.begin() as connection:
            if 'appointments' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
                migration_steps = [
                    ('delegate_reviewer_id', 'ALTER TABLE appointments ADD COLUMN delegate_reviewer_id INTEGER'),
                    ('delegate_status', 'ALTER TABLE appointments ADD COLUMN delegate_status VARCHAR(50)'),
                    ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
                    ('cancelled_reason', 'ALTER TABLE appointments ADD COLUMN cancelled_reason TEXT'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_reviewer_date ON appointments(reviewer_id, date)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_applicant_date ON appointments(applicant_id, date)')
                )

            if 'leave_schedules' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_leave_schedules_reviewer_date ON leave_schedules(reviewer_id, date)')
                )

        _scheduler_schema_checked = True
