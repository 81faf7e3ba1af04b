import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from review_scheduler.core import config
from review_scheduler.database import Base, engine, ensure_scheduler_schema
from review_scheduler.models import appointment, appointment_history, leave_schedule, notification_log, reviewer_day_lock, user  # noqa: F401
from review_scheduler.routes import appointment_routes, calendar_routes, leave_routes, user_routes
from review_scheduler.services.notifications import ArqNotifier

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Contract Review Scheduler')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_scheduler_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    app.state.notifier = ArqNotifier()


@app.get('/')
def root():
    return {'status': 'Contract Review Scheduler API Running'}


app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(calendar_routes.router, prefix='/calendar')
app.include_router(leave_routes.router, prefix='/leave-schedules')
app.include_router(user_routes.router, prefix='/users')
