"""arq worker for appointment notifications.

Run with ``arq review_scheduler.worker.WorkerSettings``.
"""

import asyncio
import logging

from arq import Retry

from review_scheduler.core import config
from review_scheduler.core.redis_client import get_redis_settings
from review_scheduler.database import SessionLocal
from review_scheduler.models import appointment, appointment_history, leave_schedule, notification_log, reviewer_day_lock, user  # noqa: F401
from review_scheduler.services.notifications import (
    NotificationDelivery,
    NotificationRequest,
    SmtpEmailSender,
)

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

logger = logging.getLogger(__name__)


async def startup(ctx) -> None:
    ctx['delivery'] = NotificationDelivery(SessionLocal, SmtpEmailSender())
    logger.info('Notification worker started')


async def deliver_notification_task(ctx, appointment_id: int, notification_type: str, reason: str | None = None) -> None:
    request = NotificationRequest(appointment_id, notification_type, reason)
    logger.info(
        'Delivering notification: appointment=%s type=%s try=%s',
        appointment_id, notification_type, ctx.get('job_try', 1),
    )

    delay = await asyncio.to_thread(ctx['delivery'].deliver, request)
    if delay is not None:
        raise Retry(defer=delay)


class WorkerSettings:
    functions = [deliver_notification_task]
    on_startup = startup
    redis_settings = get_redis_settings()

    job_timeout = config.ARQ_JOB_TIMEOUT
    keep_result = config.ARQ_KEEP_RESULT

    # retry_count in notification_logs decides when to stop; this only bounds it.
    max_tries = config.NOTIFICATION_MAX_RETRIES + 1
