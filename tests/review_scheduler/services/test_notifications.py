import asyncio
from datetime import date, time

import pytest
from arq import Retry
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import add_appointment
from review_scheduler.models.notification_log import (
    NOTIFICATION_FAILED,
    NOTIFICATION_SENT,
    NotificationLog,
)
from review_scheduler.models.user import ROLE_APPLICANT, ROLE_REVIEWER, User
from review_scheduler.services import notifications
from review_scheduler.services.notifications import (
    APPOINTMENT_REJECTED,
    DELIVER_NOTIFICATION_TASK,
    NEW_APPOINTMENT,
    ArqNotifier,
    NotificationDelivery,
    NotificationDeliveryError,
    NotificationRequest,
    record_unqueued,
    render_notification,
)
from review_scheduler.worker import deliver_notification_task

MONDAY = date(2025, 11, 24)


class FakeSender:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent = []
        self.attempts = 0

    def send(self, to_address: str, subject: str, body: str) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise NotificationDeliveryError('SMTP server unavailable')
        self.sent.append((to_address, subject, body))


class FakePool:
    def __init__(self):
        self.jobs = []
        self.closed = False

    async def enqueue_job(self, function, *args, **kwargs):
        self.jobs.append((function, args, kwargs))
        return object()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def seeded_appointment_id(file_session_factory):
    db = file_session_factory()
    try:
        db.add_all([
            User(id=1, email='applicant@example.com', name='Alice Applicant', role=ROLE_APPLICANT),
            User(id=5, email='reviewer@example.com', name='Rita Reviewer', role=ROLE_REVIEWER),
        ])
        db.commit()
        return add_appointment(db, MONDAY, time(9, 0), time(10, 0)).id
    finally:
        db.close()


def deliver_until_done(delivery: NotificationDelivery, request: NotificationRequest) -> list[float]:
    """Run attempts back to back, the way the worker would after each deferral."""
    delays = []
    delay = delivery.deliver(request)
    while delay is not None:
        delays.append(delay)
        delay = delivery.deliver(request)
    return delays


def stored_logs(session_factory) -> list[NotificationLog]:
    db = session_factory()
    try:
        return db.query(NotificationLog).order_by(NotificationLog.id.asc()).all()
    finally:
        db.close()


def test_new_appointment_notification_goes_to_reviewer(file_session_factory, seeded_appointment_id) -> None:
    sender = FakeSender()
    delivery = NotificationDelivery(file_session_factory, sender)

    assert deliver_until_done(delivery, NotificationRequest(seeded_appointment_id, NEW_APPOINTMENT)) == []

    assert len(sender.sent) == 1
    to_address, subject, body = sender.sent[0]
    assert to_address == 'reviewer@example.com'
    assert subject == 'New appointment request - Supply agreement'
    assert '2025-11-24 09:00-10:00' in body
    assert 'Alice Applicant' in body

    logs = stored_logs(file_session_factory)
    assert len(logs) == 1
    assert logs[0].status == NOTIFICATION_SENT
    assert logs[0].notification_type == NEW_APPOINTMENT
    assert logs[0].retry_count == 0
    assert logs[0].sent_at is not None


def test_failed_send_is_retried_with_backoff_until_it_succeeds(file_session_factory, seeded_appointment_id) -> None:
    sender = FakeSender(failures=2)
    delivery = NotificationDelivery(file_session_factory, sender, max_retries=3, retry_delay_seconds=60)

    delays = deliver_until_done(delivery, NotificationRequest(seeded_appointment_id, NEW_APPOINTMENT))

    assert delays == [60, 120]
    assert sender.attempts == 3
    logs = stored_logs(file_session_factory)
    assert len(logs) == 1
    assert logs[0].status == NOTIFICATION_SENT
    assert logs[0].retry_count == 2
    assert logs[0].error_message is None


def test_send_is_marked_failed_after_exhausting_retries(file_session_factory, seeded_appointment_id) -> None:
    sender = FakeSender(failures=100)
    delivery = NotificationDelivery(file_session_factory, sender, max_retries=2, retry_delay_seconds=1)
    request = NotificationRequest(seeded_appointment_id, APPOINTMENT_REJECTED, reason='Conflict of interest')

    assert deliver_until_done(delivery, request) == [1, 2]

    assert sender.attempts == 3
    logs = stored_logs(file_session_factory)
    assert logs[0].status == NOTIFICATION_FAILED
    assert logs[0].retry_count == 2
    assert logs[0].error_message == 'SMTP server unavailable'
    assert logs[0].recipient_email == 'applicant@example.com'
    assert 'Conflict of interest' in logs[0].content


def test_delivered_notification_is_not_sent_twice(file_session_factory, seeded_appointment_id) -> None:
    sender = FakeSender()
    delivery = NotificationDelivery(file_session_factory, sender)
    request = NotificationRequest(seeded_appointment_id, NEW_APPOINTMENT)

    delivery.deliver(request)
    delivery.deliver(request)

    assert sender.attempts == 1
    assert len(stored_logs(file_session_factory)) == 1


def test_missing_appointment_is_skipped(file_session_factory) -> None:
    sender = FakeSender()

    assert NotificationDelivery(file_session_factory, sender).deliver(NotificationRequest(404, NEW_APPOINTMENT)) is None

    assert sender.attempts == 0
    assert stored_logs(file_session_factory) == []


def test_backoff_doubles_per_retry(file_session_factory) -> None:
    delivery = NotificationDelivery(file_session_factory, FakeSender(), retry_delay_seconds=60)

    assert [delivery.backoff_delay(count) for count in (1, 2, 3)] == [60, 120, 240]


def test_worker_task_defers_failed_send(file_session_factory, seeded_appointment_id) -> None:
    delivery = NotificationDelivery(file_session_factory, FakeSender(failures=1), retry_delay_seconds=60)
    ctx = {'delivery': delivery, 'job_try': 1}

    with pytest.raises(Retry) as exception_info:
        asyncio.run(deliver_notification_task(ctx, seeded_appointment_id, NEW_APPOINTMENT))
    assert exception_info.value.defer_score == 60_000

    ctx['job_try'] = 2
    asyncio.run(deliver_notification_task(ctx, seeded_appointment_id, NEW_APPOINTMENT))
    assert stored_logs(file_session_factory)[0].status == NOTIFICATION_SENT


def test_arq_notifier_enqueues_one_job_per_notification(monkeypatch: pytest.MonkeyPatch) -> None:
    pool = FakePool()

    async def fake_create_pool(settings):
        return pool

    monkeypatch.setattr(notifications, 'create_pool', fake_create_pool)

    assert ArqNotifier().enqueue(NotificationRequest(7, APPOINTMENT_REJECTED, reason='Busy'))

    assert pool.jobs == [
        (DELIVER_NOTIFICATION_TASK, (7, APPOINTMENT_REJECTED, 'Busy'), {'_job_id': 'notification:7:appointment_rejected'}),
    ]
    assert pool.closed


def test_arq_notifier_reports_unreachable_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_create_pool(settings):
        raise RedisConnectionError('Connection refused')

    monkeypatch.setattr(notifications, 'create_pool', failing_create_pool)

    assert ArqNotifier().enqueue(NotificationRequest(7, NEW_APPOINTMENT)) is False


def test_record_unqueued_stores_failed_log(db_session, people, make_appointment) -> None:
    appointment = make_appointment(MONDAY, time(9, 0), time(10, 0))

    log = record_unqueued(db_session, NotificationRequest(appointment.id, NEW_APPOINTMENT), 'Notification could not be queued.')

    assert log.status == NOTIFICATION_FAILED
    assert log.recipient_email == 'reviewer@example.com'
    assert log.error_message == 'Notification could not be queued.'


def test_render_rejects_unknown_notification_type(db_session, people, make_appointment) -> None:
    appointment = make_appointment(MONDAY, time(9, 0), time(10, 0))

    with pytest.raises(ValueError):
        render_notification(db_session, appointment, NotificationRequest(appointment.id, 'appointment_delegated'))


def test_render_skips_recipient_without_address(db_session, make_appointment) -> None:
    appointment = make_appointment(MONDAY, time(9, 0), time(10, 0))

    assert render_notification(db_session, appointment, NotificationRequest(appointment.id, NEW_APPOINTMENT)) is None
