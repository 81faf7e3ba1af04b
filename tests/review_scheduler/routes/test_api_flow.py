import pytest
from fastapi.testclient import TestClient

from review_scheduler.auth.jwt_handler import create_access_token
from review_scheduler.main import app
from review_scheduler.routes import dependencies


@pytest.fixture
def client(db_session, people, notifier, redis_cache, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('review_scheduler.routes.appointment_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('review_scheduler.routes.calendar_routes.ensure_database_ready', lambda: None)

    def override_get_db():
        yield db_session

    app.dependency_overrides[dependencies.get_db] = override_get_db
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_reviewer_cache] = lambda: redis_cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_header(email: str) -> dict:
    return {'Authorization': f'Bearer {create_access_token(subject=email)}'}


def test_book_accept_and_calendar_flow(client: TestClient) -> None:
    applicant = auth_header('applicant@example.com')
    reviewer = auth_header('reviewer@example.com')

    created = client.post(
        '/appointments',
        json={
            'reviewer_id': 5,
            'date': '2025-11-24',
            'time_start': '09:00',
            'time_end': '10:00',
            'object_name': 'Distribution agreement',
        },
        headers=applicant,
    )
    assert created.status_code == 201
    appointment_id = created.json()['id']
    assert created.json()['status'] == 'pending'

    clash = client.post(
        '/appointments',
        json={
            'reviewer_id': 5,
            'date': '2025-11-24',
            'time_start': '09:45',
            'time_end': '10:15',
            'object_name': 'Another agreement',
        },
        headers=applicant,
    )
    assert clash.status_code == 409
    assert '09:00-10:00' in clash.json()['detail']

    accepted = client.post(f'/appointments/{appointment_id}/accept', headers=reviewer)
    assert accepted.status_code == 200
    assert accepted.json()['status'] == 'accepted'

    again = client.post(f'/appointments/{appointment_id}/accept', headers=reviewer)
    assert again.status_code == 409

    calendar = client.get('/calendar/5/2025-11-24', headers=applicant)
    assert calendar.status_code == 200
    slots = calendar.json()['available_slots']
    assert slots[0] == {'start': '10:00:00', 'end': '10:15:00'}
    assert slots[-1] == {'start': '17:45:00', 'end': '18:00:00'}


def test_requests_without_valid_token_are_refused(client: TestClient) -> None:
    assert client.get('/calendar/5/2025-11-24', headers={'Authorization': 'Bearer not-a-token'}).status_code == 401
    assert client.get('/calendar/5/2025-11-24', headers=auth_header('stranger@example.com')).status_code == 401


def test_health_endpoint(client: TestClient) -> None:
    assert client.get('/').json() == {'status': 'Contract Review Scheduler API Running'}
