from datetime import date, datetime

import pytest

from app.core.errors import InterviewWindowError
from app.models.interview import Interview
from app.services.interview_service import (
    NOT_STARTED_MESSAGE,
    WINDOW_PASSED_MESSAGE,
    can_transition,
    check_window,
    current_time,
)
from main import app

START = datetime(2024, 1, 1, 10, 0)


def at(hour: int, minute: int):
    return lambda: datetime(2024, 1, 1, hour, minute)


@pytest.fixture
def clock():
    def set_time(hour: int, minute: int):
        app.dependency_overrides[current_time] = at(hour, minute)

    return set_time


def test_scheduled_start_combines_date_and_time():
    interview = Interview(scheduled_date=date(2024, 1, 1), scheduled_time="10:00", duration=30)

    assert interview.scheduled_start == START


@pytest.mark.parametrize(
    "now, message",
    [
        (datetime(2024, 1, 1, 9, 59), NOT_STARTED_MESSAGE),
        (datetime(2024, 1, 1, 10, 31), WINDOW_PASSED_MESSAGE),
    ],
)
def test_check_window_rejects_outside(now, message):
    with pytest.raises(InterviewWindowError) as exc_info:
        check_window(START, 30, now)
    assert exc_info.value.message == message


@pytest.mark.parametrize("minute", [0, 15, 30])
def test_check_window_is_inclusive(minute):
    check_window(START, 30, datetime(2024, 1, 1, 10, minute))


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        ("scheduled", "in-progress", True),
        ("in-progress", "completed", True),
        ("scheduled", "completed", True),
        ("scheduled", "cancelled", True),
        ("in-progress", "cancelled", True),
        ("in-progress", "scheduled", False),
        ("completed", "in-progress", False),
        ("completed", "cancelled", False),
        ("cancelled", "scheduled", False),
        ("completed", "completed", True),
    ],
)
def test_status_only_moves_forward(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_start_outside_then_inside_window(client, candidate, interview, clock):
    clock(9, 59)
    early = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=candidate.headers)
    assert early.status_code == 403
    assert early.json()["detail"] == NOT_STARTED_MESSAGE

    clock(10, 15)
    started = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=candidate.headers)
    assert started.status_code == 200
    assert started.json()["status"] == "in-progress"


def test_window_is_checked_for_every_role(client, admin, other_candidate, interview, clock):
    clock(9, 59)
    for user in (admin, other_candidate):
        response = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=user.headers)
        assert response.status_code == 403
        assert response.json()["detail"] == NOT_STARTED_MESSAGE

    clock(11, 0)
    response = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=admin.headers)
    assert response.json()["detail"] == WINDOW_PASSED_MESSAGE


def test_only_owner_can_start_inside_window(client, other_candidate, interview, clock):
    clock(10, 5)
    response = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=other_candidate.headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized"


def test_start_twice_is_rejected(client, candidate, interview, clock):
    clock(10, 5)
    client.post(f"/api/v1/interviews/{interview['id']}/start", headers=candidate.headers)
    again = client.post(f"/api/v1/interviews/{interview['id']}/start", headers=candidate.headers)

    assert again.status_code == 400


def test_candidate_update_only_changes_status(client, candidate, interview):
    response = client.put(
        f"/api/v1/interviews/{interview['id']}",
        json={"status": "in-progress", "duration": 90, "scheduledTime": "18:00"},
        headers=candidate.headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "in-progress"
    assert body["duration"] == 30
    assert body["scheduledTime"] == "10:00"


def test_completing_stamps_completed_at_and_blocks_regression(client, candidate, interview, clock):
    clock(10, 20)
    url = f"/api/v1/interviews/{interview['id']}"
    completed = client.put(url, json={"status": "completed"}, headers=candidate.headers)
    assert completed.status_code == 200
    assert completed.json()["completedAt"] == "2024-01-01T10:20:00"

    back = client.put(url, json={"status": "in-progress"}, headers=candidate.headers)
    assert back.status_code == 400


def test_admin_can_reschedule(client, admin, interview):
    response = client.put(
        f"/api/v1/interviews/{interview['id']}",
        json={"scheduledTime": "14:30", "duration": 45},
        headers=admin.headers,
    )

    assert response.status_code == 200
    assert response.json()["scheduledTime"] == "14:30"
    assert response.json()["duration"] == 45


def test_candidates_only_see_their_interviews(client, admin, candidate, other_candidate, interview):
    assert [item["id"] for item in client.get("/api/v1/interviews", headers=candidate.headers).json()] == [interview["id"]]
    assert client.get("/api/v1/interviews", headers=other_candidate.headers).json() == []
    assert len(client.get("/api/v1/interviews", headers=admin.headers).json()) == 1

    forbidden = client.get(f"/api/v1/interviews/{interview['id']}", headers=other_candidate.headers)
    assert forbidden.status_code == 403


def test_interview_questions_come_from_its_tech_stacks(client, candidate, interview, questions):
    response = client.get(f"/api/v1/interviews/{interview['id']}/questions", headers=candidate.headers)

    assert response.status_code == 200
    assert [item["text"] for item in response.json()] == [q["text"] for q in questions]
    assert all(item["techStack"] == interview["techStacks"][0] for item in response.json())


def test_create_requires_admin(client, candidate, tech_stack):
    response = client.post(
        "/api/v1/interviews",
        json={"candidate": candidate.id, "techStacks": [tech_stack["id"]], "scheduledDate": "2024-01-01", "scheduledTime": "10:00"},
        headers=candidate.headers,
    )

    assert response.status_code == 403


def test_create_merges_legacy_tech_stack(client, admin, candidate, tech_stack):
    response = client.post(
        "/api/v1/interviews",
        json={"candidate": candidate.id, "techStack": tech_stack["id"], "scheduledDate": "2024-01-01", "scheduledTime": "09:00"},
        headers=admin.headers,
    )

    assert response.status_code == 201
    assert response.json()["techStacks"] == [tech_stack["id"]]
    assert response.json()["status"] == "scheduled"


def test_requests_without_token_are_rejected(client, interview):
    assert client.get("/api/v1/interviews").status_code == 401
