"""
Interview lifecycle rules: the scheduled start window and forward-only status moves.

Both checks are pure functions of the interview and a timestamp so the same rules can
be applied by the API (authoritative) and by the candidate session (advisory).
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from app.core.errors import InterviewWindowError, InvalidStatusTransitionError, NotAuthorizedError
from app.models.interview import Interview
from app.models.user import User

logger = logging.getLogger(__name__)

NOT_STARTED_MESSAGE = "Interview has not started yet."
WINDOW_PASSED_MESSAGE = "Interview window has passed."

STATUS_ORDER = {"scheduled": 0, "in-progress": 1, "completed": 2}
TERMINAL_STATUSES = {"completed", "cancelled"}


def current_time() -> datetime:
    """Naive local time. Schedules and timestamps are all local wall-clock values."""
    return datetime.now()


def window_bounds(scheduled_start: datetime, duration_minutes: int) -> tuple[datetime, datetime]:
    return scheduled_start, scheduled_start + timedelta(minutes=duration_minutes or 30)


def check_window(scheduled_start: datetime, duration_minutes: int, now: datetime):
    start, end = window_bounds(scheduled_start, duration_minutes)
    if now < start:
        raise InterviewWindowError(NOT_STARTED_MESSAGE)
    if now > end:
        raise InterviewWindowError(WINDOW_PASSED_MESSAGE)


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if target == "cancelled":
        return True
    return STATUS_ORDER.get(target, -1) > STATUS_ORDER.get(current, -1)


def apply_status(interview: Interview, target: str, now: Optional[datetime] = None):
    if not can_transition(interview.status, target):
        raise InvalidStatusTransitionError(
            f"Cannot change interview status from {interview.status} to {target}"
        )
    if target == "completed" and interview.completed_at is None:
        interview.completed_at = now or current_time()
    interview.status = target


def ensure_can_view(interview: Interview, user: User):
    if interview.candidate_id != user.id and not user.is_admin:
        raise NotAuthorizedError("Not authorized to access this interview")


def start_interview(interview: Interview, user: User, now: Optional[datetime] = None):
    """Move a scheduled interview to in-progress for its candidate, inside its window.

    The window is checked before ownership so that out-of-window starts fail the same
    way for every caller.
    """
    now = now or current_time()
    check_window(interview.scheduled_start, interview.duration, now)
    if interview.candidate_id != user.id:
        raise NotAuthorizedError("Not authorized")
    if interview.status != "scheduled":
        raise InvalidStatusTransitionError("Interview cannot be started in current state.")

    apply_status(interview, "in-progress")
    logger.info("Interview %s started by %s", interview.id, user.id)
