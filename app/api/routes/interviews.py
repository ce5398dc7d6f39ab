import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.routes.catalog import questions_for_stacks
from app.db.session import get_db
from app.models.interview import Interview
from app.models.user import User
from app.repositories.catalog_repository import RoleRepository, TechStackRepository
from app.repositories.interview_repository import InterviewRepository
from app.repositories.user_repository import UserRepository
from app.schemas.catalog import QuestionOut
from app.schemas.interview import InterviewCreate, InterviewOut, InterviewUpdate
from app.services.auth_service import get_current_user, require_admin
from app.services.interview_service import apply_status, current_time, ensure_can_view, start_interview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"])


def interview_out(interview: Interview) -> InterviewOut:
    return InterviewOut(
        id=interview.id,
        candidate=interview.candidate_id,
        role=interview.role_id,
        tech_stacks=InterviewRepository.tech_stack_ids(interview),
        status=interview.status,
        scheduled_date=interview.scheduled_date,
        scheduled_time=interview.scheduled_time,
        duration=interview.duration,
        created_by=interview.created_by_id,
        created_at=interview.created_at,
        completed_at=interview.completed_at,
    )


def get_interview_or_404(repo: InterviewRepository, interview_id: str) -> Interview:
    interview = repo.get_by_id(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview


@router.get("", response_model=list[InterviewOut])
def list_interviews(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    repo = InterviewRepository(db)
    candidate_id = None if user.is_admin else user.id
    return [interview_out(item) for item in repo.list_all(candidate_id=candidate_id)]


@router.get("/{interview_id}", response_model=InterviewOut)
def get_interview(interview_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    interview = get_interview_or_404(InterviewRepository(db), interview_id)
    ensure_can_view(interview, user)
    return interview_out(interview)


@router.get("/{interview_id}/questions", response_model=list[QuestionOut])
def get_interview_questions(
    interview_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    interview = get_interview_or_404(InterviewRepository(db), interview_id)
    ensure_can_view(interview, user)
    return questions_for_stacks(db, InterviewRepository.tech_stack_ids(interview))


@router.post("", response_model=InterviewOut, status_code=201)
def create_interview(body: InterviewCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if not UserRepository(db).get(body.candidate):
        raise HTTPException(status_code=404, detail=f"Candidate not found with id of {body.candidate}")
    if body.role and not RoleRepository(db).get(body.role):
        raise HTTPException(status_code=404, detail=f"Role not found with id of {body.role}")

    stack_ids = body.all_tech_stack_ids()
    stacks = TechStackRepository(db).get_many(stack_ids)
    if len(stacks) != len(set(stack_ids)):
        raise HTTPException(status_code=404, detail="One or more tech stacks not found")

    interview = InterviewRepository(db).create(body, stacks, created_by_id=admin.id)
    logger.info("Interview %s scheduled for %s at %s %s", interview.id, body.candidate, body.scheduled_date, body.scheduled_time)
    return interview_out(interview)


@router.put("/{interview_id}", response_model=InterviewOut)
def update_interview(
    interview_id: str,
    body: InterviewUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    now: datetime = Depends(current_time),
):
    repo = InterviewRepository(db)
    interview = get_interview_or_404(repo, interview_id)
    ensure_can_view(interview, user)

    # candidates may only move the status; everything else is silently dropped
    if user.is_admin:
        if body.role is not None:
            interview.role_id = body.role or None
        if body.tech_stacks is not None:
            interview.tech_stacks = TechStackRepository(db).get_many(body.tech_stacks)
        if body.scheduled_date is not None:
            interview.scheduled_date = body.scheduled_date
        if body.scheduled_time is not None:
            interview.scheduled_time = body.scheduled_time
        if body.duration is not None:
            interview.duration = body.duration

    if body.status is not None:
        apply_status(interview, body.status, now)

    repo.save(interview)
    return interview_out(interview)


@router.post("/{interview_id}/start", response_model=InterviewOut)
def start(
    interview_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    now: datetime = Depends(current_time),
):
    repo = InterviewRepository(db)
    interview = get_interview_or_404(repo, interview_id)
    start_interview(interview, user, now=now)
    repo.save(interview)
    return interview_out(interview)


@router.delete("/{interview_id}")
def delete_interview(interview_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = InterviewRepository(db)
    repo.delete(get_interview_or_404(repo, interview_id))
    return {}
