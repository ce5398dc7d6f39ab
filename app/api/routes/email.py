from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.routes.interviews import get_interview_or_404
from app.db.session import get_db
from app.models.user import User
from app.repositories.catalog_repository import RoleRepository
from app.repositories.interview_repository import InterviewRepository
from app.repositories.user_repository import UserRepository
from app.schemas.email import InvitationResponse, TokenVerification
from app.services.auth_service import require_admin
from app.services.email_service import build_interview_link, send_interview_invitation
from app.services.interview_service import check_window, current_time

router = APIRouter(prefix="/email", tags=["email"])


@router.post("/send-invitation/{interview_id}", response_model=InvitationResponse)
def send_invitation(interview_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    interview = get_interview_or_404(InterviewRepository(db), interview_id)
    candidate = UserRepository(db).get(interview.candidate_id)
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidate not found")

    role = RoleRepository(db).get(interview.role_id) if interview.role_id else None
    link = build_interview_link(interview.id, interview.join_token or "")
    delivered = send_interview_invitation(
        to_email=candidate.email,
        candidate_name=candidate.name or candidate.email.split("@")[0],
        role_name=role.name if role else "the position",
        tech_stacks=[stack.name for stack in interview.tech_stacks],
        date_label=interview.scheduled_date.strftime("%A, %B %d, %Y"),
        time_label=interview.scheduled_time,
        duration=interview.duration,
        interview_link=link,
    )
    return InvitationResponse(to=candidate.email, interview_link=link, delivered=delivered)


@router.get("/verify-token/{interview_id}", response_model=TokenVerification)
def verify_token(
    interview_id: str,
    token: str = "",
    db: Session = Depends(get_db),
    now: datetime = Depends(current_time),
):
    interview = get_interview_or_404(InterviewRepository(db), interview_id)
    if not token or token != interview.join_token:
        raise HTTPException(status_code=401, detail="Invalid interview token")

    check_window(interview.scheduled_start, interview.duration, now)
    return TokenVerification(valid=True, interview_id=interview.id, status=interview.status)
