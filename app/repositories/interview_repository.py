import secrets
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.interview import Interview
from app.models.tech_stack import TechStack
from app.schemas.interview import InterviewCreate


class InterviewRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, payload: InterviewCreate, tech_stacks: List[TechStack], created_by_id: str | None = None) -> Interview:
        interview = Interview(
            candidate_id=payload.candidate,
            role_id=payload.role,
            scheduled_date=payload.scheduled_date,
            scheduled_time=payload.scheduled_time,
            duration=payload.duration,
            created_by_id=created_by_id,
            join_token=secrets.token_urlsafe(24),
            tech_stacks=tech_stacks,
        )
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)
        return interview

    def list_all(self, candidate_id: str | None = None) -> List[Interview]:
        stmt = select(Interview)
        if candidate_id:
            stmt = stmt.where(Interview.candidate_id == candidate_id)
        stmt = stmt.order_by(Interview.created_at.desc())
        return list(self.db.scalars(stmt).all())

    def get_by_id(self, interview_id: str) -> Interview | None:
        return self.db.get(Interview, interview_id)

    def save(self, interview: Interview):
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)

    def delete(self, interview: Interview):
        self.db.delete(interview)
        self.db.commit()

    @staticmethod
    def tech_stack_ids(interview: Interview) -> List[str]:
        return [stack.id for stack in interview.tech_stacks]
