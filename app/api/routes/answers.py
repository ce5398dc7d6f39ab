import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.answer import Answer
from app.models.interview import Interview
from app.models.user import User
from app.repositories.answer_repository import AnswerRepository
from app.repositories.interview_repository import InterviewRepository
from app.schemas.answer import AnswerCreate, AnswerOut, AnswerUpdate, Criteria
from app.services.auth_service import get_current_user, require_admin
from app.services.interview_service import ensure_can_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/answers", tags=["answers"])

ADMIN_FIELDS = {"score", "feedback", "criteria"}
CANDIDATE_FIELDS = {"audio_url", "transcript", "code", "code_language"}


def answer_out(answer: Answer) -> AnswerOut:
    return AnswerOut(
        id=answer.id,
        interview=answer.interview_id,
        question=answer.question_id,
        audio_url=answer.audio_url,
        transcript=answer.transcript,
        code=answer.code,
        code_language=answer.code_language,
        code_evaluation=answer.code_evaluation,
        score=answer.score,
        feedback=answer.feedback,
        criteria=Criteria.model_validate(answer.criteria) if answer.criteria else None,
        created_at=answer.created_at,
    )


def _fields(body: AnswerCreate | AnswerUpdate, allowed: set[str] | None = None) -> Dict[str, Any]:
    fields = body.model_dump(exclude_unset=True, exclude={"interview", "question", "criteria"})
    if body.criteria is not None:
        fields["criteria"] = body.criteria.model_dump(by_alias=True)
    if allowed is not None:
        fields = {key: value for key, value in fields.items() if key in allowed}
    return fields


def _interview_for(db: Session, interview_id: str, user: User) -> Interview:
    interview = InterviewRepository(db).get_by_id(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    ensure_can_view(interview, user)
    return interview


@router.get("", response_model=list[AnswerOut])
def list_answers(
    interview_id: str | None = Query(default=None, alias="interview"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    repo = AnswerRepository(db)
    if interview_id:
        _interview_for(db, interview_id, user)
        return [answer_out(a) for a in repo.list(interview_ids=[interview_id])]
    if user.is_admin:
        return [answer_out(a) for a in repo.list()]

    own = [item.id for item in InterviewRepository(db).list_all(candidate_id=user.id)]
    return [answer_out(a) for a in repo.list(interview_ids=own)]


@router.get("/{answer_id}", response_model=AnswerOut)
def get_answer(answer_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    answer = AnswerRepository(db).get(answer_id)
    if not answer:
        raise HTTPException(status_code=404, detail="Answer not found")
    _interview_for(db, answer.interview_id, user)
    return answer_out(answer)


@router.post("", response_model=AnswerOut, status_code=201)
def create_answer(body: AnswerCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    _interview_for(db, body.interview, user)
    # one answer per (interview, question): a repeated create overwrites it
    repo = AnswerRepository(db)
    existing = repo.find(body.interview, body.question)
    if existing is not None:
        answer = repo.update(existing, _fields(body))
    else:
        answer = repo.create(body.interview, body.question, _fields(body))
    logger.info(
        "Answer %s %s: interview=%s question=%s audio=%s transcript=%s score=%s",
        answer.id,
        "updated" if existing is not None else "created",
        answer.interview_id,
        answer.question_id,
        bool(answer.audio_url),
        bool(answer.transcript),
        answer.score,
    )
    return answer_out(answer)


@router.post("/batch", response_model=list[AnswerOut], status_code=201)
def batch_answers(body: list[AnswerCreate], db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    for interview_id in {item.interview for item in body}:
        _interview_for(db, interview_id, user)

    stored = AnswerRepository(db).upsert_many([(item.interview, item.question, _fields(item)) for item in body])
    logger.info("Batch stored %d answers", len(stored))
    return [answer_out(a) for a in stored]


@router.put("/{answer_id}", response_model=AnswerOut)
def update_answer(
    answer_id: str,
    body: AnswerUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    repo = AnswerRepository(db)
    answer = repo.get(answer_id)
    if not answer:
        raise HTTPException(status_code=404, detail="Answer not found")

    if user.is_admin:
        allowed = ADMIN_FIELDS
    else:
        interview = InterviewRepository(db).get_by_id(answer.interview_id)
        if not interview or interview.candidate_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to update this answer")
        allowed = CANDIDATE_FIELDS

    return answer_out(repo.update(answer, _fields(body, allowed)))


@router.delete("/{answer_id}")
def delete_answer(answer_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = AnswerRepository(db)
    answer = repo.get(answer_id)
    if not answer:
        raise HTTPException(status_code=404, detail="Answer not found")
    repo.delete(answer)
    return {}
