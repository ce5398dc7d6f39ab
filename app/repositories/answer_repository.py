from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.answer import Answer


class AnswerRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, interview_id: str, question_id: str, fields: Dict[str, Any]) -> Answer:
        answer = Answer(interview_id=interview_id, question_id=question_id)
        self._apply(answer, fields)
        self.db.add(answer)
        self.db.commit()
        self.db.refresh(answer)
        return answer

    def get(self, answer_id: str) -> Answer | None:
        return self.db.get(Answer, answer_id)

    def find(self, interview_id: str, question_id: str) -> Answer | None:
        stmt = select(Answer).where(Answer.interview_id == interview_id, Answer.question_id == question_id)
        return self.db.scalars(stmt).first()

    def list(self, interview_ids: List[str] | None = None) -> List[Answer]:
        stmt = select(Answer)
        if interview_ids is not None:
            stmt = stmt.where(Answer.interview_id.in_(interview_ids))
        stmt = stmt.order_by(Answer.created_at.asc())
        return list(self.db.scalars(stmt).all())

    def update(self, answer: Answer, fields: Dict[str, Any]) -> Answer:
        self._apply(answer, fields)
        self.db.add(answer)
        self.db.commit()
        self.db.refresh(answer)
        return answer

    def upsert_many(self, items: List[tuple[str, str, Dict[str, Any]]]) -> List[Answer]:
        """Create or overwrite one answer per (interview, question) in a single transaction."""
        stored = []
        for interview_id, question_id, fields in items:
            answer = self.find(interview_id, question_id)
            if answer is None:
                answer = Answer(interview_id=interview_id, question_id=question_id)
                self.db.add(answer)
            self._apply(answer, fields)
            self.db.flush()
            stored.append(answer)
        self.db.commit()
        for answer in stored:
            self.db.refresh(answer)
        return stored

    def delete(self, answer: Answer):
        self.db.delete(answer)
        self.db.commit()

    @staticmethod
    def _apply(answer: Answer, fields: Dict[str, Any]):
        for key, value in fields.items():
            if key == "code_language" and not value:
                value = "javascript"
            setattr(answer, key, value)
