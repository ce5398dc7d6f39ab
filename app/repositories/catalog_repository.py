from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.question import Question
from app.models.tech_stack import Role, TechStack


class TechStackRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, description: str) -> TechStack:
        stack = TechStack(name=name.strip(), description=description)
        self.db.add(stack)
        self.db.commit()
        self.db.refresh(stack)
        return stack

    def list_all(self) -> List[TechStack]:
        stmt = select(TechStack).order_by(TechStack.name.asc())
        return list(self.db.scalars(stmt).all())

    def get(self, stack_id: str) -> TechStack | None:
        return self.db.get(TechStack, stack_id)

    def get_many(self, stack_ids: List[str]) -> List[TechStack]:
        if not stack_ids:
            return []
        stmt = select(TechStack).where(TechStack.id.in_(stack_ids))
        found = {stack.id: stack for stack in self.db.scalars(stmt).all()}
        return [found[stack_id] for stack_id in stack_ids if stack_id in found]

    def save(self, stack: TechStack):
        self.db.add(stack)
        self.db.commit()
        self.db.refresh(stack)

    def delete(self, stack: TechStack):
        self.db.delete(stack)
        self.db.commit()


class RoleRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, description: str, tech_stacks: List[TechStack]) -> Role:
        role = Role(name=name.strip(), description=description, tech_stacks=tech_stacks)
        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)
        return role

    def list_all(self) -> List[Role]:
        stmt = select(Role).order_by(Role.name.asc())
        return list(self.db.scalars(stmt).all())

    def get(self, role_id: str) -> Role | None:
        return self.db.get(Role, role_id)

    def save(self, role: Role):
        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)

    def delete(self, role: Role):
        self.db.delete(role)
        self.db.commit()


class QuestionRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, tech_stack_id: str, text: str, difficulty: str) -> Question:
        question = Question(tech_stack_id=tech_stack_id, text=text.strip(), difficulty=difficulty)
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        return question

    def list_all(self, tech_stack_id: str | None = None) -> List[Question]:
        stmt = select(Question)
        if tech_stack_id:
            stmt = stmt.where(Question.tech_stack_id == tech_stack_id)
        stmt = stmt.order_by(Question.created_at.asc())
        return list(self.db.scalars(stmt).all())

    def list_for_stacks(self, tech_stack_ids: List[str]) -> List[Question]:
        if not tech_stack_ids:
            return []
        stmt = (
            select(Question)
            .where(Question.tech_stack_id.in_(tech_stack_ids))
            .order_by(Question.created_at.asc())
        )
        return list(self.db.scalars(stmt).all())

    def get(self, question_id: str) -> Question | None:
        return self.db.get(Question, question_id)

    def save(self, question: Question):
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)

    def delete(self, question: Question):
        self.db.delete(question)
        self.db.commit()
