from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.cache import question_cache
from app.db.session import get_db
from app.models.question import Question
from app.models.tech_stack import Role, TechStack
from app.models.user import User
from app.repositories.catalog_repository import QuestionRepository, RoleRepository, TechStackRepository
from app.schemas.catalog import (
    QuestionCreate,
    QuestionOut,
    QuestionUpdate,
    RoleCreate,
    RoleOut,
    RoleTechStacksRequest,
    RoleUpdate,
    TechStackCreate,
    TechStackOut,
    TechStackUpdate,
)
from app.services.auth_service import get_current_user, require_admin

router = APIRouter(tags=["catalog"])


def _stack_out(stack: TechStack) -> TechStackOut:
    return TechStackOut(id=stack.id, name=stack.name, description=stack.description, created_at=stack.created_at)


def _role_out(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        description=role.description,
        tech_stacks=[stack.id for stack in role.tech_stacks],
        created_at=role.created_at,
    )


def question_out(question: Question) -> QuestionOut:
    return QuestionOut(
        id=question.id,
        tech_stack_id=question.tech_stack_id,
        text=question.text,
        difficulty=question.difficulty,
    )


def _get_stack_or_404(repo: TechStackRepository, stack_id: str) -> TechStack:
    stack = repo.get(stack_id)
    if not stack:
        raise HTTPException(status_code=404, detail=f"Tech stack not found with id of {stack_id}")
    return stack


def _get_role_or_404(repo: RoleRepository, role_id: str) -> Role:
    role = repo.get(role_id)
    if not role:
        raise HTTPException(status_code=404, detail=f"Role not found with id of {role_id}")
    return role


# Tech stacks

@router.get("/techstacks", response_model=list[TechStackOut])
def list_tech_stacks(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_stack_out(stack) for stack in TechStackRepository(db).list_all()]


@router.get("/techstacks/{stack_id}", response_model=TechStackOut)
def get_tech_stack(stack_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _stack_out(_get_stack_or_404(TechStackRepository(db), stack_id))


@router.post("/techstacks", response_model=TechStackOut, status_code=201)
def create_tech_stack(body: TechStackCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        stack = TechStackRepository(db).create(body.name, body.description)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=f"Tech stack {body.name} already exists")
    return _stack_out(stack)


@router.put("/techstacks/{stack_id}", response_model=TechStackOut)
def update_tech_stack(
    stack_id: str,
    body: TechStackUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    repo = TechStackRepository(db)
    stack = _get_stack_or_404(repo, stack_id)
    if body.name is not None:
        stack.name = body.name.strip()
    if body.description is not None:
        stack.description = body.description
    repo.save(stack)
    return _stack_out(stack)


@router.delete("/techstacks/{stack_id}")
def delete_tech_stack(stack_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = TechStackRepository(db)
    repo.delete(_get_stack_or_404(repo, stack_id))
    question_cache.invalidate(stack_id)
    return {}


# Roles

@router.get("/roles", response_model=list[RoleOut])
def list_roles(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [_role_out(role) for role in RoleRepository(db).list_all()]


@router.get("/roles/{role_id}", response_model=RoleOut)
def get_role(role_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _role_out(_get_role_or_404(RoleRepository(db), role_id))


@router.post("/roles", response_model=RoleOut, status_code=201)
def create_role(body: RoleCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    stacks = TechStackRepository(db).get_many(body.tech_stacks)
    try:
        role = RoleRepository(db).create(body.name, body.description, stacks)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=f"Role {body.name} already exists")
    return _role_out(role)


@router.put("/roles/{role_id}", response_model=RoleOut)
def update_role(role_id: str, body: RoleUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = RoleRepository(db)
    role = _get_role_or_404(repo, role_id)
    if body.name is not None:
        role.name = body.name.strip()
    if body.description is not None:
        role.description = body.description
    if body.tech_stacks is not None:
        role.tech_stacks = TechStackRepository(db).get_many(body.tech_stacks)
    repo.save(role)
    return _role_out(role)


@router.put("/roles/{role_id}/techstacks", response_model=RoleOut)
def add_role_tech_stacks(
    role_id: str,
    body: RoleTechStacksRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    repo = RoleRepository(db)
    role = _get_role_or_404(repo, role_id)
    stacks = TechStackRepository(db).get_many(body.tech_stack_ids)
    if len(stacks) != len(set(body.tech_stack_ids)):
        raise HTTPException(status_code=404, detail="One or more tech stacks not found")

    existing = {stack.id for stack in role.tech_stacks}
    role.tech_stacks = role.tech_stacks + [stack for stack in stacks if stack.id not in existing]
    repo.save(role)
    return _role_out(role)


@router.delete("/roles/{role_id}/techstacks/{stack_id}", response_model=RoleOut)
def remove_role_tech_stack(
    role_id: str,
    stack_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    repo = RoleRepository(db)
    role = _get_role_or_404(repo, role_id)
    role.tech_stacks = [stack for stack in role.tech_stacks if stack.id != stack_id]
    repo.save(role)
    return _role_out(role)


@router.delete("/roles/{role_id}")
def delete_role(role_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = RoleRepository(db)
    repo.delete(_get_role_or_404(repo, role_id))
    return {}


# Questions

def questions_for_stacks(db: Session, stack_ids: list[str]) -> list[QuestionOut]:
    repo = QuestionRepository(db)
    pool: list[QuestionOut] = []
    for stack_id in stack_ids:
        cached = question_cache.get(stack_id)
        if cached is None:
            cached = [question_out(q).model_dump() for q in repo.list_all(tech_stack_id=stack_id)]
            question_cache.set(stack_id, cached)
        pool.extend(QuestionOut.model_validate(item) for item in cached)
    return pool


@router.get("/questions", response_model=list[QuestionOut])
def list_questions(
    tech_stack: str | None = Query(default=None, alias="techStack"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if tech_stack:
        return questions_for_stacks(db, [tech_stack])
    return [question_out(q) for q in QuestionRepository(db).list_all()]


@router.get("/questions/{question_id}", response_model=QuestionOut)
def get_question(question_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    question = QuestionRepository(db).get(question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question_out(question)


@router.post("/questions", response_model=QuestionOut, status_code=201)
def create_question(body: QuestionCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    _get_stack_or_404(TechStackRepository(db), body.tech_stack_id)
    question = QuestionRepository(db).create(body.tech_stack_id, body.text, body.difficulty)
    question_cache.invalidate(body.tech_stack_id)
    return question_out(question)


@router.put("/questions/{question_id}", response_model=QuestionOut)
def update_question(
    question_id: str,
    body: QuestionUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    repo = QuestionRepository(db)
    question = repo.get(question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    if body.text is not None:
        question.text = body.text.strip()
    if body.difficulty is not None:
        question.difficulty = body.difficulty
    repo.save(question)
    question_cache.invalidate(question.tech_stack_id)
    return question_out(question)


@router.delete("/questions/{question_id}")
def delete_question(question_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    repo = QuestionRepository(db)
    question = repo.get(question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    stack_id = question.tech_stack_id
    repo.delete(question)
    question_cache.invalidate(stack_id)
    return {}
