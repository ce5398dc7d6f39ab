from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.common import ApiModel

Difficulty = Literal["easy", "medium", "hard"]


class TechStackCreate(ApiModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)


class TechStackUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None


class TechStackOut(ApiModel):
    id: str
    name: str
    description: str
    created_at: datetime


class RoleCreate(ApiModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    tech_stacks: List[str] = Field(default_factory=list)


class RoleUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    tech_stacks: Optional[List[str]] = None


class RoleTechStacksRequest(ApiModel):
    tech_stack_ids: List[str] = Field(min_length=1)


class RoleOut(ApiModel):
    id: str
    name: str
    description: str
    tech_stacks: List[str]
    created_at: datetime


class QuestionCreate(ApiModel):
    tech_stack_id: str = Field(alias="techStack")
    text: str = Field(min_length=1)
    difficulty: Difficulty


class QuestionUpdate(ApiModel):
    text: Optional[str] = None
    difficulty: Optional[Difficulty] = None


class QuestionOut(ApiModel):
    id: str
    tech_stack_id: str = Field(alias="techStack")
    text: str
    difficulty: Difficulty
