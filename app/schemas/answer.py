from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import ApiModel


class Criteria(ApiModel):
    technical_accuracy: float = Field(default=0, ge=0, le=10)
    completeness: float = Field(default=0, ge=0, le=10)
    clarity: float = Field(default=0, ge=0, le=10)
    examples: float = Field(default=0, ge=0, le=10)


class AnswerCreate(ApiModel):
    interview: str = Field(min_length=1)
    question: str = Field(min_length=1)
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    code: Optional[str] = None
    code_language: Optional[str] = None
    code_evaluation: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=10)
    feedback: Optional[str] = None
    criteria: Optional[Criteria] = None


class AnswerUpdate(ApiModel):
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    code: Optional[str] = None
    code_language: Optional[str] = None
    code_evaluation: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=10)
    feedback: Optional[str] = None
    criteria: Optional[Criteria] = None


class AnswerOut(ApiModel):
    id: str
    interview: str
    question: str
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    code: Optional[str] = None
    code_language: Optional[str] = None
    code_evaluation: Optional[str] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    criteria: Optional[Criteria] = None
    created_at: datetime
