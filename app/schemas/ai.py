from typing import Literal, Optional

from pydantic import Field

from app.schemas.answer import Criteria
from app.schemas.common import ApiModel


class EvaluateRequest(ApiModel):
    question: str = ""
    transcript: Optional[str] = None
    tech_stack: Optional[str] = None
    code: Optional[str] = None
    code_language: Optional[str] = None


class Evaluation(ApiModel):
    score: float = Field(ge=0, le=10)
    feedback: str
    criteria: Criteria
    code_evaluation: Optional[str] = None
    evaluation_method: Literal["openai", "fallback"] = "openai"


class TranscribeResponse(ApiModel):
    text: str


class UploadResponse(ApiModel):
    file_name: str
    file_url: str
