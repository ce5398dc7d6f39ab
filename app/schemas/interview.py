from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.common import ApiModel

InterviewStatus = Literal["scheduled", "in-progress", "completed", "cancelled"]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class InterviewCreate(ApiModel):
    candidate: str = Field(min_length=1)
    role: Optional[str] = None
    tech_stacks: List[str] = Field(default_factory=list)
    # single-stack payloads from older clients
    tech_stack: Optional[str] = None
    scheduled_date: date
    scheduled_time: str = Field(pattern=TIME_PATTERN)
    duration: int = Field(default=30, ge=1, le=600)

    def all_tech_stack_ids(self) -> List[str]:
        ids = list(self.tech_stacks)
        if self.tech_stack and self.tech_stack not in ids:
            ids.append(self.tech_stack)
        return ids


class InterviewUpdate(ApiModel):
    status: Optional[InterviewStatus] = None
    role: Optional[str] = None
    tech_stacks: Optional[List[str]] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    duration: Optional[int] = Field(default=None, ge=1, le=600)


class InterviewOut(ApiModel):
    id: str
    candidate: str
    role: Optional[str] = None
    tech_stacks: List[str]
    status: InterviewStatus
    scheduled_date: date
    scheduled_time: str
    duration: int
    created_by: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
