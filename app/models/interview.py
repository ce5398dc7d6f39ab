from datetime import date, datetime
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.base import gen_id
from app.models.tech_stack import TechStack

INTERVIEW_STATUSES = ("scheduled", "in-progress", "completed", "cancelled")

interview_tech_stacks = Table(
    "interview_tech_stacks",
    Base.metadata,
    Column("interview_id", String(32), ForeignKey("interviews.id", ondelete="CASCADE"), primary_key=True),
    Column("tech_stack_id", String(32), ForeignKey("tech_stacks.id", ondelete="CASCADE"), primary_key=True),
)


class Interview(Base):
    __tablename__ = "interviews"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=gen_id)
    candidate_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    role_id: Mapped[str | None] = mapped_column(String(32), ForeignKey("roles.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="scheduled", nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    join_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_by_id: Mapped[str | None] = mapped_column(String(32), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    tech_stacks: Mapped[list[TechStack]] = relationship(secondary=interview_tech_stacks, lazy="selectin")

    @property
    def scheduled_start(self) -> datetime:
        hour, minute = (int(part) for part in self.scheduled_time.split(":")[:2])
        return datetime.combine(self.scheduled_date, datetime.min.time()).replace(hour=hour, minute=minute)
