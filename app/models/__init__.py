from app.models.answer import Answer
from app.models.interview import Interview
from app.models.question import Question
from app.models.tech_stack import Role, TechStack
from app.models.user import User

__all__ = [
    "Answer",
    "Interview",
    "Question",
    "Role",
    "TechStack",
    "User",
]
