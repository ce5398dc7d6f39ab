import secrets

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import User


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, email: str, password_hash: str, role: str = "user") -> User:
        user = User(name=name, email=email.lower(), password_hash=password_hash, role=role)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        return self.db.scalars(stmt).first()

    def get_by_token(self, token: str) -> User | None:
        stmt = select(User).where(User.api_token == token)
        return self.db.scalars(stmt).first()

    def issue_token(self, user: User) -> str:
        user.api_token = secrets.token_urlsafe(32)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user.api_token
