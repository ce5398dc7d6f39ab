from pydantic import Field

from app.schemas.common import ApiModel


class RegisterRequest(ApiModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class LoginRequest(ApiModel):
    email: str
    password: str


class UserOut(ApiModel):
    id: str
    name: str
    email: str
    role: str


class AuthResponse(ApiModel):
    token: str
    user: UserOut
