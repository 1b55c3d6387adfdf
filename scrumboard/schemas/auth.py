from pydantic import BaseModel

from scrumboard.schemas.user import ProfileResponse


class LoginRequest(BaseModel):
    email_or_username: str
    password: str


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    profile: ProfileResponse
