from typing import List, Optional

from pydantic import BaseModel

from scrumboard.schemas.notice import Notice


class UserRecord(BaseModel):
    """Row of the backend `users` table."""

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileResponse(BaseModel):
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    theme: str

    class Config:
        from_attributes = True


class UsernameUpdate(BaseModel):
    username: str = ""


class EmailUpdate(BaseModel):
    email: str = ""
    password: str = ""


class PasswordUpdate(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_new_password: str = ""


class SettingsResponse(BaseModel):
    ok: bool
    profile: Optional[ProfileResponse] = None
    notices: List[Notice] = []
