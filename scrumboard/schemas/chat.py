from datetime import datetime
from typing import List

from pydantic import BaseModel

from scrumboard.schemas.notice import Notice


class ChatMessage(BaseModel):
    id: str
    project_id: str
    user_id: str
    username: str
    message: str
    created_at: datetime


class ChatMessageCreate(BaseModel):
    message: str = ""


class ChatHistory(BaseModel):
    messages: List[ChatMessage] = []
    notices: List[Notice] = []
