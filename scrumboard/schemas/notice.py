import enum

from pydantic import BaseModel


class NoticeLevel(str, enum.Enum):
    success = "success"
    info = "info"
    error = "error"


class Notice(BaseModel):
    """User-visible outcome of a workflow (what the browser shows as a toast)."""

    level: NoticeLevel
    message: str

    @classmethod
    def success(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.success, message=message)

    @classmethod
    def info(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.info, message=message)

    @classmethod
    def error(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.error, message=message)
