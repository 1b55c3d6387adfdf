import enum
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from scrumboard.schemas.notice import Notice
from scrumboard.schemas.task import Task


class SprintStatus(str, enum.Enum):
    planned = "planned"
    active = "active"
    completed = "completed"


# planned -> active -> completed; completed has no successor
NEXT_SPRINT_STATUS = {
    SprintStatus.planned: SprintStatus.active,
    SprintStatus.active: SprintStatus.completed,
}


class Sprint(BaseModel):
    id: str
    project_id: str
    title: str
    start_date: date
    end_date: date
    status: SprintStatus = SprintStatus.planned


class SprintSummary(Sprint):
    progress: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    team_members: int = 0


class SprintCreate(BaseModel):
    title: str
    start_date: date
    end_date: date


class BoardColumn(BaseModel):
    id: str
    title: str
    count: int
    tasks: List[Task]


class SprintBoard(BaseModel):
    sprint: SprintSummary
    columns: List[BoardColumn]
    notices: List[Notice] = []


class SprintActionResponse(BaseModel):
    sprint: Optional[Sprint] = None
    notices: List[Notice] = []
