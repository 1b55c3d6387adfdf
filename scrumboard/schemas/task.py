import enum
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel


class TaskStatus(str, enum.Enum):
    backlog = "backlog"
    todo = "todo"
    in_progress = "in-progress"
    review = "review"
    done = "done"


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


# Columns of the sprint task board, in display order
BOARD_COLUMNS: List[TaskStatus] = [
    TaskStatus.todo,
    TaskStatus.in_progress,
    TaskStatus.review,
    TaskStatus.done,
]

COLUMN_TITLES = {
    TaskStatus.backlog: "Backlog",
    TaskStatus.todo: "To Do",
    TaskStatus.in_progress: "In Progress",
    TaskStatus.review: "Review",
    TaskStatus.done: "Done",
}


class Task(BaseModel):
    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.backlog
    priority: TaskPriority = TaskPriority.medium
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    story_points: Optional[int] = None
    sprint_id: Optional[str] = None
    created_at: Optional[datetime] = None


class TaskForm(BaseModel):
    """Backlog item form as submitted by the browser.

    Validation is done by the workflow, not here, so that a bad form turns
    into a user notice instead of a 422.
    """

    title: str = ""
    description: str = ""
    priority: str = TaskPriority.medium.value
    assigned_to: Optional[str] = None
    story_points: Optional[int] = 1
    due_date: Optional[date] = None


class DraggableLocation(BaseModel):
    droppable_id: str
    index: int


class DragResult(BaseModel):
    draggable_id: str
    source: DraggableLocation
    destination: Optional[DraggableLocation] = None


class MoveToSprintRequest(BaseModel):
    sprint_id: str = ""
