from typing import List

from pydantic import BaseModel

from scrumboard.schemas.notice import Notice
from scrumboard.schemas.sprint import Sprint
from scrumboard.schemas.task import Task


class BacklogResponse(BaseModel):
    tasks: List[Task]
    notices: List[Notice] = []


class AvailableSprintsResponse(BaseModel):
    sprints: List[Sprint]
