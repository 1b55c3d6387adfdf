import logging
from typing import List, Optional

from scrumboard.schemas.notice import Notice
from scrumboard.schemas.sprint import (
    NEXT_SPRINT_STATUS,
    Sprint,
    SprintBoard,
    SprintCreate,
    SprintStatus,
    SprintSummary,
)
from scrumboard.schemas.task import DragResult, Task, TaskStatus
from scrumboard.services.backend import BackendClient
from scrumboard.services.board import UnknownColumnError, group_by_column, resolve_drop_status

log = logging.getLogger(__name__)

ALL_SPRINTS = "all"


def available_sprints(sprints: List[Sprint]) -> List[Sprint]:
    """Sprints a backlog task may be moved into; completed ones are closed."""
    return [sprint for sprint in sprints if sprint.status != SprintStatus.completed]


def filter_by_status(sprints: List[Sprint], status: str = ALL_SPRINTS) -> List[Sprint]:
    if status in (ALL_SPRINTS, "", None):
        return list(sprints)
    return [sprint for sprint in sprints if sprint.status.value == status]


def summarize(sprint: Sprint, tasks: List[Task]) -> SprintSummary:
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == TaskStatus.done)
    assignees = {task.assigned_to for task in tasks if task.assigned_to}
    return SprintSummary(
        **sprint.model_dump(),
        progress=round(completed * 100 / total) if total else 0,
        total_tasks=total,
        completed_tasks=completed,
        team_members=len(assignees),
    )


def validate_sprint_form(form: SprintCreate) -> Optional[str]:
    if not form.title.strip():
        return "Sprint title is required"
    if form.end_date < form.start_date:
        return "Sprint end date must not be before its start date"
    return None


class SprintPlanner:
    """Sprints of one project: listing, creation, lifecycle and the task board."""

    def __init__(self, backend: BackendClient, project_id: str):
        self.backend = backend
        self.project_id = project_id
        self.notices: List[Notice] = []

    async def list_sprints(self, status: str = ALL_SPRINTS) -> List[Sprint]:
        return filter_by_status(await self.backend.list_sprints(self.project_id), status)

    async def create_sprint(self, form: SprintCreate, is_owner: bool) -> Optional[Sprint]:
        if not is_owner:
            self.notices.append(Notice.error("Only the project owner can create sprints"))
            return None
        error = validate_sprint_form(form)
        if error:
            self.notices.append(Notice.error(error))
            return None

        try:
            sprint = await self.backend.create_sprint(
                {
                    "project_id": self.project_id,
                    "title": form.title.strip(),
                    "start_date": form.start_date.isoformat(),
                    "end_date": form.end_date.isoformat(),
                    "status": SprintStatus.planned.value,
                }
            )
        except Exception as e:
            log.error(f"Error creating sprint in project {self.project_id}: {e}")
            self.notices.append(Notice.error("Failed to create sprint"))
            return None

        self.notices.append(Notice.success("Sprint created"))
        return sprint

    async def advance_sprint(self, sprint_id: str, is_owner: bool) -> Optional[Sprint]:
        """planned -> active -> completed"""
        if not is_owner:
            self.notices.append(Notice.error("Only the project owner can change sprint status"))
            return None
        try:
            sprint = await self.backend.get_sprint(sprint_id)
            next_status = NEXT_SPRINT_STATUS.get(sprint.status)
            if next_status is None:
                self.notices.append(Notice.error("Sprint is completed and can no longer change"))
                return sprint
            sprint = await self.backend.update_sprint(sprint_id, {"status": next_status.value})
        except Exception as e:
            log.error(f"Error advancing sprint {sprint_id}: {e}")
            self.notices.append(Notice.error("Failed to update sprint status"))
            return None

        self.notices.append(Notice.success(f"Sprint is now {sprint.status.value}"))
        return sprint

    async def board(self, sprint_id: str) -> SprintBoard:
        sprint = await self.backend.get_sprint(sprint_id)
        tasks = await self.backend.list_sprint_tasks(sprint_id)
        return SprintBoard(
            sprint=summarize(sprint, tasks),
            columns=group_by_column(tasks),
            notices=list(self.notices),
        )

    async def active_board(self) -> Optional[SprintBoard]:
        sprints = await self.backend.list_sprints(self.project_id)
        active = [sprint for sprint in sprints if sprint.status == SprintStatus.active]
        if not active:
            return None
        return await self.board(active[0].id)

    async def handle_drag_end(self, sprint_id: str, result: DragResult) -> SprintBoard:
        """Move a card between the board columns of a sprint."""
        board = await self.board(sprint_id)
        if await self._apply_drag(board, result):
            board = await self.board(sprint_id)
        board.notices = list(self.notices)
        return board

    async def _apply_drag(self, board: SprintBoard, result: DragResult) -> bool:
        try:
            status = resolve_drop_status(result)
        except UnknownColumnError as e:
            self.notices.append(Notice.error(str(e)))
            return False
        if status is None:
            return False

        if board.sprint.status == SprintStatus.completed:
            self.notices.append(Notice.error("Sprint is completed and can no longer change"))
            return False
        if status == TaskStatus.backlog:
            self.notices.append(Notice.error("Tasks cannot be moved back to the backlog"))
            return False
        on_board = {task.id for column in board.columns for task in column.tasks}
        if result.draggable_id not in on_board:
            self.notices.append(Notice.error("Task is not part of this sprint"))
            return False

        try:
            await self.backend.update_task(result.draggable_id, {"status": status.value})
        except Exception as e:
            log.error(f"Error updating task status: {e}")
            self.notices.append(Notice.error("Failed to update task status"))
            return False
        return True
