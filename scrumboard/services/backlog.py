import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from scrumboard.schemas.notice import Notice
from scrumboard.schemas.sprint import Sprint
from scrumboard.schemas.task import DragResult, Task, TaskForm, TaskPriority, TaskStatus
from scrumboard.services.backend import BackendClient
from scrumboard.services.board import UnknownColumnError, resolve_drop_status
from scrumboard.services.sprint import available_sprints

log = logging.getLogger(__name__)

ALL_PRIORITIES = "all"
MAX_STORY_POINTS = 100


def filter_tasks(tasks: List[Task], query: str = "", priority: str = ALL_PRIORITIES) -> List[Task]:
    """Search and priority filters, applied in sequence.

    The search is a case-insensitive substring match on the title or the
    description; the priority filter is an exact match unless it is "all".
    Input order is preserved.
    """
    needle = (query or "").lower()
    matched = [
        task
        for task in tasks
        if needle in task.title.lower()
        or (task.description is not None and needle in task.description.lower())
    ]
    return [
        task
        for task in matched
        if priority in (ALL_PRIORITIES, "", None) or task.priority.value == priority
    ]


def validate_task_form(form: TaskForm) -> Tuple[Optional[dict], Optional[str]]:
    """Return (fields, None) for a valid form or (None, message) otherwise."""
    if not form.title.strip():
        return None, "Task title is required"
    if not form.description.strip():
        return None, "Task description is required"
    if not form.story_points or form.story_points < 1:
        return None, "Task must have at least 1 story point"
    if form.story_points > MAX_STORY_POINTS:
        return None, f"Task cannot have more than {MAX_STORY_POINTS} story points"
    if form.priority not in {p.value for p in TaskPriority}:
        return None, "Task priority must be low, medium or high"

    fields = {
        "title": form.title,
        "description": form.description,
        "priority": form.priority,
        "assigned_to": form.assigned_to or None,
        "story_points": form.story_points,
    }
    if form.due_date is not None:
        fields["due_date"] = form.due_date.isoformat()
    return fields, None


class BacklogBoard:
    """Backlog of one project: the tasks with no sprint, plus the actions on them.

    Every successful mutation is followed by a full refetch. Failures are
    turned into notices and leave the held task list untouched.
    """

    def __init__(
        self,
        backend: BackendClient,
        project_id: str,
        search_query: str = "",
        priority_filter: str = ALL_PRIORITIES,
    ):
        self.backend = backend
        self.project_id = project_id
        self.search_query = search_query
        self.priority_filter = priority_filter
        self.tasks: List[Task] = []
        self.notices: List[Notice] = []
        self.moving_task: Optional[str] = None
        self._busy = False

    async def refresh(self) -> List[Task]:
        log.debug(f"Fetching backlog tasks for project {self.project_id}")
        self.tasks = await self.backend.list_backlog_tasks(self.project_id)
        log.debug(f"Retrieved {len(self.tasks)} backlog tasks")
        return self.tasks

    def visible_tasks(self) -> List[Task]:
        return filter_tasks(self.tasks, self.search_query, self.priority_filter)

    async def available_sprints(self) -> List[Sprint]:
        return available_sprints(await self.backend.list_sprints(self.project_id))

    async def _reload(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            log.error(f"Error refreshing backlog of project {self.project_id}: {e}")
            self.notices.append(Notice.error("Failed to refresh backlog"))

    async def _mutate(
        self,
        action: Callable[[], Awaitable[object]],
        success: Optional[str],
        failure: str,
    ) -> bool:
        if self._busy:
            log.debug("Another backlog update is still running, ignoring")
            return False
        self._busy = True
        try:
            await action()
        except Exception as e:
            log.error(f"{failure}: {e}")
            self.notices.append(Notice.error(failure))
            return False
        finally:
            self._busy = False

        if success:
            self.notices.append(Notice.success(success))
        await self._reload()
        return True

    async def handle_drag_end(self, result: DragResult) -> bool:
        """Apply a finished drag gesture. Returns True when the backend was updated."""
        try:
            status = resolve_drop_status(result)
        except UnknownColumnError as e:
            self.notices.append(Notice.error(str(e)))
            return False
        if status is None:
            return False

        return await self._mutate(
            lambda: self.backend.update_task(result.draggable_id, {"status": status.value}),
            None,
            "Failed to update task status",
        )

    def begin_move(self, task_id: str) -> None:
        self.moving_task = task_id

    async def move_to_sprint(self, task_id: str, sprint_id: str) -> bool:
        if not task_id or not sprint_id:
            return False

        # Work re-entering a sprint always restarts at the front of the board
        moved = await self._mutate(
            lambda: self.backend.update_task(
                task_id, {"sprint_id": sprint_id, "status": TaskStatus.todo.value}
            ),
            "Task moved to sprint",
            "Failed to move task to sprint",
        )
        if moved:
            self.moving_task = None
        return moved

    async def delete_task(self, task_id: str) -> bool:
        return await self._mutate(
            lambda: self.backend.delete_task(task_id),
            "Backlog item deleted successfully",
            "Failed to delete task",
        )

    async def create_item(self, form: TaskForm) -> bool:
        fields, error = validate_task_form(form)
        if error:
            self.notices.append(Notice.error(error))
            return False

        fields.update(
            project_id=self.project_id,
            status=TaskStatus.backlog.value,
            sprint_id=None,
        )
        return await self._mutate(
            lambda: self.backend.create_task(fields),
            "Backlog item created successfully",
            "Failed to create backlog item",
        )

    async def edit_item(self, task_id: str, form: TaskForm) -> bool:
        fields, error = validate_task_form(form)
        if error:
            self.notices.append(Notice.error(error))
            return False

        return await self._mutate(
            lambda: self.backend.update_task(task_id, fields),
            "Task updated successfully",
            "Failed to update task",
        )
