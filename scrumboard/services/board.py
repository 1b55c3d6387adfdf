import logging
from typing import Dict, List, Optional

from scrumboard.schemas.sprint import BoardColumn
from scrumboard.schemas.task import (
    BOARD_COLUMNS,
    COLUMN_TITLES,
    DragResult,
    Task,
    TaskStatus,
)

log = logging.getLogger(__name__)

BACKLOG_COLUMN = "backlog"


class UnknownColumnError(ValueError):
    pass


def resolve_drop_status(result: DragResult) -> Optional[TaskStatus]:
    """Status the dragged task should take, or None when the drop changes nothing.

    A cancelled gesture (no destination) and a drop back onto the same slot
    are both no-ops. Column ids double as status values; the "backlog"
    column maps to the backlog state.
    """
    destination = result.destination
    if destination is None:
        return None
    if (
        destination.droppable_id == result.source.droppable_id
        and destination.index == result.source.index
    ):
        return None

    if destination.droppable_id == BACKLOG_COLUMN:
        return TaskStatus.backlog
    try:
        return TaskStatus(destination.droppable_id)
    except ValueError:
        raise UnknownColumnError(f"Unknown column: {destination.droppable_id}")


def group_by_column(tasks: List[Task]) -> List[BoardColumn]:
    """Split tasks into the sprint board columns, keeping backend order."""
    buckets: Dict[TaskStatus, List[Task]] = {status: [] for status in BOARD_COLUMNS}
    for task in tasks:
        if task.status in buckets:
            buckets[task.status].append(task)
        else:
            log.debug(f"Task {task.id} with status {task.status.value} is not on the board")
    return [
        BoardColumn(
            id=status.value,
            title=COLUMN_TITLES[status],
            count=len(buckets[status]),
            tasks=buckets[status],
        )
        for status in BOARD_COLUMNS
    ]
