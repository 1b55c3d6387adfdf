# tests/test_sprint.py

from datetime import date

import pytest

from scrumboard.schemas.notice import NoticeLevel
from scrumboard.schemas.sprint import Sprint, SprintCreate
from scrumboard.schemas.task import DragResult, DraggableLocation, Task, TaskStatus
from scrumboard.services.board import UnknownColumnError, group_by_column, resolve_drop_status
from scrumboard.services.sprint import SprintPlanner, available_sprints, filter_by_status, summarize


def drop(task_id, source, destination, source_index=0, destination_index=0) -> DragResult:
    return DragResult(
        draggable_id=task_id,
        source=DraggableLocation(droppable_id=source, index=source_index),
        destination=DraggableLocation(droppable_id=destination, index=destination_index),
    )


def sprint(sprint_id, status) -> Sprint:
    return Sprint(
        id=sprint_id,
        project_id="p-1",
        title=sprint_id,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 14),
        status=status,
    )


# --- drop resolver and columns ---


def test_resolver_maps_columns_to_statuses() -> None:
    assert resolve_drop_status(drop("t", "todo", "in-progress")) == TaskStatus.in_progress
    assert resolve_drop_status(drop("t", "todo", "backlog")) == TaskStatus.backlog
    assert resolve_drop_status(drop("t", "todo", "todo")) is None


def test_resolver_rejects_unknown_column() -> None:
    with pytest.raises(UnknownColumnError):
        resolve_drop_status(drop("t", "todo", "icebox"))


def test_group_by_column_counts_and_order() -> None:
    tasks = [
        Task(id="a", project_id="p", title="a", status="done"),
        Task(id="b", project_id="p", title="b", status="todo"),
        Task(id="c", project_id="p", title="c", status="done"),
        Task(id="d", project_id="p", title="d", status="backlog"),
    ]

    columns = group_by_column(tasks)

    assert [c.id for c in columns] == ["todo", "in-progress", "review", "done"]
    assert [c.count for c in columns] == [1, 0, 0, 2]
    assert [t.id for t in columns[3].tasks] == ["a", "c"]
    assert columns[1].title == "In Progress"


# --- pure helpers ---


def test_available_sprints_drop_completed() -> None:
    sprints = [sprint("a", "planned"), sprint("b", "completed"), sprint("c", "active")]
    assert [s.id for s in available_sprints(sprints)] == ["a", "c"]


def test_filter_by_status_tab() -> None:
    sprints = [sprint("a", "planned"), sprint("b", "completed"), sprint("c", "active")]
    assert [s.id for s in filter_by_status(sprints, "active")] == ["c"]
    assert [s.id for s in filter_by_status(sprints, "all")] == ["a", "b", "c"]


def test_summary_progress_and_team() -> None:
    tasks = [
        Task(id="a", project_id="p", title="a", status="done", assigned_to="u1"),
        Task(id="b", project_id="p", title="b", status="todo", assigned_to="u1"),
        Task(id="c", project_id="p", title="c", status="review", assigned_to="u2"),
    ]

    summary = summarize(sprint("s", "active"), tasks)

    assert summary.total_tasks == 3
    assert summary.completed_tasks == 1
    assert summary.progress == 33
    assert summary.team_members == 2


def test_summary_of_empty_sprint() -> None:
    summary = summarize(sprint("s", "planned"), [])
    assert (summary.progress, summary.total_tasks, summary.team_members) == (0, 0, 0)


# --- planner ---


@pytest.mark.asyncio
async def test_owner_creates_planned_sprint(backend) -> None:
    planner = SprintPlanner(backend, "p-1")
    form = SprintCreate(title="Sprint 3", start_date=date(2026, 10, 13), end_date=date(2026, 10, 26))

    created = await planner.create_sprint(form, is_owner=True)

    assert created.status.value == "planned"
    assert backend.sprints[created.id]["project_id"] == "p-1"
    assert [n.message for n in planner.notices] == ["Sprint created"]


@pytest.mark.asyncio
async def test_non_owner_cannot_create_sprint(backend) -> None:
    planner = SprintPlanner(backend, "p-1")
    form = SprintCreate(title="Sprint 3", start_date=date(2026, 10, 13), end_date=date(2026, 10, 26))

    assert await planner.create_sprint(form, is_owner=False) is None
    assert backend.calls_to("create_sprint") == []


@pytest.mark.asyncio
async def test_sprint_dates_are_validated(backend) -> None:
    planner = SprintPlanner(backend, "p-1")
    form = SprintCreate(title="Backwards", start_date=date(2026, 10, 26), end_date=date(2026, 10, 13))

    assert await planner.create_sprint(form, is_owner=True) is None
    assert planner.notices[0].message == "Sprint end date must not be before its start date"


@pytest.mark.asyncio
async def test_sprint_lifecycle(backend) -> None:
    planner = SprintPlanner(backend, "p-1")

    assert (await planner.advance_sprint("s-planned", True)).status.value == "active"
    assert (await planner.advance_sprint("s-planned", True)).status.value == "completed"
    await planner.advance_sprint("s-planned", True)

    assert backend.sprints["s-planned"]["status"] == "completed"
    assert [n.message for n in planner.notices] == [
        "Sprint is now active",
        "Sprint is now completed",
        "Sprint is completed and can no longer change",
    ]


@pytest.mark.asyncio
async def test_board_of_active_sprint(backend) -> None:
    board = await SprintPlanner(backend, "p-1").active_board()

    assert board.sprint.id == "s-active"
    assert board.sprint.progress == 50
    assert {c.id: c.count for c in board.columns} == {"todo": 1, "in-progress": 0, "review": 0, "done": 1}


@pytest.mark.asyncio
async def test_no_active_sprint(backend) -> None:
    backend.sprints["s-active"]["status"] = "completed"
    assert await SprintPlanner(backend, "p-1").active_board() is None


@pytest.mark.asyncio
async def test_board_drag_moves_card(backend) -> None:
    planner = SprintPlanner(backend, "p-1")

    board = await planner.handle_drag_end("s-active", drop("t-10", "todo", "review"))

    assert backend.tasks["t-10"]["status"] == "review"
    assert {c.id: c.count for c in board.columns}["review"] == 1
    assert board.notices == []


@pytest.mark.asyncio
async def test_board_drag_to_backlog_is_rejected(backend) -> None:
    planner = SprintPlanner(backend, "p-1")

    board = await planner.handle_drag_end("s-active", drop("t-10", "todo", "backlog"))

    assert backend.calls_to("update_task") == []
    assert backend.tasks["t-10"]["sprint_id"] == "s-active"
    assert [n.message for n in board.notices] == ["Tasks cannot be moved back to the backlog"]


@pytest.mark.asyncio
async def test_board_drag_of_foreign_task_is_rejected(backend) -> None:
    planner = SprintPlanner(backend, "p-1")

    board = await planner.handle_drag_end("s-active", drop("t-1", "todo", "done"))

    assert backend.tasks["t-1"]["status"] == "backlog"
    assert [n.message for n in board.notices] == ["Task is not part of this sprint"]


@pytest.mark.asyncio
async def test_completed_sprint_board_is_read_only(backend) -> None:
    backend.tasks["t-10"]["sprint_id"] = "s-done"
    planner = SprintPlanner(backend, "p-1")

    board = await planner.handle_drag_end("s-done", drop("t-10", "todo", "done"))

    assert backend.calls_to("update_task") == []
    assert board.notices[0].level == NoticeLevel.error


@pytest.mark.asyncio
async def test_board_drag_failure_keeps_columns(backend) -> None:
    backend.failing.add("update_task")
    planner = SprintPlanner(backend, "p-1")

    board = await planner.handle_drag_end("s-active", drop("t-10", "todo", "done"))

    assert {c.id: c.count for c in board.columns}["todo"] == 1
    assert [n.message for n in board.notices] == ["Failed to update task status"]


@pytest.mark.asyncio
async def test_board_noop_drag_issues_nothing(backend) -> None:
    planner = SprintPlanner(backend, "p-1")

    await planner.handle_drag_end("s-active", drop("t-10", "todo", "todo"))

    assert backend.calls_to("update_task") == []
