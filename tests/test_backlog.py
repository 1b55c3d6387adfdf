# tests/test_backlog.py

import pytest

from scrumboard.schemas.notice import NoticeLevel
from scrumboard.schemas.task import DragResult, DraggableLocation, Task, TaskForm
from scrumboard.services.backlog import BacklogBoard, filter_tasks, validate_task_form


def make_task(task_id, title, priority="medium", description=None) -> Task:
    return Task(id=task_id, project_id="p-1", title=title, priority=priority, description=description)


def drag(task_id, source, destination=None, source_index=0, destination_index=0) -> DragResult:
    return DragResult(
        draggable_id=task_id,
        source=DraggableLocation(droppable_id=source, index=source_index),
        destination=(
            DraggableLocation(droppable_id=destination, index=destination_index)
            if destination is not None
            else None
        ),
    )


def messages(board: BacklogBoard, level: NoticeLevel | None = None) -> list[str]:
    return [n.message for n in board.notices if level is None or n.level == level]


async def open_board(backend) -> BacklogBoard:
    board = BacklogBoard(backend, "p-1")
    await board.refresh()
    backend.calls.clear()
    return board


# --- filtering ---


def test_filter_by_query_and_by_priority() -> None:
    t1 = make_task("T1", "Fix bug", "high")
    t2 = make_task("T2", "Write docs", "low")

    assert filter_tasks([t1, t2], "fix", "all") == [t1]
    assert filter_tasks([t1, t2], "", "low") == [t2]


def test_filter_matches_description_case_insensitively() -> None:
    t1 = make_task("T1", "Login", description="Handle OAuth callback")
    t2 = make_task("T2", "Logout")

    assert filter_tasks([t1, t2], "oauth") == [t1]
    # a missing description never matches a non-empty query
    assert filter_tasks([t2], "anything") == []


def test_filter_is_intersection_and_keeps_order() -> None:
    tasks = [
        make_task("a", "API client", "high"),
        make_task("b", "API docs", "low"),
        make_task("c", "UI polish", "high"),
        make_task("d", "api retries", "high"),
    ]

    assert [t.id for t in filter_tasks(tasks, "api", "high")] == ["a", "d"]
    assert [t.id for t in filter_tasks(tasks, "", "all")] == ["a", "b", "c", "d"]


@pytest.mark.asyncio
async def test_visible_tasks_apply_board_filters(backend) -> None:
    board = BacklogBoard(backend, "p-1", search_query="LOGIN", priority_filter="high")
    await board.refresh()

    assert [t.id for t in board.tasks] == ["t-1", "t-2", "t-3"]
    assert [t.id for t in board.visible_tasks()] == ["t-1"]


# --- drag ---


@pytest.mark.asyncio
async def test_drop_into_other_column_sets_status(backend) -> None:
    board = await open_board(backend)

    assert await board.handle_drag_end(drag("t-1", "todo", "done")) is True

    assert backend.calls_to("update_task") == [("update_task", "t-1", {"status": "done"})]
    assert backend.tasks["t-1"]["status"] == "done"
    assert backend.calls_to("list_backlog_tasks"), "a successful drop refetches"
    assert next(t for t in board.tasks if t.id == "t-1").status.value == "done"


@pytest.mark.asyncio
async def test_drop_on_same_slot_is_noop(backend) -> None:
    board = await open_board(backend)

    assert await board.handle_drag_end(drag("t-1", "todo", "todo")) is False

    assert backend.calls == []
    assert board.notices == []


@pytest.mark.asyncio
async def test_drop_in_same_column_other_index_updates(backend) -> None:
    board = await open_board(backend)

    assert await board.handle_drag_end(drag("t-1", "todo", "todo", 0, 2)) is True
    assert backend.calls_to("update_task") == [("update_task", "t-1", {"status": "todo"})]


@pytest.mark.asyncio
async def test_cancelled_drag_is_noop(backend) -> None:
    board = await open_board(backend)

    assert await board.handle_drag_end(drag("t-1", "todo", None)) is False

    assert backend.calls == []
    assert board.notices == []


@pytest.mark.asyncio
async def test_drop_on_backlog_column_sets_backlog_status(backend) -> None:
    backend.tasks["t-1"]["status"] = "review"
    board = await open_board(backend)

    await board.handle_drag_end(drag("t-1", "review", "backlog"))

    assert backend.tasks["t-1"]["status"] == "backlog"


@pytest.mark.asyncio
async def test_drop_on_unknown_column_is_rejected(backend) -> None:
    board = await open_board(backend)

    assert await board.handle_drag_end(drag("t-1", "todo", "archive")) is False

    assert backend.calls == []
    assert messages(board, NoticeLevel.error) == ["Unknown column: archive"]


@pytest.mark.asyncio
async def test_failed_drop_keeps_pre_drag_state(backend) -> None:
    board = await open_board(backend)
    before = [t.model_copy() for t in board.tasks]
    backend.failing.add("update_task")

    assert await board.handle_drag_end(drag("t-1", "todo", "done")) is False

    assert board.tasks == before
    assert messages(board, NoticeLevel.error) == ["Failed to update task status"]
    assert backend.calls_to("list_backlog_tasks") == []


# --- move to sprint ---


@pytest.mark.asyncio
async def test_move_to_sprint_sets_sprint_and_resets_status(backend) -> None:
    board = await open_board(backend)
    board.begin_move("t-1")

    assert await board.move_to_sprint("t-1", "s-planned") is True

    assert backend.tasks["t-1"]["sprint_id"] == "s-planned"
    assert backend.tasks["t-1"]["status"] == "todo"
    assert messages(board, NoticeLevel.success) == ["Task moved to sprint"]
    assert board.moving_task is None
    # the task left the backlog, so the refetch drops it
    assert "t-1" not in [t.id for t in board.tasks]


@pytest.mark.asyncio
async def test_move_to_sprint_resets_any_prior_status(backend) -> None:
    backend.tasks["t-1"].update(status="review", sprint_id="s-active")
    board = BacklogBoard(backend, "p-1")

    await board.move_to_sprint("t-1", "s-planned")

    assert backend.tasks["t-1"]["sprint_id"] == "s-planned"
    assert backend.tasks["t-1"]["status"] == "todo"


@pytest.mark.asyncio
@pytest.mark.parametrize("task_id, sprint_id", [("", "s-planned"), ("t-1", ""), ("", "")])
async def test_move_to_sprint_with_empty_ids_is_silent(backend, task_id, sprint_id) -> None:
    board = await open_board(backend)
    board.begin_move("t-1")

    assert await board.move_to_sprint(task_id, sprint_id) is False

    assert backend.calls == []
    assert board.notices == []
    assert board.moving_task == "t-1"


@pytest.mark.asyncio
async def test_failed_move_keeps_selection(backend) -> None:
    board = await open_board(backend)
    board.begin_move("t-1")
    backend.failing.add("update_task")

    assert await board.move_to_sprint("t-1", "s-planned") is False

    assert messages(board) == ["Failed to move task to sprint"]
    assert board.moving_task == "t-1"
    assert backend.tasks["t-1"]["sprint_id"] is None


@pytest.mark.asyncio
async def test_available_sprints_exclude_completed(backend) -> None:
    board = BacklogBoard(backend, "p-1")

    sprints = await board.available_sprints()

    assert [s.id for s in sprints] == ["s-active", "s-planned"]


# --- delete ---


@pytest.mark.asyncio
async def test_delete_then_refetch_drops_task(backend) -> None:
    board = await open_board(backend)

    assert await board.delete_task("t-1") is True

    assert "t-1" not in [t.id for t in board.tasks]
    assert messages(board) == ["Backlog item deleted successfully"]


@pytest.mark.asyncio
async def test_failed_delete_reports_error(backend) -> None:
    board = await open_board(backend)

    assert await board.delete_task("missing") is False

    assert messages(board, NoticeLevel.error) == ["Failed to delete task"]
    assert [t.id for t in board.tasks] == ["t-1", "t-2", "t-3"]


@pytest.mark.asyncio
async def test_refresh_failure_after_success_is_reported(backend) -> None:
    board = await open_board(backend)
    backend.failing.add("list_backlog_tasks")

    assert await board.delete_task("t-2") is True

    assert messages(board) == ["Backlog item deleted successfully", "Failed to refresh backlog"]


# --- form ---


@pytest.mark.parametrize(
    "form, error",
    [
        (TaskForm(title=" ", description="d"), "Task title is required"),
        (TaskForm(title="t", description=""), "Task description is required"),
        (TaskForm(title="t", description="d", story_points=0), "Task must have at least 1 story point"),
        (TaskForm(title="t", description="d", story_points=None), "Task must have at least 1 story point"),
        (TaskForm(title="t", description="d", story_points=101), "Task cannot have more than 100 story points"),
        (TaskForm(title="t", description="d", priority="urgent"), "Task priority must be low, medium or high"),
    ],
)
def test_invalid_forms(form, error) -> None:
    assert validate_task_form(form) == (None, error)


@pytest.mark.asyncio
async def test_create_item_lands_in_backlog(backend) -> None:
    board = await open_board(backend)

    ok = await board.create_item(
        TaskForm(title="Export CSV", description="Reports export", priority="low", story_points=5)
    )

    assert ok is True
    created = backend.calls_to("create_task")[0][1]
    assert created["status"] == "backlog"
    assert created["sprint_id"] is None
    assert created["project_id"] == "p-1"
    assert "Export CSV" in [t.title for t in board.tasks]
    assert messages(board) == ["Backlog item created successfully"]


@pytest.mark.asyncio
async def test_invalid_form_issues_no_request(backend) -> None:
    board = await open_board(backend)

    assert await board.create_item(TaskForm(title="", description="x")) is False

    assert backend.calls == []
    assert messages(board) == ["Task title is required"]


@pytest.mark.asyncio
async def test_edit_item_updates_fields(backend) -> None:
    board = await open_board(backend)

    ok = await board.edit_item(
        "t-2", TaskForm(title="Fix logout", description="Clear cookies", priority="high", story_points=2)
    )

    assert ok is True
    assert backend.tasks["t-2"]["title"] == "Fix logout"
    assert backend.tasks["t-2"]["priority"] == "high"
    assert messages(board) == ["Task updated successfully"]


@pytest.mark.asyncio
async def test_failed_create_reports_error(backend) -> None:
    board = await open_board(backend)
    backend.failing.add("create_task")

    assert await board.create_item(TaskForm(title="a", description="b")) is False
    assert messages(board) == ["Failed to create backlog item"]
