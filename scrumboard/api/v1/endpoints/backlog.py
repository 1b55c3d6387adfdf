import logging

from fastapi import APIRouter, HTTPException, status

from scrumboard.api.deps import CurrentProject, raise_for_backend
from scrumboard.schemas.backlog import AvailableSprintsResponse, BacklogResponse
from scrumboard.schemas.task import DragResult, MoveToSprintRequest, TaskForm
from scrumboard.services.backend import BackendError
from scrumboard.services.backlog import ALL_PRIORITIES, BacklogBoard

log = logging.getLogger(__name__)

router = APIRouter()


async def _open_backlog(scope, q: str = "", priority: str = ALL_PRIORITIES) -> BacklogBoard:
    board = BacklogBoard(scope.ctx.backend, scope.project.id, q, priority)
    try:
        await board.refresh()
    except BackendError as e:
        raise_for_backend(e, "Backlog")
    return board


def _require_task(board: BacklogBoard, task_id: str) -> None:
    if task_id not in {task.id for task in board.tasks}:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Task not found in backlog"
        )


def _response(board: BacklogBoard) -> BacklogResponse:
    return BacklogResponse(tasks=board.visible_tasks(), notices=board.notices)


@router.get(
    "",
    response_model=BacklogResponse,
    summary="Получить бэклог проекта",
    response_description="Задачи без спринта после фильтров поиска и приоритета",
)
async def get_backlog(
    scope: CurrentProject, q: str = "", priority: str = ALL_PRIORITIES
):
    """
    Возвращает задачи бэклога проекта.

    Параметры:
    - q: подстрока для поиска в названии или описании (без учета регистра)
    - priority: low, medium, high или all
    """
    board = await _open_backlog(scope, q, priority)
    return _response(board)


@router.get("/available-sprints", response_model=AvailableSprintsResponse)
async def get_available_sprints(scope: CurrentProject):
    """Sprints a backlog task can be moved into"""
    board = BacklogBoard(scope.ctx.backend, scope.project.id)
    try:
        sprints = await board.available_sprints()
    except BackendError as e:
        raise_for_backend(e, "Sprints")
    return AvailableSprintsResponse(sprints=sprints)


@router.post("", response_model=BacklogResponse)
async def create_backlog_item(form: TaskForm, scope: CurrentProject):
    board = await _open_backlog(scope)
    await board.create_item(form)
    return _response(board)


@router.put("/{task_id}", response_model=BacklogResponse)
async def edit_backlog_item(task_id: str, form: TaskForm, scope: CurrentProject):
    board = await _open_backlog(scope)
    _require_task(board, task_id)
    await board.edit_item(task_id, form)
    return _response(board)


@router.delete(
    "/{task_id}",
    response_model=BacklogResponse,
    summary="Удалить задачу из бэклога",
    responses={
        200: {"description": "Результат удаления в списке уведомлений"},
        404: {"description": "Задача не найдена в бэклоге"},
    },
)
async def delete_backlog_item(task_id: str, scope: CurrentProject):
    """
    Удаляет задачу. Подтверждение удаления выполняется на клиенте,
    сюда приходит уже подтвержденный запрос.
    """
    board = await _open_backlog(scope)
    _require_task(board, task_id)
    await board.delete_task(task_id)
    return _response(board)


@router.post(
    "/drag",
    response_model=BacklogResponse,
    summary="Завершить перетаскивание карточки",
    response_description="Бэклог после перетаскивания",
)
async def drag_backlog_item(result: DragResult, scope: CurrentProject):
    """
    Применяет результат перетаскивания.

    Сброс вне колонки или в ту же позицию ничего не меняет. При ошибке
    бэкенда возвращается бэклог в состоянии до перетаскивания и
    уведомление об ошибке.
    """
    board = await _open_backlog(scope)
    if result.destination is not None:
        _require_task(board, result.draggable_id)
    await board.handle_drag_end(result)
    return _response(board)


@router.post("/{task_id}/move", response_model=BacklogResponse)
async def move_to_sprint(task_id: str, request: MoveToSprintRequest, scope: CurrentProject):
    """Move a backlog task into a sprint; an empty sprint id does nothing."""
    board = await _open_backlog(scope)
    _require_task(board, task_id)
    board.begin_move(task_id)

    if request.sprint_id:
        try:
            sprints = await board.available_sprints()
        except BackendError as e:
            raise_for_backend(e, "Sprints")
        if request.sprint_id not in {sprint.id for sprint in sprints}:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Sprint not available"
            )

    await board.move_to_sprint(task_id, request.sprint_id)
    return _response(board)
