import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from scrumboard.api.deps import CurrentProject, raise_for_backend
from scrumboard.schemas.sprint import Sprint, SprintActionResponse, SprintBoard, SprintCreate
from scrumboard.schemas.task import DragResult
from scrumboard.services.backend import BackendError
from scrumboard.services.sprint import ALL_SPRINTS, SprintPlanner

log = logging.getLogger(__name__)

router = APIRouter()


async def _project_sprint(planner: SprintPlanner, sprint_id: str) -> Sprint:
    try:
        sprint = await planner.backend.get_sprint(sprint_id)
    except BackendError as e:
        raise_for_backend(e, "Sprint")
    if sprint.project_id != planner.project_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sprint not found")
    return sprint


@router.get(
    "",
    response_model=List[Sprint],
    summary="Получить спринты проекта",
    response_description="Спринты, отсортированные по дате начала",
)
async def get_sprints(
    scope: CurrentProject, sprint_status: str = Query(ALL_SPRINTS, alias="status")
):
    """
    Возвращает спринты проекта.

    Параметры:
    - status: planned, active, completed или all
    """
    planner = SprintPlanner(scope.ctx.backend, scope.project.id)
    try:
        return await planner.list_sprints(sprint_status)
    except BackendError as e:
        raise_for_backend(e, "Sprints")


@router.post("", response_model=SprintActionResponse)
async def create_sprint(form: SprintCreate, scope: CurrentProject):
    """Create a planned sprint (project owner only)"""
    planner = SprintPlanner(scope.ctx.backend, scope.project.id)
    sprint = await planner.create_sprint(form, scope.ctx.is_owner)
    return SprintActionResponse(sprint=sprint, notices=planner.notices)


@router.post(
    "/{sprint_id}/advance",
    response_model=SprintActionResponse,
    summary="Перевести спринт в следующий статус",
    responses={
        200: {"description": "Новый статус или уведомление об ошибке"},
        404: {"description": "Спринт не найден в проекте"},
    },
)
async def advance_sprint(sprint_id: str, scope: CurrentProject):
    """
    planned -> active -> completed. Завершенный спринт больше не меняется.
    """
    planner = SprintPlanner(scope.ctx.backend, scope.project.id)
    await _project_sprint(planner, sprint_id)
    sprint = await planner.advance_sprint(sprint_id, scope.ctx.is_owner)
    return SprintActionResponse(sprint=sprint, notices=planner.notices)


@router.get("/{sprint_id}/board", response_model=SprintBoard)
async def get_sprint_board(sprint_id: str, scope: CurrentProject):
    planner = SprintPlanner(scope.ctx.backend, scope.project.id)
    await _project_sprint(planner, sprint_id)
    try:
        return await planner.board(sprint_id)
    except BackendError as e:
        raise_for_backend(e, "Sprint board")


@router.post(
    "/{sprint_id}/board/drag",
    response_model=SprintBoard,
    summary="Переместить карточку на доске спринта",
    response_description="Доска спринта после перемещения",
)
async def drag_sprint_task(sprint_id: str, result: DragResult, scope: CurrentProject):
    planner = SprintPlanner(scope.ctx.backend, scope.project.id)
    await _project_sprint(planner, sprint_id)
    try:
        return await planner.handle_drag_end(sprint_id, result)
    except BackendError as e:
        raise_for_backend(e, "Sprint board")
