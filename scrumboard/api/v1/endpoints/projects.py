import logging
from typing import List

from fastapi import APIRouter

from scrumboard.api.deps import Ctx, CurrentProject, raise_for_backend
from scrumboard.schemas.project import Project, ProjectDashboard
from scrumboard.services.backend import BackendError
from scrumboard.services.sprint import SprintPlanner

log = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=List[Project],
    summary="Получить проекты пользователя",
    response_description="Проекты, где пользователь владелец или участник",
)
async def get_projects(ctx: Ctx):
    try:
        return await ctx.backend.list_projects(ctx.user_id)
    except BackendError as e:
        raise_for_backend(e, "Projects")


@router.get(
    "/{project_id}/dashboard",
    response_model=ProjectDashboard,
    summary="Панель проекта",
    responses={
        200: {"description": "Панель проекта с активным спринтом"},
        403: {"description": "Пользователь не участник проекта"},
        404: {"description": "Проект не найден"},
    },
)
async def get_dashboard(scope: CurrentProject):
    """
    Возвращает проект, роль пользователя в нем и доску активного спринта.

    Если активного спринта нет, поле active_sprint пустое.
    """
    try:
        active = await SprintPlanner(scope.ctx.backend, scope.project.id).active_board()
    except BackendError as e:
        raise_for_backend(e, "Active sprint")

    return ProjectDashboard(
        project=scope.project,
        is_owner=scope.ctx.is_owner,
        user_role=scope.ctx.user_role,
        active_sprint=active,
    )
