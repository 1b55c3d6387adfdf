import logging
from dataclasses import dataclass
from typing import Annotated, AsyncGenerator, List

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from scrumboard.config import settings
from scrumboard.context import AppContext
from scrumboard.database import AsyncSessionLocal
from scrumboard.database.repositories.client_session import ClientSessionRepository
from scrumboard.schemas.project import Collaborator, Project
from scrumboard.services.backend import BackendClient, BackendError, BackendNotFoundError
from scrumboard.services.realtime import ChatFeed
from scrumboard.services.token_manager import verify_token

log = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Зависимость для получения сессии БД.
    """
    db = AsyncSessionLocal()
    try:
        yield db
    finally:
        await db.close()

DB = Annotated[AsyncSession, Depends(get_db)]


def get_backend() -> BackendClient:
    return BackendClient(settings)

Backend = Annotated[BackendClient, Depends(get_backend)]


def get_session_repo(db: DB):
    return ClientSessionRepository(db)

SessionRepo = Annotated[ClientSessionRepository, Depends(get_session_repo)]


def raise_for_backend(e: BackendError, what: str) -> None:
    """Turn a failed read into the HTTP error the browser expects."""
    if isinstance(e, BackendNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
    log.error(f"Backend error while loading {what.lower()}: {e}")
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Failed to load {what.lower()}",
    )


async def load_context(token: str, backend: BackendClient, sessions: ClientSessionRepository) -> AppContext:
    """Rebuild the application context of the session a token belongs to."""
    payload = verify_token(token)
    client_session = await sessions.get_by_id(payload["sub"])
    if client_session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session is closed",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AppContext(
        settings=settings, backend=backend, sessions=sessions, session=client_session
    )


async def get_anonymous_context(backend: Backend, sessions: SessionRepo) -> AppContext:
    return AppContext(settings=settings, backend=backend, sessions=sessions)

AnonymousContext = Annotated[AppContext, Depends(get_anonymous_context)]


async def get_current_context(
    request: Request, backend: Backend, sessions: SessionRepo
) -> AppContext:
    """
    Dependency для аутентификации пользователя через JWT токен.
    Возвращает контекст приложения с сессией пользователя.
    """
    try:
        token = request.headers["authorization"].replace("Bearer ", "")
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Не удалось проверить учетные данные",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await load_context(token, backend, sessions)

Ctx = Annotated[AppContext, Depends(get_current_context)]


@dataclass
class ProjectScope:
    ctx: AppContext
    project: Project
    collaborators: List[Collaborator]


async def open_project(ctx: AppContext, project_id: str) -> ProjectScope:
    try:
        project = await ctx.backend.get_project(project_id)
        collaborators = await ctx.backend.list_collaborators(project_id)
    except BackendError as e:
        raise_for_backend(e, "Project")

    ctx.open_project(project, collaborators)
    if not ctx.is_member:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this project",
        )
    return ProjectScope(ctx=ctx, project=project, collaborators=collaborators)


async def get_project_scope(project_id: str, ctx: Ctx) -> ProjectScope:
    return await open_project(ctx, project_id)

CurrentProject = Annotated[ProjectScope, Depends(get_project_scope)]


def get_chat_feed(project_id: str) -> ChatFeed:
    return ChatFeed(project_id, settings)

Feed = Annotated[ChatFeed, Depends(get_chat_feed)]
