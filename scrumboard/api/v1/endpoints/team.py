import asyncio
import contextlib
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from scrumboard.api.deps import Backend, CurrentProject, Feed, SessionRepo, load_context, open_project
from scrumboard.schemas.chat import ChatHistory, ChatMessage, ChatMessageCreate
from scrumboard.schemas.notice import Notice
from scrumboard.schemas.project import TeamRoster
from scrumboard.services.realtime import RealtimeError
from scrumboard.services.team import ChatRoom, build_roster

log = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{project_id}/team",
    response_model=TeamRoster,
    summary="Получить состав команды",
    response_description="Владелец проекта и участники с их ролями",
)
async def get_team(scope: CurrentProject):
    return build_roster(scope.project, scope.collaborators)


@router.get("/{project_id}/chat", response_model=ChatHistory)
async def get_chat(scope: CurrentProject):
    """Chat history, oldest first"""
    room = ChatRoom(scope.ctx.backend, scope.project.id)
    await room.load_history()
    return ChatHistory(messages=room.messages, notices=room.notices)


@router.post("/{project_id}/chat", response_model=ChatHistory)
async def post_chat_message(request: ChatMessageCreate, scope: CurrentProject):
    """
    Отправляет сообщение в чат проекта и возвращает обновленную историю.
    Пустое сообщение игнорируется.
    """
    room = ChatRoom(scope.ctx.backend, scope.project.id)
    await room.send(scope.ctx.session, request.message)
    await room.load_history()
    return ChatHistory(messages=room.messages, notices=room.notices)


@router.websocket("/{project_id}/chat/ws")
async def chat_socket(
    websocket: WebSocket,
    project_id: str,
    backend: Backend,
    sessions: SessionRepo,
    feed: Feed,
    token: str = "",
):
    """
    Живой чат проекта.

    Первым кадром приходит история, затем по кадру на каждое новое
    сообщение. Клиент отправляет {"message": "..."}.
    """
    try:
        ctx = await load_context(token, backend, sessions)
        await open_project(ctx, project_id)
    except HTTPException as e:
        log.warning(f"Chat connection to project {project_id} rejected: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    room = ChatRoom(backend, project_id)
    await room.load_history()
    await websocket.send_json(
        {"type": "history", **ChatHistory(messages=room.messages, notices=room.notices).model_dump(mode="json")}
    )

    async def send_notice(notice: Notice):
        await websocket.send_json({"type": "notice", "notice": notice.model_dump(mode="json")})

    async def relay(message: ChatMessage):
        await websocket.send_json({"type": "message", "message": message.model_dump(mode="json")})

    async def listen():
        try:
            await room.consume(feed, relay)
        except RealtimeError as e:
            log.error(f"Chat feed of project {project_id} failed: {e}")
            await send_notice(Notice.error("Chat connection lost"))
        except Exception as e:
            log.exception(f"Unexpected error in chat feed of project {project_id}: {e}")
            await send_notice(Notice.error("Chat connection lost"))

    listener = asyncio.create_task(listen())
    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                log.warning(f"Ignoring non-JSON chat frame from user {ctx.user_id}")
                continue
            seen = len(room.notices)
            text = data.get("message", "") if isinstance(data, dict) else ""
            await room.send(ctx.session, str(text))
            for notice in room.notices[seen:]:
                await send_notice(notice)
    except WebSocketDisconnect:
        log.info(f"User {ctx.user_id} left chat of project {project_id}")
    finally:
        listener.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await listener
