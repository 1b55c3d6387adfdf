import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable

import websockets
import websockets.exceptions

from scrumboard.config import Settings, settings as default_settings
from scrumboard.schemas.chat import ChatMessage

log = logging.getLogger(__name__)

CHAT_TABLE = "chat_messages"


class RealtimeError(Exception):
    pass


def join_message(topic: str, table: str, project_id: str, ref: int) -> str:
    """Channel join asking for INSERT notifications on one project's rows."""
    return json.dumps(
        {
            "topic": f"realtime:{topic}",
            "event": "phx_join",
            "payload": {
                "config": {
                    "postgres_changes": [
                        {
                            "event": "INSERT",
                            "schema": "public",
                            "table": table,
                            "filter": f"project_id=eq.{project_id}",
                        }
                    ]
                }
            },
            "ref": str(ref),
        }
    )


def heartbeat_message(ref: int) -> str:
    return json.dumps(
        {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": str(ref)}
    )


def parse_insert(raw: str | bytes, table: str = CHAT_TABLE) -> ChatMessage | None:
    """Extract the inserted chat row from a channel frame.

    Returns None for frames that carry no insert (replies, heartbeats,
    presence). Raises RealtimeError when the server refuses or closes the
    channel.
    """
    try:
        frame = json.loads(raw)
    except ValueError:
        log.error(f"Invalid JSON received from realtime channel: {raw!r}")
        return None

    event = frame.get("event")
    payload = frame.get("payload") or {}

    if event == "phx_reply":
        if payload.get("status") == "error":
            raise RealtimeError(f"Channel join refused: {payload.get('response')}")
        return None
    if event in ("phx_error", "phx_close"):
        raise RealtimeError(f"Channel closed by server ({event})")

    record: dict[str, Any] | None = None
    if event == "postgres_changes":
        data = payload.get("data") or {}
        if data.get("type") == "INSERT" and data.get("table", table) == table:
            record = data.get("record")
    elif event == "INSERT" and payload.get("table", table) == table:
        record = payload.get("record")

    if not record:
        return None
    return ChatMessage(**record)


class ChatFeed:
    """Inserted chat messages of one project, as they arrive.

    Iterating opens the websocket, joins the channel and yields a
    ChatMessage per INSERT notification, forever. A feed can be iterated
    only once.
    """

    def __init__(
        self,
        project_id: str,
        config: Settings | None = None,
        connect: Callable[[str], Any] | None = None,
    ):
        self.project_id = project_id
        self.settings = config or default_settings
        self._connect = connect or websockets.connect
        self._started = False
        self._ref = 0

    def __aiter__(self) -> AsyncIterator[ChatMessage]:
        if self._started:
            raise RuntimeError("Chat feed cannot be restarted")
        self._started = True
        return self._events()

    def _next_ref(self) -> int:
        self._ref += 1
        return self._ref

    @property
    def url(self) -> str:
        return (
            f"{self.settings.websocket_url}"
            f"?apikey={self.settings.backend_api_key}&vsn=1.0.0"
        )

    async def _heartbeat(self, socket) -> None:
        try:
            while True:
                await asyncio.sleep(self.settings.realtime_heartbeat_seconds)
                await socket.send(heartbeat_message(self._next_ref()))
        except websockets.exceptions.ConnectionClosed:
            # the receive loop reports the closed connection
            return

    async def _events(self) -> AsyncIterator[ChatMessage]:
        events = self._receive()
        try:
            async for message in events:
                yield message
        except (websockets.exceptions.WebSocketException, OSError) as e:
            raise RealtimeError(f"Realtime connection failed: {e}") from e
        finally:
            await events.aclose()
        raise RealtimeError("Realtime connection closed")

    async def _receive(self) -> AsyncIterator[ChatMessage]:
        async with self._connect(self.url) as socket:
            await socket.send(
                join_message(
                    f"project-chat-{self.project_id}",
                    CHAT_TABLE,
                    self.project_id,
                    self._next_ref(),
                )
            )
            log.info(f"Subscribed to chat of project {self.project_id}")
            heartbeat = asyncio.create_task(self._heartbeat(socket))
            try:
                async for raw in socket:
                    message = parse_insert(raw)
                    if message is not None:
                        log.debug(f"New message received: {message.id}")
                        yield message
            finally:
                heartbeat.cancel()
                log.info(f"Chat feed of project {self.project_id} closed")
