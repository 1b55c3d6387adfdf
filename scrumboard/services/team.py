import logging
from typing import AsyncIterable, Awaitable, Callable, List, Optional

from scrumboard.database.client_session import ClientSession
from scrumboard.schemas.chat import ChatMessage
from scrumboard.schemas.notice import Notice
from scrumboard.schemas.project import (
    Collaborator,
    Project,
    TeamMemberResponse,
    TeamRoster,
)
from scrumboard.services.backend import BackendClient

log = logging.getLogger(__name__)


def build_roster(project: Project, collaborators: List[Collaborator]) -> TeamRoster:
    owner = None
    if project.owner_id and project.owner_name:
        owner = TeamMemberResponse(
            user_id=project.owner_id,
            username=project.owner_name,
            role="owner",
            role_label="Owner",
        )
    members = [
        TeamMemberResponse(
            user_id=collaborator.user_id,
            username=collaborator.username,
            email=collaborator.email,
            role=collaborator.role.value,
            role_label=collaborator.role_label,
        )
        for collaborator in collaborators
    ]
    return TeamRoster(owner=owner, members=members)


class ChatRoom:
    """In-memory message list of one project's chat.

    History is loaded once; live messages are appended in arrival order by a
    single consumer. Duplicate deliveries are appended again.
    """

    def __init__(self, backend: BackendClient, project_id: str):
        self.backend = backend
        self.project_id = project_id
        self.messages: List[ChatMessage] = []
        self.notices: List[Notice] = []
        self._sending = False

    async def load_history(self) -> List[ChatMessage]:
        try:
            self.messages = await self.backend.list_chat_messages(self.project_id)
        except Exception as e:
            log.error(f"Error loading chat messages: {e}")
            self.notices.append(Notice.error("Failed to load chat messages"))
        return self.messages

    async def consume(
        self,
        feed: AsyncIterable[ChatMessage],
        on_message: Optional[Callable[[ChatMessage], Awaitable[None]]] = None,
    ) -> None:
        async for message in feed:
            self.messages.append(message)
            if on_message is not None:
                await on_message(message)

    async def send(self, author: ClientSession, text: str) -> bool:
        """Post a message; it reaches the list through the live feed, not here."""
        text = (text or "").strip()
        if not text or self._sending:
            return False

        self._sending = True
        try:
            await self.backend.insert_chat_message(
                {
                    "project_id": self.project_id,
                    "user_id": author.user_id,
                    "username": author.display_name(),
                    "message": text,
                }
            )
        except Exception as e:
            log.error(f"Error sending message: {e}")
            self.notices.append(Notice.error("Failed to send message"))
            return False
        finally:
            self._sending = False
        return True
