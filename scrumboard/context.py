import logging
from dataclasses import dataclass
from typing import List, Optional

from scrumboard.config import Settings
from scrumboard.database.client_session import ClientSession
from scrumboard.database.repositories.client_session import ClientSessionRepository
from scrumboard.schemas.project import Collaborator, Project
from scrumboard.services.backend import BackendClient

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Per-user application state, passed explicitly to every workflow.

    Built from the persisted client session at request start, mutated by
    user actions (theme, profile edits, opening a project) and torn down at
    logout.
    """

    settings: Settings
    backend: BackendClient
    sessions: ClientSessionRepository
    session: Optional[ClientSession] = None
    is_owner: bool = False
    user_role: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def theme(self) -> str:
        return self.session.theme if self.session else self.settings.default_theme

    def open_project(self, project: Project, collaborators: List[Collaborator]) -> None:
        """Resolve the user's role in the project being viewed."""
        self.is_owner = self.user_id is not None and project.owner_id == self.user_id
        self.user_role = None
        for collaborator in collaborators:
            if collaborator.user_id == self.user_id:
                self.user_role = collaborator.role.value
                break

    @property
    def is_member(self) -> bool:
        return self.is_owner or self.user_role is not None

    async def update_profile(
        self, username: Optional[str] = None, email: Optional[str] = None
    ) -> None:
        if self.session is None:
            return
        self.session = await self.sessions.update_profile(
            self.session.id, username=username, email=email
        )

    async def toggle_theme(self) -> str:
        new_theme = "light" if self.theme == "dark" else "dark"
        if self.session is not None:
            self.session = await self.sessions.set_theme(self.session.id, new_theme)
        return new_theme

    async def teardown(self) -> None:
        if self.session is not None:
            await self.sessions.delete(self.session.id)
            log.info(f"Session of user {self.session.user_id} closed")
        self.session = None
        self.is_owner = False
        self.user_role = None
