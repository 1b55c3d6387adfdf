import logging
import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..client_session import ClientSession

log = logging.getLogger(__name__)


class ClientSessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, session_id: str) -> ClientSession | None:
        """Получить сессию по ID"""
        result = await self.session.execute(
            select(ClientSession).where(ClientSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self, user_id: str, username: str | None, email: str | None, theme: str
    ) -> ClientSession:
        client_session = ClientSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            username=username,
            email=email,
            theme=theme,
        )
        self.session.add(client_session)
        await self.session.commit()
        await self.session.refresh(client_session)
        log.debug(f"Created client session {client_session.id} for user {user_id}")
        return client_session

    async def update_profile(
        self,
        session_id: str,
        username: str | None = None,
        email: str | None = None,
    ) -> ClientSession | None:
        values = {}
        if username is not None:
            values["username"] = username
        if email is not None:
            values["email"] = email
        if values:
            await self.session.execute(
                update(ClientSession)
                .where(ClientSession.id == session_id)
                .values(**values)
            )
            await self.session.commit()
        return await self._reload(session_id)

    async def set_theme(self, session_id: str, theme: str) -> ClientSession | None:
        await self.session.execute(
            update(ClientSession)
            .where(ClientSession.id == session_id)
            .values(theme=theme)
        )
        await self.session.commit()
        return await self._reload(session_id)

    async def delete(self, session_id: str) -> None:
        """Удалить сессию (logout)"""
        await self.session.execute(
            delete(ClientSession).where(ClientSession.id == session_id)
        )
        await self.session.commit()
        log.info(f"Removed client session {session_id}")

    async def _reload(self, session_id: str) -> ClientSession | None:
        client_session = await self.get_by_id(session_id)
        if client_session is not None:
            await self.session.refresh(client_session)
        return client_session
