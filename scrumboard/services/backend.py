import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, List, TypeVar

import httpx

from scrumboard.config import Settings, settings as default_settings
from scrumboard.schemas.chat import ChatMessage
from scrumboard.schemas.project import Collaborator, Project
from scrumboard.schemas.sprint import Sprint
from scrumboard.schemas.task import Task
from scrumboard.schemas.user import UserRecord

log = logging.getLogger(__name__)

T = TypeVar("T")

_KEY_RE = re.compile(r"Key \((\w+)\)")


class BackendError(Exception):
    """The hosted backend rejected a request."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class BackendNotFoundError(BackendError):
    pass


class BackendConflictError(BackendError):
    """Unique constraint violation reported by the backend (HTTP 409)."""

    @property
    def field(self) -> str | None:
        details = ""
        message = self.message
        if isinstance(self.payload, dict):
            details = self.payload.get("details") or ""
            message = self.payload.get("message") or message
        match = _KEY_RE.search(details)
        if match:
            return match.group(1)
        for name in ("email", "username"):
            if name in message:
                return name
        return None


class BackendUnavailableError(BackendError):
    pass


async def with_retry(
    call: Callable[[], Awaitable[T]],
    attempts: int = 3,
    backoff: float = 0.5,
) -> T:
    """Run `call`, retrying transport failures and 5xx answers.

    Client errors (4xx) are final and are raised on the first attempt.
    """
    attempt = 1
    while True:
        try:
            return await call()
        except BackendUnavailableError as e:
            if attempt >= attempts:
                log.error(f"Backend still unavailable after {attempt} attempts: {e}")
                raise
            log.warning(f"Backend unavailable (attempt {attempt}/{attempts}): {e}")
            await asyncio.sleep(backoff * attempt)
            attempt += 1


def _quote(value: str) -> str:
    # PostgREST reserved characters inside or=(...) need double quotes
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class BackendClient:
    """Row API of the hosted backend (PostgREST dialect)."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = config or default_settings
        self.transport = transport

    async def _make_backend_request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        data: dict | None = None,
        prefer: str | None = None,
    ) -> Any:
        """Общий метод для запросов к backend"""
        url = f"{self.settings.rest_url}/{table}"
        headers = {
            "apikey": self.settings.backend_api_key,
            "Authorization": f"Bearer {self.settings.backend_api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        try:
            log.debug(f"Making request to backend: {method} {url} {params}")
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=data,
                    timeout=self.settings.backend_timeout,
                )
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()

        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            try:
                payload = e.response.json()
            except ValueError:
                payload = e.response.text
            message = payload.get("message") if isinstance(payload, dict) else str(payload)
            message = message or f"Backend answered {code}"
            if code == 409:
                raise BackendConflictError(message, code, payload)
            if code == 404:
                raise BackendNotFoundError(message, code, payload)
            if code >= 500:
                raise BackendUnavailableError(message, code, payload)
            log.error(f"Backend rejected {method} {table}: {code} {message}")
            raise BackendError(message, code, payload)
        except httpx.RequestError as e:
            raise BackendUnavailableError(f"Backend request failed: {e}")

    async def _request(self, method: str, table: str, **kwargs) -> Any:
        return await with_retry(
            lambda: self._make_backend_request(method, table, **kwargs),
            attempts=self.settings.backend_retry_attempts,
            backoff=self.settings.backend_retry_backoff,
        )

    async def _single(self, table: str, params: dict, what: str) -> dict:
        rows = await self._request("GET", table, params={**params, "limit": 1})
        if not rows:
            raise BackendNotFoundError(f"{what} not found", 404)
        return rows[0]

    # --- tasks ---

    async def list_backlog_tasks(self, project_id: str) -> List[Task]:
        """Задачи проекта без спринта"""
        rows = await self._request(
            "GET",
            "tasks",
            params={
                "select": "*",
                "project_id": f"eq.{project_id}",
                "sprint_id": "is.null",
            },
        )
        return [Task(**row) for row in rows or []]

    async def list_sprint_tasks(self, sprint_id: str) -> List[Task]:
        rows = await self._request(
            "GET",
            "tasks",
            params={"select": "*", "sprint_id": f"eq.{sprint_id}"},
        )
        return [Task(**row) for row in rows or []]

    async def get_task(self, task_id: str) -> Task:
        return Task(**await self._single("tasks", {"id": f"eq.{task_id}"}, "Task"))

    async def create_task(self, fields: dict) -> Task:
        rows = await self._request(
            "POST", "tasks", data=fields, prefer="return=representation"
        )
        return Task(**rows[0])

    async def update_task(self, task_id: str, fields: dict) -> Task:
        rows = await self._request(
            "PATCH",
            "tasks",
            params={"id": f"eq.{task_id}"},
            data=fields,
            prefer="return=representation",
        )
        if not rows:
            raise BackendNotFoundError(f"Task {task_id} not found", 404)
        return Task(**rows[0])

    async def delete_task(self, task_id: str) -> None:
        rows = await self._request(
            "DELETE",
            "tasks",
            params={"id": f"eq.{task_id}"},
            prefer="return=representation",
        )
        if not rows:
            raise BackendNotFoundError(f"Task {task_id} not found", 404)

    # --- sprints ---

    async def list_sprints(self, project_id: str) -> List[Sprint]:
        rows = await self._request(
            "GET",
            "sprints",
            params={
                "select": "*",
                "project_id": f"eq.{project_id}",
                "order": "start_date.asc",
            },
        )
        return [Sprint(**row) for row in rows or []]

    async def get_sprint(self, sprint_id: str) -> Sprint:
        return Sprint(**await self._single("sprints", {"id": f"eq.{sprint_id}"}, "Sprint"))

    async def create_sprint(self, fields: dict) -> Sprint:
        rows = await self._request(
            "POST", "sprints", data=fields, prefer="return=representation"
        )
        return Sprint(**rows[0])

    async def update_sprint(self, sprint_id: str, fields: dict) -> Sprint:
        rows = await self._request(
            "PATCH",
            "sprints",
            params={"id": f"eq.{sprint_id}"},
            data=fields,
            prefer="return=representation",
        )
        if not rows:
            raise BackendNotFoundError(f"Sprint {sprint_id} not found", 404)
        return Sprint(**rows[0])

    # --- projects and teams ---

    async def get_project(self, project_id: str) -> Project:
        return Project(
            **await self._single("projects", {"id": f"eq.{project_id}"}, "Project")
        )

    async def list_projects(self, user_id: str) -> List[Project]:
        """Проекты, где пользователь владелец или участник"""
        owned = await self._request(
            "GET", "projects", params={"select": "*", "owner_id": f"eq.{user_id}"}
        )
        links = await self._request(
            "GET",
            "project_collaborators",
            params={"select": "project_id", "user_id": f"eq.{user_id}"},
        )
        rows = list(owned or [])
        known = {row["id"] for row in rows}
        shared_ids = [
            link["project_id"] for link in links or [] if link["project_id"] not in known
        ]
        if shared_ids:
            shared = await self._request(
                "GET",
                "projects",
                params={"select": "*", "id": f"in.({','.join(shared_ids)})"},
            )
            rows.extend(shared or [])
        return [Project(**row) for row in rows]

    async def list_collaborators(self, project_id: str) -> List[Collaborator]:
        rows = await self._request(
            "GET",
            "project_collaborators",
            params={
                "select": "id,role,user_id,users(username,email)",
                "project_id": f"eq.{project_id}",
            },
        )
        collaborators = []
        for row in rows or []:
            user = row.get("users") or {}
            collaborators.append(
                Collaborator(
                    id=row["id"],
                    user_id=row["user_id"],
                    role=row.get("role") or "team_member",
                    username=user.get("username") or "",
                    email=user.get("email"),
                )
            )
        return collaborators

    # --- chat ---

    async def list_chat_messages(self, project_id: str) -> List[ChatMessage]:
        rows = await self._request(
            "GET",
            "chat_messages",
            params={
                "select": "*",
                "project_id": f"eq.{project_id}",
                "order": "created_at.asc",
            },
        )
        return [ChatMessage(**row) for row in rows or []]

    async def insert_chat_message(self, fields: dict) -> ChatMessage:
        rows = await self._request(
            "POST", "chat_messages", data=fields, prefer="return=representation"
        )
        return ChatMessage(**rows[0])

    # --- users ---

    async def find_user(self, email_or_username: str) -> UserRecord | None:
        value = _quote(email_or_username)
        rows = await self._request(
            "GET",
            "users",
            params={
                "select": "*",
                "or": f"(email.eq.{value},username.eq.{value})",
                "limit": 1,
            },
        )
        return UserRecord(**rows[0]) if rows else None

    async def get_user(self, user_id: str) -> UserRecord:
        return UserRecord(**await self._single("users", {"id": f"eq.{user_id}"}, "User"))

    async def insert_user(self, fields: dict) -> UserRecord:
        """Single insert; uniqueness of email/username is enforced by the backend."""
        rows = await self._request(
            "POST", "users", data=fields, prefer="return=representation"
        )
        return UserRecord(**rows[0])

    async def update_user(self, user_id: str, fields: dict) -> UserRecord:
        rows = await self._request(
            "PATCH",
            "users",
            params={"id": f"eq.{user_id}"},
            data=fields,
            prefer="return=representation",
        )
        if not rows:
            raise BackendNotFoundError(f"User {user_id} not found", 404)
        return UserRecord(**rows[0])
