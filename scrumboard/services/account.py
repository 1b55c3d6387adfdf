import hashlib
import hmac
import logging
import secrets
from typing import List

from pydantic import validate_email
from pydantic_core import PydanticCustomError

from scrumboard.context import AppContext
from scrumboard.database.client_session import ClientSession
from scrumboard.schemas.notice import Notice
from scrumboard.services.backend import BackendConflictError

log = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000
MIN_PASSWORD_LENGTH = 6

CONFLICT_MESSAGES = {
    "email": "Email already in use",
    "username": "Username already taken",
}


class AccountError(Exception):
    def __init__(self, message: str, conflict: bool = False):
        super().__init__(message)
        self.message = message
        self.conflict = conflict


def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        algorithm, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def is_valid_email(email: str) -> bool:
    try:
        validate_email(email)
    except PydanticCustomError:
        return False
    return True


def conflict_message(error: BackendConflictError, default: str) -> str:
    return CONFLICT_MESSAGES.get(error.field or "", default)


class AccountService:
    """Registration, login and the user settings page."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.notices: List[Notice] = []

    async def _open_session(self, user_id: str, username: str | None, email: str | None) -> ClientSession:
        self.ctx.session = await self.ctx.sessions.create(
            user_id=user_id,
            username=username,
            email=email,
            theme=self.ctx.settings.default_theme,
        )
        return self.ctx.session

    async def register(self, username: str, email: str, password: str) -> ClientSession:
        username = username.strip()
        email = email.strip()
        if not username:
            raise AccountError("Username cannot be empty")
        if not is_valid_email(email):
            raise AccountError("Invalid email format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AccountError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        try:
            user = await self.ctx.backend.insert_user(
                {"username": username, "email": email, "password": hash_password(password)}
            )
        except BackendConflictError as e:
            raise AccountError(conflict_message(e, "Account already exists"), conflict=True)
        except Exception as e:
            log.error(f"Registration error: {e}")
            raise AccountError("Failed to register")

        log.info(f"Registered user {user.id}")
        return await self._open_session(user.id, user.username, user.email)

    async def login(self, email_or_username: str, password: str) -> ClientSession:
        try:
            user = await self.ctx.backend.find_user(email_or_username.strip())
        except Exception as e:
            log.error(f"Login error: {e}")
            raise AccountError("Invalid credentials")

        if user is None or not verify_password(password, user.password):
            raise AccountError("Invalid credentials")
        return await self._open_session(user.id, user.username, user.email)

    async def logout(self) -> None:
        await self.ctx.teardown()

    async def _check_password(self, password: str) -> bool:
        user = await self.ctx.backend.get_user(self.ctx.user_id)
        return verify_password(password, user.password)

    async def update_username(self, new_username: str) -> bool:
        session = self.ctx.session
        if session is None:
            self.notices.append(Notice.error("No user logged in"))
            return False
        if not new_username.strip():
            self.notices.append(Notice.error("Username cannot be empty"))
            return False
        if new_username == session.username:
            self.notices.append(Notice.info("Username is the same as current username"))
            return False

        try:
            await self.ctx.backend.update_user(session.user_id, {"username": new_username})
        except BackendConflictError:
            self.notices.append(Notice.error("Username already taken"))
            return False
        except Exception as e:
            log.error(f"Error updating username: {e}")
            self.notices.append(Notice.error("Failed to update username"))
            return False

        await self.ctx.update_profile(username=new_username)
        self.notices.append(Notice.success("Username updated successfully"))
        return True

    async def update_email(self, new_email: str, password: str) -> bool:
        session = self.ctx.session
        if session is None:
            self.notices.append(Notice.error("No user logged in"))
            return False
        if not new_email.strip():
            self.notices.append(Notice.error("Email cannot be empty"))
            return False
        if new_email == session.email:
            self.notices.append(Notice.info("Email is the same as current email"))
            return False
        if not password.strip():
            self.notices.append(Notice.error("Password is required to update email"))
            return False
        if not is_valid_email(new_email):
            self.notices.append(Notice.error("Invalid email format"))
            return False

        try:
            if not await self._check_password(password):
                self.notices.append(Notice.error("Current password is incorrect"))
                return False
            await self.ctx.backend.update_user(session.user_id, {"email": new_email})
        except BackendConflictError:
            self.notices.append(Notice.error("Email already in use"))
            return False
        except Exception as e:
            log.error(f"Error updating email: {e}")
            self.notices.append(Notice.error("Failed to update email"))
            return False

        await self.ctx.update_profile(email=new_email)
        self.notices.append(Notice.success("Email updated successfully"))
        return True

    async def update_password(
        self, current_password: str, new_password: str, confirm_new_password: str
    ) -> bool:
        if self.ctx.session is None:
            self.notices.append(Notice.error("No user logged in"))
            return False
        if not current_password.strip():
            self.notices.append(Notice.error("Current password is required"))
            return False
        if not new_password.strip():
            self.notices.append(Notice.error("New password cannot be empty"))
            return False
        if new_password != confirm_new_password:
            self.notices.append(Notice.error("New passwords do not match"))
            return False
        if len(new_password) < MIN_PASSWORD_LENGTH:
            self.notices.append(
                Notice.error(
                    f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
                )
            )
            return False

        try:
            if not await self._check_password(current_password):
                self.notices.append(Notice.error("Current password is incorrect"))
                return False
            await self.ctx.backend.update_user(
                self.ctx.user_id, {"password": hash_password(new_password)}
            )
        except Exception as e:
            log.error(f"Error updating password: {e}")
            self.notices.append(Notice.error("Failed to update password"))
            return False

        self.notices.append(Notice.success("Password updated successfully"))
        return True

    async def toggle_theme(self) -> str:
        return await self.ctx.toggle_theme()
