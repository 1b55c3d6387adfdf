import logging

from fastapi import APIRouter, HTTPException, status

from scrumboard.api.deps import AnonymousContext, Ctx
from scrumboard.config import settings
from scrumboard.database.client_session import ClientSession
from scrumboard.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from scrumboard.schemas.user import ProfileResponse
from scrumboard.services.account import AccountError, AccountService
from scrumboard.services.token_manager import generate_access_jwt

log = logging.getLogger(__name__)

router = APIRouter()


def _token_response(client_session: ClientSession) -> TokenResponse:
    return TokenResponse(
        access_token=generate_access_jwt(client_session.id, client_session.user_id),
        expires_in=settings.access_token_expire_minutes * 60,
        profile=ProfileResponse.model_validate(client_session),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    summary="Зарегистрировать нового пользователя",
    responses={
        200: {"description": "Пользователь создан, сессия открыта"},
        400: {"description": "Некорректные данные формы"},
        409: {"description": "Email или имя пользователя уже заняты"},
    },
)
async def register(request: RegisterRequest, ctx: AnonymousContext):
    """
    Создает учетную запись и сразу открывает клиентскую сессию.

    Уникальность email и имени пользователя проверяет бэкенд: повторная
    регистрация приходит как конфликт и превращается в 409.
    """
    try:
        client_session = await AccountService(ctx).register(
            request.username, request.email, request.password
        )
    except AccountError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT if e.conflict else status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )
    return _token_response(client_session)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Войти по email или имени пользователя",
    responses={
        200: {"description": "Сессия открыта"},
        401: {"description": "Неверные учетные данные"},
    },
)
async def login(request: LoginRequest, ctx: AnonymousContext):
    try:
        client_session = await AccountService(ctx).login(
            request.email_or_username, request.password
        )
    except AccountError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    log.info(f"User {client_session.user_id} logged in")
    return _token_response(client_session)


@router.post("/logout")
async def logout(ctx: Ctx):
    """Close the client session; the token stops working immediately."""
    await AccountService(ctx).logout()
    return {"message": "Logged out"}
