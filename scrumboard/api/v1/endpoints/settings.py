from fastapi import APIRouter

from scrumboard.api.deps import Ctx
from scrumboard.schemas.user import (
    EmailUpdate,
    PasswordUpdate,
    ProfileResponse,
    SettingsResponse,
    UsernameUpdate,
)
from scrumboard.services.account import AccountService

router = APIRouter()


def _settings_response(ok: bool, account: AccountService) -> SettingsResponse:
    return SettingsResponse(
        ok=ok,
        profile=ProfileResponse.model_validate(account.ctx.session),
        notices=account.notices,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(ctx: Ctx):
    """Get current user's profile"""
    return ProfileResponse.model_validate(ctx.session)


@router.put("/username", response_model=SettingsResponse)
async def update_username(request: UsernameUpdate, ctx: Ctx):
    account = AccountService(ctx)
    ok = await account.update_username(request.username)
    return _settings_response(ok, account)


@router.put(
    "/email",
    response_model=SettingsResponse,
    summary="Сменить email",
    response_description="Результат операции и уведомления для пользователя",
)
async def update_email(request: EmailUpdate, ctx: Ctx):
    """
    Меняет email пользователя. Требует текущий пароль.

    Ошибки валидации и конфликт адреса возвращаются как уведомления,
    а не как HTTP ошибки.
    """
    account = AccountService(ctx)
    ok = await account.update_email(request.email, request.password)
    return _settings_response(ok, account)


@router.put("/password", response_model=SettingsResponse)
async def update_password(request: PasswordUpdate, ctx: Ctx):
    account = AccountService(ctx)
    ok = await account.update_password(
        request.current_password, request.new_password, request.confirm_new_password
    )
    return _settings_response(ok, account)


@router.post("/theme/toggle", response_model=ProfileResponse)
async def toggle_theme(ctx: Ctx):
    await AccountService(ctx).toggle_theme()
    return ProfileResponse.model_validate(ctx.session)
