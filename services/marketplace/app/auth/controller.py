"""
Auth controller (request orchestration layer).

Receives validated input from the router, calls the service, composes the
response model and schedules notification e-mails on BackgroundTasks.
"""
from __future__ import annotations

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.config import AuthSettings
from shared.models.user import CurrentUser

from app.auth import service
from app.auth.otp import OtpStore
from app.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    SendOtpRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
    VerifyOtpRequest,
)
from app.config import Settings
from app.email import send
from app.exceptions import to_http_error
from app.models.user import User


def _token_response(user: User, settings: Settings, auth_settings: AuthSettings) -> TokenResponse:
    token = service.create_access_token(user, auth_settings, settings.access_token_expire_seconds)
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_seconds,
        user=UserResponse.model_validate(user),
    )


async def signup(
    db: AsyncSession,
    body: SignupRequest,
    settings: Settings,
    auth_settings: AuthSettings,
    background_tasks: BackgroundTasks,
) -> TokenResponse:
    try:
        user = await service.register_user(
            db,
            name=body.name,
            email=body.email,
            password=body.password,
            role=body.role,
            institution_name=body.institution_name,
            institution_type=body.institution_type,
            admin_code=body.admin_code,
            admin_signup_code=settings.admin_signup_code,
        )
        await db.commit()
    except Exception as exc:
        raise to_http_error(exc) from exc
    background_tasks.add_task(send.send_welcome, user.email, user.name, settings)
    return _token_response(user, settings, auth_settings)


async def login(
    db: AsyncSession,
    body: LoginRequest,
    settings: Settings,
    auth_settings: AuthSettings,
) -> TokenResponse:
    try:
        user = await service.authenticate_user(db, body.email, body.password, body.role)
        await db.commit()
        return _token_response(user, settings, auth_settings)
    except Exception as exc:
        raise to_http_error(exc) from exc


async def me(db: AsyncSession, user: CurrentUser) -> UserResponse:
    try:
        return UserResponse.model_validate(await service.get_user_by_id(db, user.id))
    except Exception as exc:
        raise to_http_error(exc) from exc


async def change_password(db: AsyncSession, user: CurrentUser, body: ChangePasswordRequest) -> None:
    try:
        await service.change_password(db, user.id, body.current_password, body.new_password)
        await db.commit()
    except Exception as exc:
        raise to_http_error(exc) from exc


async def send_otp(
    body: SendOtpRequest,
    store: OtpStore,
    settings: Settings,
    background_tasks: BackgroundTasks,
) -> None:
    code = await service.issue_email_otp(store, body.email, settings.otp_ttl_seconds)
    background_tasks.add_task(send.send_otp, body.email, body.name or "", code, settings)


async def verify_otp(body: VerifyOtpRequest, store: OtpStore, settings: Settings) -> None:
    try:
        await service.verify_email_otp(store, body.email, body.otp, settings.otp_max_attempts)
    except Exception as exc:
        raise to_http_error(exc) from exc
