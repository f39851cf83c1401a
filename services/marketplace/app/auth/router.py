"""
Auth router.

Only HTTP concerns live here: routes, status codes, rate limits and
dependency injection. Zero business logic.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.config import AuthSettings
from shared.auth.dependencies import get_auth_settings, get_current_user_required
from shared.models.envelope import Envelope
from shared.models.user import CurrentUser

from app.auth import controller
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
from app.config import Settings, get_settings
from app.database import get_db
from app.dependencies import get_otp_store
from app.rate_limit import limiter

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/signup",
    response_model=Envelope[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Aspirant, institution (name and type required) or admin "
    "(signup code required). Institutions start unverified.",
)
@limiter.limit("10/hour")
async def signup(
    request: Request,
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    auth_settings: AuthSettings = Depends(get_auth_settings),
) -> Envelope[TokenResponse]:
    result = await controller.signup(db, body, settings, auth_settings, background_tasks)
    return Envelope(data=result, message="Account created.")


@router.post(
    "/login",
    response_model=Envelope[TokenResponse],
    summary="Log in with email and password",
)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    auth_settings: AuthSettings = Depends(get_auth_settings),
) -> Envelope[TokenResponse]:
    return Envelope(data=await controller.login(db, body, settings, auth_settings))


@router.get("/me", response_model=Envelope[UserResponse], summary="Current account")
async def me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[UserResponse]:
    return Envelope(data=await controller.me(db, user))


@router.post("/password", response_model=Envelope[None], summary="Change password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user_required),
) -> Envelope[None]:
    await controller.change_password(db, user, body)
    return Envelope(data=None, message="Password updated.")


@router.post(
    "/send-otp",
    response_model=Envelope[None],
    summary="E-mail a one-time verification code",
)
@limiter.limit("5/minute")
async def send_otp(
    request: Request,
    body: SendOtpRequest,
    background_tasks: BackgroundTasks,
    store: OtpStore = Depends(get_otp_store),
    settings: Settings = Depends(get_settings),
) -> Envelope[None]:
    await controller.send_otp(body, store, settings, background_tasks)
    return Envelope(data=None, message="OTP sent to your email.")


@router.post(
    "/verify-otp",
    response_model=Envelope[None],
    summary="Check a one-time verification code",
)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    body: VerifyOtpRequest,
    store: OtpStore = Depends(get_otp_store),
    settings: Settings = Depends(get_settings),
) -> Envelope[None]:
    await controller.verify_otp(body, store, settings)
    return Envelope(data=None, message="Email verified.")
