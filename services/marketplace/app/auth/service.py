"""
Accounts — pure business logic for signup, login and one-time codes.

Rules:
  - Zero FastAPI imports.
  - Only flush(); the controller commits.
  - Institutions start unverified; aspirants and admins start verified.
"""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from jose import jwt
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.config import AuthSettings
from shared.constants import Role

from app.auth.otp import OtpCheck, OtpStore
from app.auth.utils import generate_otp, hash_password, normalize_email, verify_password
from app.clock import utcnow
from app.exceptions import (
    AccountInactive,
    Conflict,
    Forbidden,
    InvalidCredentials,
    InvalidOtp,
    UserNotFound,
    ValidationFailed,
)
from app.models.enums import InstitutionType
from app.models.user import User

logger = logging.getLogger(__name__)


# ── User queries ──────────────────────────────────────────────────────────────

async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise UserNotFound(str(user_id))
    return user


# ── Registration ──────────────────────────────────────────────────────────────

async def register_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
    role: Role,
    institution_name: str | None = None,
    institution_type: InstitutionType | None = None,
    admin_code: str | None = None,
    admin_signup_code: str = "",
) -> User:
    """
    Create an account.

    Guard clauses run first — the happy path is last.
    """
    if role == Role.INSTITUTION:
        if not (institution_name or "").strip():
            raise ValidationFailed("Institution name is required for institution accounts.")
        if institution_type is None:
            raise ValidationFailed("Institution type is required for institution accounts.")
    if role == Role.ADMIN:
        if not admin_signup_code or admin_code != admin_signup_code:
            raise Forbidden("Admin registration is not allowed.")

    if await get_user_by_email(session, email) is not None:
        raise Conflict("Email already registered.")

    is_institution = role == Role.INSTITUTION
    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=role,
        institution_name=institution_name.strip() if is_institution else None,
        institution_type=institution_type if is_institution else None,
        is_verified=not is_institution,
        is_active=True,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise Conflict("Email already registered.") from exc
    logger.info("Registered %s account %s", role.value, user.id)
    return user


# ── Authentication ────────────────────────────────────────────────────────────

async def authenticate_user(
    session: AsyncSession,
    email: str,
    password: str,
    role: Role | None = None,
) -> User:
    """
    Verify credentials and return the User.

    Generic error on bad credentials or role mismatch so neither leaks which
    accounts exist. A deactivated account gets a specific message.
    """
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if role is not None and user.role != role:
        raise InvalidCredentials()
    if not user.is_active:
        raise AccountInactive()

    user.last_login_at = utcnow()
    user.login_count = (user.login_count or 0) + 1
    await session.flush()
    return user


async def change_password(
    session: AsyncSession,
    user_id: uuid.UUID,
    current_password: str,
    new_password: str,
) -> None:
    user = await get_user_by_id(session, user_id)
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect.")
    if current_password == new_password:
        raise ValidationFailed("New password must differ from the current one.")
    user.password_hash = hash_password(new_password)
    await session.flush()


# ── JWT access token ──────────────────────────────────────────────────────────

def create_access_token(
    user: User,
    settings: AuthSettings,
    expire_seconds: int,
) -> str:
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(seconds=expire_seconds),
        "iss": settings.issuer,
        "aud": settings.audience,
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


# ── Email OTP ─────────────────────────────────────────────────────────────────

async def issue_email_otp(store: OtpStore, email: str, ttl_seconds: int) -> str:
    """Store a fresh code for ``email`` and return it; the caller e-mails it."""
    code = generate_otp()
    await store.issue(normalize_email(email), code, ttl_seconds)
    return code


_OTP_MESSAGES = {
    OtpCheck.INVALID: "Invalid OTP.",
    OtpCheck.EXPIRED: "OTP expired or not found. Please request a new one.",
    OtpCheck.EXHAUSTED: "Too many attempts. Please request a new OTP.",
}


async def verify_email_otp(store: OtpStore, email: str, code: str, max_attempts: int) -> None:
    outcome = await store.check(normalize_email(email), code.strip(), max_attempts)
    if outcome != OtpCheck.VALID:
        raise InvalidOtp(_OTP_MESSAGES[outcome])
