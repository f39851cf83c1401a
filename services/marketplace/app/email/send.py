"""
Outbound notifications.

All send_* functions are fire-and-forget: they log on failure but never raise.
Intended exclusively for use inside FastAPI BackgroundTasks; no state
transition depends on delivery.
"""
from __future__ import annotations

import logging
from html import escape

from app.config import Settings
from app.email import brevo

logger = logging.getLogger(__name__)


async def _deliver(to_email: str, to_name: str, subject: str, html: str, settings: Settings) -> None:
    if not brevo.is_configured(settings):
        logger.warning("No email provider configured, skipping email to %s", to_email)
        return
    if not await brevo.deliver(to_email, to_name, subject, html, settings):
        logger.error("Email delivery failed for %s (%s)", to_email, subject)


async def send_otp(to_email: str, name: str, code: str, settings: Settings) -> None:
    minutes = max(1, settings.otp_ttl_seconds // 60)
    await _deliver(
        to_email, name or to_email,
        "Your CoachBay verification code",
        f"<p>Hi {escape(name or 'there')},</p>"
        f"<p>Your verification code is: <strong style='font-size:24px;letter-spacing:4px'>"
        f"{code}</strong></p>"
        f"<p>This code is valid for <strong>{minutes} minutes</strong>.</p>"
        "<p style='color:#6b7280;font-size:13px'>"
        "If you did not request this code, you can safely ignore this email.</p>",
        settings,
    )


async def send_welcome(to_email: str, name: str, settings: Settings) -> None:
    await _deliver(
        to_email, name,
        "Welcome to CoachBay!",
        f"<p>Hi {escape(name)},</p>"
        "<p>Your account is ready. Browse courses, shortlist the ones you like "
        "and enroll when you are ready.</p>",
        settings,
    )


async def send_institution_verified(
    to_email: str, name: str, institution_name: str, settings: Settings
) -> None:
    await _deliver(
        to_email, name,
        "Your institution is verified on CoachBay",
        f"<p>Hi {escape(name)},</p>"
        f"<p><strong>{escape(institution_name)}</strong> has been verified. "
        "New courses you create are now published immediately.</p>",
        settings,
    )


async def send_institution_unverified(
    to_email: str, name: str, institution_name: str, settings: Settings
) -> None:
    await _deliver(
        to_email, name,
        "CoachBay verification update",
        f"<p>Hi {escape(name)},</p>"
        f"<p>The verification of <strong>{escape(institution_name)}</strong> has been withdrawn. "
        "Please contact support for details.</p>",
        settings,
    )


async def send_institution_delisted(
    to_email: str, name: str, institution_name: str, reason: str, settings: Settings
) -> None:
    await _deliver(
        to_email, name,
        "Your institution has been delisted from CoachBay",
        f"<p>Hi {escape(name)},</p>"
        f"<p><strong>{escape(institution_name)}</strong> has been delisted and all of its courses "
        "are suspended.</p>"
        f"<p><strong>Reason:</strong> {escape(reason)}</p>"
        "<p>If you believe this is a mistake, please contact support.</p>",
        settings,
    )
