from __future__ import annotations

import logging
import re

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from src.config import Settings, get_settings
from src.db.subscribers import insert_subscriber
from src.email.sender import send_subscriber_notification
from src.handlers.abuse import check_signup_rate, is_honeypot_triggered, record_signup_attempt

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UNKNOWN_SOURCE = "unknown"


class SignupError(Exception):
    status_code = 500
    public_message = "Something went wrong"


class SignupValidationError(SignupError):
    status_code = 400
    public_message = "Invalid email address"


class RateLimitExceededError(SignupError):
    status_code = 429
    public_message = "Too many attempts. Please try again later."


class SignupStorageError(SignupError):
    pass


class SignupForm(BaseModel):
    email: str | None = None
    website: str | None = None


class SignupResult(BaseModel):
    success: bool = True
    redirect: str
    created: bool = False
    notified: bool = False


def normalize_email(raw: str | None) -> str:
    """Trim and lowercase ``raw``; raise SignupValidationError if it is not an address."""
    email = (raw or "").strip().lower()
    if not email or not EMAIL_PATTERN.match(email):
        raise SignupValidationError(email)
    return email


def resolve_source_address(request: Request, *, trust_forwarded_for: bool = False) -> str:
    client_host = request.client.host if request.client else ""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if trust_forwarded_for and first_hop:
        return first_hop
    return client_host or first_hop or UNKNOWN_SOURCE


async def handle_signup(
    *,
    session: AsyncSession,
    form: SignupForm,
    source_address: str,
    settings: Settings | None = None,
) -> SignupResult:
    active_settings = settings or get_settings()
    redirect = active_settings.signup_success_redirect

    if is_honeypot_triggered(form.website):
        logger.info("Honeypot field filled from %s; ignoring signup", source_address)
        return SignupResult(redirect=redirect)

    email = normalize_email(form.email)

    try:
        rate = await check_signup_rate(session, source_address, active_settings)
        if not rate.allowed:
            logger.warning("Signup rate limit hit for %s (%s, %d attempts)", source_address, rate.reason, rate.attempts)
            raise RateLimitExceededError(source_address)

        await record_signup_attempt(session, source_address, active_settings)
        subscriber_id = await insert_subscriber(session, email=email, ip_address=source_address)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise SignupStorageError(str(exc)) from exc

    if subscriber_id is None:
        logger.info("Duplicate signup for %s", email)
        return SignupResult(redirect=redirect)

    logger.info("New subscriber %s (id=%d)", email, subscriber_id)
    notified = await _notify_operator(email, active_settings)
    return SignupResult(redirect=redirect, created=True, notified=notified)


async def _notify_operator(email: str, settings: Settings) -> bool:
    if not settings.notifications_enabled():
        logger.info("Skipping notification for %s: no API key", email)
        return False
    try:
        return await send_subscriber_notification(
            subscriber_email=email,
            resend_api_key=settings.resend_api_key,
            email_from=settings.email_from,
            email_to=settings.notification_email_to,
            subject=settings.notification_subject,
            timezone=settings.notification_timezone,
            formats=settings.notification_formats,
            http_timeout_seconds=settings.email_http_timeout_seconds,
        )
    except Exception:
        # A missed notification must never turn a stored signup into an error.
        logger.exception("Unexpected error while notifying about %s", email)
        return False
