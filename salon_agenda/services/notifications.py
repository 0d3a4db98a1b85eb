# salon_agenda/services/notifications.py
"""
Booking confirmation emails.

Sending is fire-and-forget: a failed email is logged and reported as False,
it never fails the booking that triggered it.
"""
from __future__ import annotations

import asyncio
import html
from datetime import date
from decimal import Decimal
from typing import Optional, Set

import resend
from pydantic import BaseModel
from resend.exceptions import ResendError

from salon_agenda.core.config import settings
from salon_agenda.core.logging import get_logger
from salon_agenda.schemas.booking import EmailTheme

logger = get_logger(__name__)

_THEME_ACCENTS = {
    EmailTheme.DEFAULT: "#1f2937",
    EmailTheme.MINIMAL: "#111111",
    EmailTheme.FESTIVE: "#c2410c",
}

# Strong references to in-flight sends until they finish
_pending: Set[asyncio.Task] = set()


class BookingConfirmation(BaseModel):
    customer_email: str
    customer_name: str
    customer_phone: Optional[str] = None
    business_name: str
    service_name: str
    appointment_date: str  # "Monday, March 3, 2025"
    appointment_time: str  # "HH:MM"
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    booking_id: str
    stylist_name: Optional[str] = None
    stylist_title: Optional[str] = None
    stylist_avatar: Optional[str] = None
    theme: EmailTheme = EmailTheme.DEFAULT
    accent_color: Optional[str] = None


def format_long_date(day: date) -> str:
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


def _row(label: str, value: Optional[str]) -> str:
    if not value:
        return ""
    return (
        f'<tr><td style="padding:4px 12px 4px 0;color:#6b7280">{html.escape(label)}</td>'
        f'<td style="padding:4px 0"><strong>{html.escape(value)}</strong></td></tr>'
    )


def render_confirmation_html(payload: BookingConfirmation) -> str:
    accent = html.escape(payload.accent_color or _THEME_ACCENTS[payload.theme])
    stylist = payload.stylist_name
    if stylist and payload.stylist_title:
        stylist = f"{stylist} ({payload.stylist_title})"
    price = f"{payload.price:.2f}" if payload.price is not None else None
    greeting = "Thanks for booking" if payload.theme != EmailTheme.FESTIVE else "You're all set"

    rows = "".join([
        _row("Service", payload.service_name),
        _row("Date", payload.appointment_date),
        _row("Time", payload.appointment_time),
        _row("Stylist", stylist),
        _row("Price", price),
        _row("Notes", payload.notes),
        _row("Booking reference", payload.booking_id),
    ])

    return (
        '<div style="font-family:Helvetica,Arial,sans-serif;max-width:560px;margin:0 auto">'
        f'<div style="background:{accent};color:#ffffff;padding:20px 24px">'
        f"<h2 style=\"margin:0\">{html.escape(payload.business_name)}</h2></div>"
        '<div style="padding:24px">'
        f"<p>{greeting}, {html.escape(payload.customer_name)}!</p>"
        "<p>Your appointment is confirmed:</p>"
        f'<table style="border-collapse:collapse">{rows}</table>'
        "</div></div>"
    )


async def send_booking_confirmation(payload: BookingConfirmation) -> bool:
    """Send the confirmation through Resend. Returns False instead of raising on any failure."""
    if not settings.RESEND_API_KEY:
        logger.info("email_skipped", reason="RESEND_API_KEY not configured", booking_id=payload.booking_id)
        return False

    resend.api_key = settings.RESEND_API_KEY
    params = {
        "from": settings.EMAIL_FROM,
        "to": [payload.customer_email],
        "subject": f"Booking confirmed at {payload.business_name}",
        "html": render_confirmation_html(payload),
    }
    try:
        # The SDK is blocking; keep it off the event loop
        response = await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, params),
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    except ResendError as e:
        logger.warning("email_failed", booking_id=payload.booking_id,
                       status=e.code, error_type=e.error_type, error=str(e.message)[:200])
        return False
    except Exception as e:
        # Timeouts and transport errors; the booking is already committed
        logger.warning("email_failed", booking_id=payload.booking_id, error=str(e) or type(e).__name__)
        return False

    logger.info("email_sent", booking_id=payload.booking_id, email_id=(response or {}).get("id"))
    return True


def dispatch_confirmation(payload: BookingConfirmation) -> asyncio.Task:
    """Schedule the send on the running loop and return without waiting for it."""
    task = asyncio.create_task(send_booking_confirmation(payload))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def drain_pending() -> None:
    """Wait for in-flight confirmation sends (shutdown and tests)."""
    if _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
