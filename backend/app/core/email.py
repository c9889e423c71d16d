"""Email sending via Resend API.

Plain HTTP POST to Resend for transactional notifications. Delivery is
best-effort: failures are logged and never propagate to the request that
triggered them.
"""

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

# Preview length for message bodies quoted in notifications
_PREVIEW_CHARS = 500


async def send_email(*, to_email: str, subject: str, text: str) -> bool:
    """Send a plain-text email.

    Skipped (returns False) when no Resend API key is configured.

    Args:
        to_email: Recipient address.
        subject: Subject line.
        text: Plain-text body.

    Returns:
        True if Resend accepted the message, False otherwise.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.info("Email delivery not configured, skipping '%s'", subject)
        return False

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": subject,
                    "text": text,
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except Exception:
        logger.warning("Failed to send email '%s'", subject, exc_info=True)
        return False
    return True


async def send_inquiry_notification_email(
    *,
    to_email: str,
    listing_title: str,
    sender_name: str,
    message: str,
    inquiry_id: str,
    is_reply: bool = False,
) -> bool:
    """Notify a participant about a new inquiry or reply.

    Args:
        to_email: Recipient (seller for new inquiries, other side for replies).
        listing_title: Title of the listing the thread is about.
        sender_name: Display name of the message author.
        message: Message body (truncated in the email).
        inquiry_id: Thread id for the dashboard link.
        is_reply: True for replies on an existing thread.

    Returns:
        True if the email was accepted by the provider.
    """
    preview = message[:_PREVIEW_CHARS]
    if len(message) > _PREVIEW_CHARS:
        preview += "..."
    verb = "replied to your inquiry" if is_reply else "sent an inquiry"
    link = f"{settings.frontend_url}/dashboard/inquiries/{inquiry_id}"
    return await send_email(
        to_email=to_email,
        subject=f"{sender_name} {verb}: {listing_title}",
        text=f"{sender_name} {verb} about \"{listing_title}\":\n\n{preview}\n\nView and reply: {link}",
    )
