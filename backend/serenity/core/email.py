"""Email sending via Resend API.

Simple HTTP POST to Resend with a plain-text body. Callers decide whether a
delivery failure matters; this module raises on transport or API errors.
"""

import logging

import httpx

from serenity.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def send_email(*, to_email: str, subject: str, text: str) -> bool:
    """Send a plain-text email via Resend.

    Args:
        to_email: Recipient email address.
        subject: Subject line.
        text: Plain-text body.

    Returns:
        True if the email was handed to Resend, False if delivery is
        disabled (no API key configured).

    Raises:
        httpx.HTTPError: On transport failure or a non-2xx response.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.info("Email delivery disabled; skipping %r to %s", subject, to_email)
        return False

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
    return True
