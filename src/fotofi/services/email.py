"""Transactional email through the Resend HTTP API."""

import logging

import httpx

from fotofi.core.config import settings

logger = logging.getLogger(__name__)

_BUTTON_STYLE = (
    "background-color: #000000; border-radius: 5px; color: #fff; font-size: 16px; "
    "font-weight: bold; text-decoration: none; text-align: center; display: block; "
    "padding: 12px; margin: 16px 0;"
)


def render_verification_email(url: str) -> str:
    return (
        "<h1>Verify your email address</h1>"
        "<p>Please click the button below to verify your email address.</p>"
        f'<a href="{url}" style="{_BUTTON_STYLE}">Verify Email</a>'
        "<p>If you didn't request this, you can safely ignore this email.</p>"
    )


async def send_verification_email(
    email: str,
    token: str,
    timeout: int = 10,
) -> None:
    """
    Send the sign-up verification email (fire-and-forget).

    Designed to run as a background task. Errors are logged but don't
    propagate to the caller.

    Args:
        email: Recipient address
        token: Verification token to embed in the link
        timeout: Request timeout in seconds
    """
    if not settings.email_enabled:
        logger.debug("Email provider not configured, skipping verification email")
        return

    url = f"{settings.APP_BASE_URL.rstrip('/')}/api/auth/verify-email?token={token}"
    payload = {
        "from": settings.EMAIL_FROM,
        "to": [email],
        "subject": "Verify your email address",
        "html": render_verification_email(url),
    }

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                settings.RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            )
            response.raise_for_status()

        logger.info("Verification email sent", extra={"email": email})

    except httpx.TimeoutException:
        logger.warning(
            "Verification email timeout (non-critical)",
            extra={"email": email, "timeout": timeout},
        )

    except httpx.HTTPError as e:
        logger.warning(
            "Verification email failed (non-critical)",
            extra={
                "email": email,
                "error": str(e),
                "status_code": getattr(e.response, "status_code", None) if hasattr(e, "response") else None,
            },
        )
