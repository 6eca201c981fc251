"""
Email Service using Resend

Outbound notifications for the verification lifecycle: OTP codes, deadline
warnings, deactivation notices and review outcomes.

All senders are fire-and-forget: they return True/False and never raise,
so a mail outage cannot break a state transition.
"""

import asyncio
import logging
from datetime import datetime
from html import escape

import resend

from campuslink.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_BASE_STYLE = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #0f4c81; margin-bottom: 24px; }
    .code { font-size: 32px; font-weight: 700; letter-spacing: 8px; font-family: monospace; color: #0ea5e9; }
    .button { display: inline-block; background-color: #0f4c81; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
    .notice { background: #fef3c7; border-radius: 8px; padding: 12px 16px; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _render(title: str, body_html: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head><style>{_BASE_STYLE}</style></head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body_html}
            <div class="footer">
                <p>CampusLink - Campus Networking</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent (or logged, when no API key is configured)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_otp_email(
    to_email: str,
    user_name: str | None,
    code: str,
    expiry_minutes: int,
) -> bool:
    """Send a six-digit email verification code."""
    safe_name = escape(user_name or "there")
    body = f"""
        <p>Hello {safe_name},</p>
        <p>Use the verification code below to complete your registration on CampusLink.</p>
        <p class="code">{code}</p>
        <p>This code expires in <strong>{expiry_minutes} minutes</strong>.</p>
        <p class="notice">If you didn't request this code, please ignore this email.</p>
    """
    return await send_email(
        to_email=to_email,
        subject="Your CampusLink verification code",
        html_content=_render("Email Verification", body),
    )


async def send_deactivation_warning(
    to_email: str,
    user_name: str,
    deadline: datetime,
) -> bool:
    """Warn a principal that their account is about to be deactivated."""
    safe_name = escape(user_name)
    verify_url = f"{settings.frontend_url}/onboarding"
    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your CampusLink account is not verified yet. Complete verification before
        <strong>{deadline.strftime("%d %b %Y, %H:%M UTC")}</strong> or your account will be
        deactivated automatically.</p>
        <a href="{verify_url}" class="button">Verify Now</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Action required: verify your CampusLink account",
        html_content=_render("Verification Deadline Approaching", body),
    )


async def send_account_deactivated(
    to_email: str,
    user_name: str,
) -> bool:
    """Tell a principal their account was auto-deactivated."""
    safe_name = escape(user_name)
    verify_url = f"{settings.frontend_url}/onboarding"
    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your account has been deactivated because verification was not completed
        before the deadline. Complete verification to reactivate it.</p>
        <a href="{verify_url}" class="button">Complete Verification</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Your CampusLink account has been deactivated",
        html_content=_render("Account Deactivated", body),
    )


async def send_verification_approved(
    to_email: str,
    user_name: str,
) -> bool:
    """Tell a principal their documents were approved."""
    safe_name = escape(user_name)
    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your verification has been approved. All features available to your role are now unlocked.</p>
        <a href="{settings.frontend_url}/dashboard" class="button">Go to Dashboard</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Your CampusLink verification was approved",
        html_content=_render("You're Verified", body),
    )


async def send_verification_rejected(
    to_email: str,
    user_name: str,
    rejection_reason: str,
) -> bool:
    """Tell a principal their documents were rejected, with the reviewer's reason."""
    safe_name = escape(user_name)
    safe_reason = escape(rejection_reason)
    body = f"""
        <p>Hello {safe_name},</p>
        <p>We could not approve your verification request.</p>
        <p class="notice"><strong>Reason:</strong> {safe_reason}</p>
        <p>You can submit a new request from your profile.</p>
    """
    return await send_email(
        to_email=to_email,
        subject="Your CampusLink verification needs attention",
        html_content=_render("Verification Not Approved", body),
    )
