"""
Email Service using Resend
Renders MJML templates to HTML and delivers them through the Resend API
"""

import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    document_declined_template,
    document_signed_template,
    registration_confirmation_template,
    signature_request_template,
    waitlist_notification_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        # mjml-python returns an attribute-style result object
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Document signing notifications
# ============================================


def build_signing_url(token: str) -> str:
    return f"{FRONTEND_URL.rstrip('/')}/sign/{token}"


async def send_signature_request_email(
    to: str,
    recipient_name: str,
    organization_name: str,
    document_title: str,
    token: str,
    message: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    is_reminder: bool = False,
) -> dict:
    mjml_content = signature_request_template(
        recipient_name=recipient_name,
        organization_name=organization_name,
        document_title=document_title,
        sign_url=build_signing_url(token),
        message=message,
        expires_on=expires_at.strftime("%B %d, %Y") if expires_at else None,
        is_reminder=is_reminder,
    )
    prefix = "Reminder: " if is_reminder else ""
    return await send_email(
        to=to,
        subject=f"{prefix}Please sign {document_title}",
        mjml_content=mjml_content,
    )


async def send_document_signed_email(
    to: str, requester_name: str, signer_name: str, document_title: str
) -> dict:
    return await send_email(
        to=to,
        subject=f"{document_title} was signed",
        mjml_content=document_signed_template(requester_name, signer_name, document_title),
    )


async def send_document_declined_email(
    to: str, requester_name: str, signer_name: str, document_title: str
) -> dict:
    return await send_email(
        to=to,
        subject=f"{document_title} was declined",
        mjml_content=document_declined_template(requester_name, signer_name, document_title),
    )


# ============================================
# Registration notices
# ============================================


async def send_registration_confirmation_email(
    to: str,
    parent_name: str,
    child_name: str,
    camp_name: str,
    camp_dates: Optional[str] = None,
    camp_location: Optional[str] = None,
) -> dict:
    return await send_email(
        to=to,
        subject=f"Registration confirmed: {camp_name}",
        mjml_content=registration_confirmation_template(
            parent_name, child_name, camp_name, camp_dates, camp_location
        ),
    )


async def send_waitlist_notification_email(
    to: str, parent_name: str, child_name: str, camp_name: str, status: str
) -> dict:
    """Status is ``added`` (placed on the waitlist) or ``spot_available`` (promoted)"""
    subject = (
        f"A spot opened up in {camp_name}"
        if status == "spot_available"
        else f"Waitlisted for {camp_name}"
    )
    return await send_email(
        to=to,
        subject=subject,
        mjml_content=waitlist_notification_template(parent_name, child_name, camp_name, status),
    )
