"""
integrations/email.py
---------------------
Transactional email via Resend, plus the HTML/text templates the platform
sends (invitation, welcome, email verification, password reset).

Without RESEND_API_KEY nothing is sent: the attempt is logged and reported
as a failed delivery.
"""

from dataclasses import dataclass
from html import escape
from typing import List, Optional, Union

import resend
from starlette.concurrency import run_in_threadpool

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.integrations.delivery import DeliveryResult

logger = get_logger(__name__)


@dataclass
class EmailContent:
    subject: str
    html: str
    text: str


async def send_email(
    to: Union[str, List[str]],
    subject: str,
    html: str,
    text: Optional[str] = None,
    reply_to: Optional[str] = None,
    from_address: Optional[str] = None,
) -> DeliveryResult:
    recipients = to if isinstance(to, list) else [to]

    if not settings.RESEND_API_KEY:
        logger.warning("Email service not configured, email not sent", to=recipients, subject=subject)
        return DeliveryResult(success=False, error="Email service not configured")

    resend.api_key = settings.RESEND_API_KEY
    params = {
        "from": from_address or settings.EMAIL_FROM,
        "to": recipients,
        "subject": subject,
        "html": html,
    }
    if text:
        params["text"] = text
    if reply_to:
        params["reply_to"] = reply_to

    try:
        response = await run_in_threadpool(resend.Emails.send, params)
    except Exception as exc:
        # Provider failures are reported, never raised
        error = str(exc).replace(settings.RESEND_API_KEY, "***REDACTED***")
        logger.error("Email send failed", to=recipients, error=error)
        return DeliveryResult(success=False, error=error)

    message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
    logger.info("Email sent", to=recipients, message_id=message_id)
    return DeliveryResult(success=True, message_id=message_id)


# ── Templates ─────────────────────────────────────────────────────────────────

def _layout(title: str, firm_name: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(title)}</title>
</head>
<body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(135deg, #1a365d 0%, #2d3748 100%); padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="color: #fff; margin: 0; font-size: 24px;">{escape(firm_name)}</h1>
  </div>
  <div style="background: #fff; padding: 30px; border: 1px solid #e2e8f0; border-top: none; border-radius: 0 0 10px 10px;">
{body}
  </div>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        '<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(url)}" style="background: #d69e2e; color: #fff; padding: 14px 30px; '
        f'text-decoration: none; border-radius: 8px; font-weight: bold; display: inline-block;">{escape(label)}</a>'
        "</div>"
    )


def invitation_email(
    recipient_name: str,
    firm_name: str,
    inviter_name: str,
    invite_url: str,
    expires_at: str,
    message: Optional[str] = None,
) -> EmailContent:
    subject = f"{inviter_name} from {firm_name} has invited you"
    greeting = f"Hello {recipient_name}," if recipient_name else "Hello,"

    quoted = (
        '<div style="background: #f7fafc; padding: 15px; border-radius: 8px; margin: 20px 0;">'
        f'<p style="margin: 0; font-style: italic;">"{escape(message)}"</p></div>'
        if message
        else ""
    )
    html = _layout(
        subject,
        firm_name,
        f"""    <p style="font-size: 16px;">{escape(greeting)}</p>
    <p style="font-size: 16px;">{escape(inviter_name)} has invited you to join <strong>{escape(firm_name)}</strong>'s client portal.</p>
    {quoted}
    {_button(invite_url, "Accept Invitation")}
    <p style="font-size: 14px; color: #718096;">This invitation expires on {escape(expires_at)}.</p>
    <hr style="border: none; border-top: 1px solid #e2e8f0; margin: 20px 0;">
    <p style="font-size: 12px; color: #a0aec0;">If you didn't expect this invitation, you can safely ignore this email.</p>""",
    )

    lines = [
        firm_name,
        "",
        greeting,
        "",
        f"{inviter_name} has invited you to join {firm_name}'s client portal.",
        "",
    ]
    if message:
        lines += [f'Message: "{message}"', ""]
    lines += [
        f"Accept your invitation: {invite_url}",
        "",
        f"This invitation expires on {expires_at}.",
        "",
        "If you didn't expect this invitation, you can safely ignore this email.",
    ]
    return EmailContent(subject=subject, html=html, text="\n".join(lines))


def welcome_email(
    client_name: str,
    firm_name: str,
    portal_url: str,
    attorney_name: Optional[str] = None,
) -> EmailContent:
    subject = f"Welcome to {firm_name}"
    attorney = (
        f"<p>Your primary attorney is <strong>{escape(attorney_name)}</strong>.</p>"
        if attorney_name
        else ""
    )
    html = _layout(
        subject,
        firm_name,
        f"""    <h2 style="color: #1a365d;">Welcome, {escape(client_name)}!</h2>
    <p>Your client portal account has been created successfully. You can now:</p>
    <ul style="padding-left: 20px;">
      <li>View your case status and updates</li>
      <li>Securely message your legal team</li>
      <li>Upload and access documents</li>
      <li>Schedule appointments</li>
      <li>View and pay invoices</li>
    </ul>
    {attorney}
    {_button(portal_url, "Access Your Portal")}""",
    )
    text = "\n".join(
        [
            f"Welcome to {firm_name}, {client_name}!",
            "",
            "Your client portal account has been created successfully.",
            f"Your primary attorney is {attorney_name}." if attorney_name else "",
            "",
            f"Access your portal: {portal_url}",
        ]
    )
    return EmailContent(subject=subject, html=html, text=text)


def verification_email(first_name: str, verification_url: str) -> EmailContent:
    subject = f"Verify your email - {settings.APP_NAME}"
    html = _layout(
        subject,
        settings.APP_NAME,
        f"""    <p>Hi {escape(first_name)},</p>
    <p>Thank you for creating an account. Please verify your email address by clicking the button below:</p>
    {_button(verification_url, "Verify Email")}
    <p>This link expires in 24 hours.</p>
    <p>If you didn't create this account, you can safely ignore this email.</p>""",
    )
    text = f"Welcome to {settings.APP_NAME}! Verify your email: {verification_url}"
    return EmailContent(subject=subject, html=html, text=text)


def password_reset_email(first_name: str, reset_url: str) -> EmailContent:
    subject = f"Reset your password - {settings.APP_NAME}"
    html = _layout(
        subject,
        settings.APP_NAME,
        f"""    <p>Hi {escape(first_name)},</p>
    <p>We received a request to reset your password.</p>
    {_button(reset_url, "Reset Password")}
    <p>This link expires in 1 hour. If you didn't request a reset, no action is needed.</p>""",
    )
    text = f"Reset your {settings.APP_NAME} password: {reset_url}"
    return EmailContent(subject=subject, html=html, text=text)
