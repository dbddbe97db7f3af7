"""
integrations/sms.py
-------------------
SMS delivery through the Twilio REST API.

Phone numbers are normalised to E.164 before sending; ten-digit numbers are
assumed to be US numbers. Without Twilio credentials nothing is sent and the
attempt is reported as a failed delivery.
"""

import re
from typing import List, Optional

import httpx

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.integrations.delivery import DeliveryResult

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
_NON_DIGITS = re.compile(r"\D")


def format_phone_number(phone: str) -> str:
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if phone.startswith("+"):
        return phone
    return f"+{digits}"


def is_valid_phone_number(phone: str) -> bool:
    digits = _NON_DIGITS.sub("", phone)
    return 10 <= len(digits) <= 15


def _is_configured() -> bool:
    return bool(
        settings.TWILIO_ACCOUNT_SID
        and settings.TWILIO_AUTH_TOKEN
        and settings.TWILIO_PHONE_NUMBER
    )


async def send_sms(to: str, body: str, media_urls: Optional[List[str]] = None) -> DeliveryResult:
    if not _is_configured():
        logger.warning("Twilio not configured, SMS not sent")
        return DeliveryResult(success=False, error="SMS service not configured")

    data = [
        ("To", format_phone_number(to)),
        ("From", settings.TWILIO_PHONE_NUMBER),
        ("Body", body),
    ]
    data += [("MediaUrl", url) for url in media_urls or []]
    url = f"{TWILIO_API_BASE}/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json"

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            response = await client.post(
                url,
                data=data,
                auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("SMS send failed", error=str(exc))
        return DeliveryResult(success=False, error=str(exc))

    message_id = response.json().get("sid")
    logger.info("SMS sent", message_id=message_id)
    return DeliveryResult(success=True, message_id=message_id)


async def send_invitation_sms(
    phone: str,
    firm_name: str,
    invite_url: str,
    recipient_name: Optional[str] = None,
) -> DeliveryResult:
    greeting = f"Hi {recipient_name}, " if recipient_name else ""
    body = (
        f"{greeting}You've been invited to {firm_name}'s client portal. "
        f"Complete your registration here: {invite_url}"
    )
    return await send_sms(phone, body)

