"""
integrations/delivery.py
------------------------
Outcome of a single outbound notification (email or SMS).

Senders never raise for provider failures; they report them here so callers
can record per-channel results.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
