# file: models/notification.py

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class NotificationAction(str, Enum):
    """Routing tag the mobile client uses to decide which screen to open."""
    DONATE_ACTION = "DONATE_ACTION"
    OPEN_NGO_DASHBOARD = "OPEN_NGO_DASHBOARD"
    OPEN_RESTAURANT_DASHBOARD = "OPEN_RESTAURANT_DASHBOARD"
    OPEN_RESTAURANT_HISTORY = "OPEN_RESTAURANT_HISTORY"


class NotificationMessage(BaseModel):
    token: str
    title: str
    body: str
    action: NotificationAction
    recipient_id: Optional[str] = None


class SendResult(BaseModel):
    token: str
    recipient_id: Optional[str] = None
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SweepResult(BaseModel):
    evaluated: int = 0
    matched: int = 0
    sent: int = 0
    failed: int = 0
    skipped_malformed: int = 0
    skipped_missing_token: int = 0


class BroadcastResult(BaseModel):
    candidates: int = 0
    matched: int = 0
    sent: int = 0
    failed: int = 0
    skipped: bool = False
