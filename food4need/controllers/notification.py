# file: controllers/notification.py

from fastapi import APIRouter, Depends, HTTPException, Header, status
from functools import lru_cache
from typing import Optional
import logging

from food4need.config import NotificationSettings, load_settings
from food4need.database.repositories import SqlAlchemyUserRepository
from food4need.models.donation import Donation, DonationUpdateEvent
from food4need.models.notification import BroadcastResult, SendResult, SweepResult
from food4need.services.dispatcher import NotificationDispatcher
from food4need.services.ports import PushDeliveryError, RepositoryError
from food4need.services.push_service import build_push_sink

router = APIRouter()
logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> NotificationSettings:
    return load_settings()


def get_dispatcher(settings: NotificationSettings = Depends(get_settings)) -> NotificationDispatcher:
    return NotificationDispatcher(
        users=SqlAlchemyUserRepository(),
        push_sink=build_push_sink(settings),
        settings=settings,
    )


def verify_event_key(
        x_api_key: Optional[str] = Header(None),
        settings: NotificationSettings = Depends(get_settings),
):
    if not settings.event_api_key or x_api_key != settings.event_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API Key")


def _as_http_error(e: Exception) -> HTTPException:
    if isinstance(e, RepositoryError):
        logger.error(f"Repository error: {e}")
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="User store unavailable")
    logger.error(f"Push delivery error: {e}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Push delivery failed")


@router.post("/reminders/sweep", response_model=SweepResult, dependencies=[Depends(verify_event_key)])
async def run_reminder_sweep(dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """
    Runs one closing-time reminder sweep. Meant for an HTTP cron trigger
    firing every poll interval.
    """
    try:
        return await dispatcher.run_reminder_sweep()
    except (RepositoryError, PushDeliveryError) as e:
        raise _as_http_error(e)


@router.post("/events/donation-created", response_model=BroadcastResult,
             dependencies=[Depends(verify_event_key)])
async def donation_created(donation: Donation, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    try:
        return await dispatcher.run_proximity_broadcast(donation)
    except (RepositoryError, PushDeliveryError) as e:
        raise _as_http_error(e)


@router.post("/events/donation-updated", response_model=Optional[SendResult],
             dependencies=[Depends(verify_event_key)])
async def donation_updated(event: DonationUpdateEvent, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """
    Receives a before/after pair from the donation change feed. Returns the
    delivery result, or null when the change is not a notifying transition.
    """
    try:
        return await dispatcher.run_lifecycle_notification(event.before, event.after)
    except (RepositoryError, PushDeliveryError) as e:
        raise _as_http_error(e)
