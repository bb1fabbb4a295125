import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from food4need.config import NotificationSettings
from food4need.models.donation import Donation
from food4need.models.notification import (
    BroadcastResult,
    NotificationAction,
    NotificationMessage,
    SendResult,
    SweepResult,
)
from food4need.models.user import NgoProfile, RestaurantProfile, UserRole
from food4need.services.lifecycle import resolve_transition
from food4need.services.ports import PushSink, RepositoryError, UserRepository
from food4need.utils.geo import within_radius
from food4need.utils.time_window import ReminderDecision, evaluate_reminder

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Leftover food reminder 🍱"
BROADCAST_TITLE = "New Food Donation Nearby 🍱"
BROADCAST_FALLBACK_BODY = "A restaurant just donated food"


def _short(token: str) -> str:
    return f"{token[:12]}…"


def reminder_body(lead_minutes: int) -> str:
    if lead_minutes % 60 == 0:
        hours = lead_minutes // 60
        lead = "1 hour" if hours == 1 else f"{hours} hours"
    else:
        lead = f"{lead_minutes} minutes"
    return f"You're closing in {lead}. Any surplus food to donate?"


class NotificationDispatcher:
    """
    Runs the three notification flows against an injected user repository
    and push sink. Holds no mutable state between calls, so one instance
    can serve concurrent triggers.
    """

    def __init__(
            self,
            users: UserRepository,
            push_sink: PushSink,
            settings: Optional[NotificationSettings] = None,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self.users = users
        self.push_sink = push_sink
        self.settings = settings or NotificationSettings()
        self._clock = clock or (lambda: datetime.now(self.settings.tz))

    def now(self) -> datetime:
        """Current instant in the business time zone."""
        return self._clock()

    async def _send(self, messages: List[NotificationMessage]) -> List[SendResult]:
        results = await self.push_sink.send_batch(messages)
        for result in results:
            if not result.success:
                logger.warning(
                    f"Push rejected for {result.recipient_id} (token={_short(result.token)}): {result.error}"
                )
        return results

    async def _mark_reminded(self, user_ids: List[str], today) -> None:
        """
        Writes today's reminder date for every id, even when some writes
        fail. Raises one RepositoryError after all writes were attempted.
        """
        outcomes = await asyncio.gather(
            *(self.users.set_last_reminder_date(user_id, today) for user_id in user_ids),
            return_exceptions=True,
        )
        failed = []
        for user_id, outcome in zip(user_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to mark restaurant {user_id} as reminded: {outcome}")
                failed.append(user_id)
        if failed:
            raise RepositoryError(f"Failed to mark {len(failed)} of {len(user_ids)} restaurants as reminded: {failed}")

    async def run_reminder_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or self.now()
        today = now.date()
        summary = SweepResult()

        restaurants = await self.users.list_approved_by_role(UserRole.RESTAURANT)
        messages: List[NotificationMessage] = []

        for profile in restaurants:
            if not isinstance(profile, RestaurantProfile):
                continue
            summary.evaluated += 1

            if not profile.push_token:
                summary.skipped_missing_token += 1
                logger.debug(f"Skipping restaurant {profile.id}: no push token")
                continue

            decision = evaluate_reminder(
                now,
                profile.closing_time,
                profile.opening_time,
                profile.last_reminder_date,
                today,
                reminder_lead=self.settings.reminder_lead,
                trigger_window=self.settings.trigger_window,
                policy=self.settings.rollover_policy,
                early_morning_cutoff_hour=self.settings.early_morning_cutoff_hour,
            )
            if decision is ReminderDecision.MALFORMED_TIME:
                summary.skipped_malformed += 1
                logger.warning(
                    f"Skipping restaurant {profile.id}: malformed closing/opening time "
                    f"({profile.closing_time!r}/{profile.opening_time!r})"
                )
                continue
            if decision is not ReminderDecision.REMIND:
                continue

            # Another sweep may have reminded this restaurant since the list was read.
            current = await self.users.get_by_id(profile.id)
            if current is None:
                logger.info(f"Restaurant {profile.id} no longer exists, not enqueueing")
                continue
            if getattr(current, "last_reminder_date", None) == today:
                logger.info(f"Restaurant {profile.id} already reminded today, not enqueueing")
                continue

            messages.append(NotificationMessage(
                token=profile.push_token,
                title=REMINDER_TITLE,
                body=reminder_body(self.settings.reminder_lead_minutes),
                action=NotificationAction.DONATE_ACTION,
                recipient_id=profile.id,
            ))

        summary.matched = len(messages)
        if not messages:
            logger.info(f"Reminder sweep at {now.isoformat()}: {summary.evaluated} evaluated, nothing due")
            return summary

        results = await self._send(messages)
        summary.sent = sum(1 for r in results if r.success)
        summary.failed = len(results) - summary.sent

        # Rejected tokens still count as reminded for the day.
        await self._mark_reminded([m.recipient_id for m in messages], today)

        logger.info(
            f"Reminder sweep at {now.isoformat()}: {summary.evaluated} evaluated, "
            f"{summary.matched} due, {summary.sent} sent, {summary.failed} failed"
        )
        return summary

    async def run_proximity_broadcast(self, donation: Donation) -> BroadcastResult:
        summary = BroadcastResult()
        if not donation.has_coordinates:
            logger.debug(f"Donation {donation.id} has no coordinates, skipping broadcast")
            summary.skipped = True
            return summary

        ngos = await self.users.list_approved_by_role(UserRole.NGO)
        messages: List[NotificationMessage] = []

        for ngo in ngos:
            if not isinstance(ngo, NgoProfile):
                continue
            summary.candidates += 1
            if not ngo.push_token or ngo.latitude is None or ngo.longitude is None:
                continue
            if not within_radius(
                    donation.latitude, donation.longitude,
                    ngo.latitude, ngo.longitude,
                    self.settings.proximity_radius_km,
            ):
                continue
            messages.append(NotificationMessage(
                token=ngo.push_token,
                title=BROADCAST_TITLE,
                body=donation.title or BROADCAST_FALLBACK_BODY,
                action=NotificationAction.OPEN_NGO_DASHBOARD,
                recipient_id=ngo.id,
            ))

        summary.matched = len(messages)
        if messages:
            results = await self._send(messages)
            summary.sent = sum(1 for r in results if r.success)
            summary.failed = len(results) - summary.sent

        logger.info(
            f"Broadcast for donation {donation.id}: {summary.candidates} NGOs, "
            f"{summary.matched} within {self.settings.proximity_radius_km} km, {summary.sent} sent"
        )
        return summary

    async def run_lifecycle_notification(self, before: Donation, after: Donation) -> Optional[SendResult]:
        notice = resolve_transition(before.status, after.status)
        if notice is None:
            return None

        recipient_id = notice.recipient_id(after)
        if not recipient_id:
            logger.debug(f"Donation {after.id}: no {notice.recipient_role.value} id on transition")
            return None

        profile = await self.users.get_by_id(recipient_id)
        if profile is None or not profile.push_token:
            logger.debug(f"Donation {after.id}: {recipient_id} missing or has no push token")
            return None

        message = NotificationMessage(
            token=profile.push_token,
            title=notice.title,
            body=notice.render_body(after),
            action=notice.action,
            recipient_id=recipient_id,
        )
        results = await self._send([message])
        logger.info(f"Donation {after.id}: {before.status} -> {after.status}, notified {recipient_id}")
        return results[0] if results else None
