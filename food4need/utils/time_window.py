from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from food4need.config import RolloverPolicy

DEFAULT_REMINDER_LEAD = timedelta(minutes=60)
DEFAULT_TRIGGER_WINDOW = timedelta(minutes=30)
DEFAULT_EARLY_MORNING_CUTOFF_HOUR = 12


class ReminderDecision(str, Enum):
    REMIND = "remind"
    NOT_DUE = "not_due"
    ALREADY_REMINDED = "already_reminded"
    MALFORMED_TIME = "malformed_time"


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    """
    Parses a 24-hour "HH:MM" string. Returns None for anything else,
    including "24:00", seconds, or surrounding garbage.
    """
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() and 1 <= len(p) <= 2 for p in parts):
        return None
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _minute_of_day(t) -> int:
    return t.hour * 60 + t.minute


def resolve_closing_instant(
        now: datetime,
        closing: time,
        opening: Optional[time] = None,
        today: Optional[date] = None,
        policy: RolloverPolicy = RolloverPolicy.EARLY_MORNING,
        early_morning_cutoff_hour: int = DEFAULT_EARLY_MORNING_CUTOFF_HOUR,
) -> datetime:
    """
    Returns the closing instant the next reminder refers to, either today's
    closing or tomorrow's when the business runs past midnight.

    With an opening time, an overnight business (closing at or before the
    opening minute) rolls to tomorrow while it is open or between closing
    and opening, and stays on today while now is still before the early
    morning close. Without one, the rollover policy decides what a closing
    time that already passed means.
    """
    today = today or now.date()
    closing_instant = datetime.combine(today, closing, tzinfo=now.tzinfo)
    roll = False

    if opening is not None:
        now_m = _minute_of_day(now)
        closing_m = _minute_of_day(closing)
        opening_m = _minute_of_day(opening)
        if closing_m <= opening_m:
            roll = now_m >= opening_m or closing_m < now_m < opening_m
    elif closing_instant <= now:
        if policy is RolloverPolicy.ALWAYS:
            roll = True
        elif policy is RolloverPolicy.EARLY_MORNING:
            roll = closing.hour < early_morning_cutoff_hour

    if roll:
        closing_instant += timedelta(days=1)
    return closing_instant


def evaluate_reminder(
        now: datetime,
        closing_time: Optional[str],
        opening_time: Optional[str] = None,
        last_reminder_date: Optional[date] = None,
        today: Optional[date] = None,
        *,
        reminder_lead: timedelta = DEFAULT_REMINDER_LEAD,
        trigger_window: timedelta = DEFAULT_TRIGGER_WINDOW,
        policy: RolloverPolicy = RolloverPolicy.EARLY_MORNING,
        early_morning_cutoff_hour: int = DEFAULT_EARLY_MORNING_CUTOFF_HOUR,
) -> ReminderDecision:
    """
    Decides whether a closing-time reminder is due at `now`.

    `now` must already be expressed in the business time zone. The reminder
    fires when now is at or after `closing - reminder_lead` and no more than
    `trigger_window` past it (both ends inclusive), at most once per
    calendar date.
    """
    today = today or now.date()
    if last_reminder_date == today:
        return ReminderDecision.ALREADY_REMINDED

    closing = parse_hhmm(closing_time)
    if closing is None:
        return ReminderDecision.MALFORMED_TIME

    opening = None
    if opening_time:
        opening = parse_hhmm(opening_time)
        if opening is None:
            return ReminderDecision.MALFORMED_TIME

    closing_instant = resolve_closing_instant(
        now, closing, opening, today,
        policy=policy,
        early_morning_cutoff_hour=early_morning_cutoff_hour,
    )
    reminder_instant = closing_instant - reminder_lead

    if reminder_instant <= now and now - reminder_instant <= trigger_window:
        return ReminderDecision.REMIND
    return ReminderDecision.NOT_DUE


def should_remind(
        now: datetime,
        closing_time: Optional[str],
        opening_time: Optional[str] = None,
        last_reminder_date: Optional[date] = None,
        today: Optional[date] = None,
        **options,
) -> bool:
    return evaluate_reminder(
        now, closing_time, opening_time, last_reminder_date, today, **options
    ) is ReminderDecision.REMIND
