import os
from datetime import timedelta
from enum import Enum
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator

load_dotenv()


class RolloverPolicy(str, Enum):
    """What a closing time that already passed means when no opening time is known."""
    EARLY_MORNING = "early_morning"
    NEVER = "never"
    ALWAYS = "always"


class NotificationSettings(BaseModel):
    time_zone: str = "Asia/Kuala_Lumpur"
    reminder_lead_minutes: int = 60
    trigger_window_minutes: Optional[int] = None
    proximity_radius_km: float = 10.0
    poll_interval_minutes: int = 15
    rollover_policy: RolloverPolicy = RolloverPolicy.EARLY_MORNING
    early_morning_cutoff_hour: int = 12
    push_provider: Literal["firebase", "expo"] = "firebase"
    firebase_credentials: str = "serviceAccountKey.json"
    event_api_key: Optional[str] = None

    @field_validator('time_zone')
    def validate_time_zone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f'Unknown time zone: {v}')
        return v

    @field_validator('reminder_lead_minutes', 'poll_interval_minutes')
    def validate_positive_minutes(cls, v):
        if v <= 0:
            raise ValueError('Must be a positive number of minutes')
        return v

    @field_validator('early_morning_cutoff_hour')
    def validate_cutoff_hour(cls, v):
        if not 0 <= v <= 24:
            raise ValueError('Cutoff hour must be between 0 and 24')
        return v

    @model_validator(mode="after")
    def default_trigger_window(self):
        # Twice the polling interval tolerates one late scheduler tick.
        if self.trigger_window_minutes is None:
            self.trigger_window_minutes = 2 * self.poll_interval_minutes
        elif self.trigger_window_minutes < 0:
            raise ValueError('trigger_window_minutes cannot be negative')
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @property
    def trigger_window(self) -> timedelta:
        return timedelta(minutes=self.trigger_window_minutes)

    @property
    def reminder_lead(self) -> timedelta:
        return timedelta(minutes=self.reminder_lead_minutes)


_ENV_FIELDS = {
    "TIME_ZONE": "time_zone",
    "REMINDER_LEAD_MINUTES": "reminder_lead_minutes",
    "TRIGGER_WINDOW_MINUTES": "trigger_window_minutes",
    "PROXIMITY_RADIUS_KM": "proximity_radius_km",
    "POLL_INTERVAL_MINUTES": "poll_interval_minutes",
    "ROLLOVER_POLICY": "rollover_policy",
    "EARLY_MORNING_CUTOFF_HOUR": "early_morning_cutoff_hour",
    "PUSH_PROVIDER": "push_provider",
    "FIREBASE_CREDENTIALS": "firebase_credentials",
    "EVENT_API_KEY": "event_api_key",
}


def load_settings() -> NotificationSettings:
    """
    Builds the settings from environment variables. Unset or empty
    variables fall back to the model defaults.
    """
    values = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw:
            values[field_name] = raw
    return NotificationSettings(**values)
