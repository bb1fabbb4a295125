from pydantic import BaseModel
from typing import Optional
from enum import Enum


class DonationStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"


class Donation(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    # Kept as a plain string: snapshots come from an external change feed
    # and an unknown status must not fail validation.
    status: str = DonationStatus.AVAILABLE.value
    restaurant_id: Optional[str] = None
    ngo_id: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class DonationUpdateEvent(BaseModel):
    before: Donation
    after: Donation
