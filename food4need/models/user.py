from pydantic import BaseModel, ConfigDict
from typing import Optional, Union
from datetime import date
from enum import Enum


class UserRole(str, Enum):
    RESTAURANT = "restaurant"
    NGO = "ngo"


class RestaurantProfile(BaseModel):
    id: str
    push_token: Optional[str] = None
    closing_time: Optional[str] = None
    opening_time: Optional[str] = None
    last_reminder_date: Optional[date] = None
    approved: bool = False

    model_config = ConfigDict(frozen=True)


class NgoProfile(BaseModel):
    id: str
    push_token: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    approved: bool = False

    model_config = ConfigDict(frozen=True)


Profile = Union[RestaurantProfile, NgoProfile]
