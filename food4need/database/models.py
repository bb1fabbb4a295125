from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import Column, String, Date, Text, Boolean, Float, Index


# Base class for all models
class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    id = Column(String(128), primary_key=True)
    role = Column(String(32), nullable=False)
    email = Column(Text, nullable=True)
    name = Column(String(255), nullable=True)
    fcm_token = Column(Text, nullable=True)
    approved = Column(Boolean, default=False, nullable=False)

    # Restaurants only. Local "HH:MM" in the configured business time zone.
    closing_time = Column(String(5), nullable=True)
    opening_time = Column(String(5), nullable=True)
    last_reminder_date = Column(Date, nullable=True)

    # NGOs only
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    __table_args__ = (Index("ix_users_role_approved", "role", "approved"),)
