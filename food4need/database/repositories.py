import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from food4need.database.connection import get_db_session
from food4need.database.models import User
from food4need.models.user import NgoProfile, Profile, RestaurantProfile, UserRole
from food4need.services.ports import RepositoryError

logger = logging.getLogger(__name__)


def to_profile(user: User) -> Optional[Profile]:
    """Maps a users row to the profile type for its role. Unknown roles map to None."""
    if user.role == UserRole.RESTAURANT.value:
        return RestaurantProfile(
            id=user.id,
            push_token=user.fcm_token,
            closing_time=user.closing_time,
            opening_time=user.opening_time,
            last_reminder_date=user.last_reminder_date,
            approved=bool(user.approved),
        )
    if user.role == UserRole.NGO.value:
        return NgoProfile(
            id=user.id,
            push_token=user.fcm_token,
            latitude=user.latitude,
            longitude=user.longitude,
            approved=bool(user.approved),
        )
    return None


class SqlAlchemyUserRepository:
    """
    UserRepository backed by the users table. Each call opens its own
    session, so the repository can be shared by concurrent triggers.
    """

    def __init__(self, session_factory=get_db_session):
        self._session_factory = session_factory

    async def list_approved_by_role(self, role: UserRole) -> List[Profile]:
        stmt = select(User).where(User.role == role.value, User.approved == True)
        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                users = result.scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to list approved {role.value} users: {e}") from e
        return [p for p in (to_profile(u) for u in users) if p is not None]

    async def get_by_id(self, user_id: str) -> Optional[Profile]:
        try:
            async with self._session_factory() as db:
                user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load user {user_id}: {e}") from e
        return to_profile(user) if user is not None else None

    async def set_last_reminder_date(self, user_id: str, reminder_date: date) -> None:
        stmt = update(User).where(User.id == user_id).values(last_reminder_date=reminder_date)
        try:
            async with self._session_factory() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to set last reminder date for {user_id}: {e}") from e
        logger.debug(f"Marked {user_id} as reminded on {reminder_date.isoformat()}")
