"""
Interfaces the dispatcher depends on. Storage, push delivery and email are
owned by external collaborators; the dispatcher only sees these methods.
"""

from datetime import date
from typing import List, Optional, Protocol, Sequence

from food4need.models.notification import NotificationMessage, SendResult
from food4need.models.user import Profile, UserRole


class RepositoryError(Exception):
    """A read or write against the user store failed."""


class PushDeliveryError(Exception):
    """The push transport rejected or failed the whole batch."""


class UserRepository(Protocol):
    async def list_approved_by_role(self, role: UserRole) -> List[Profile]: ...

    async def get_by_id(self, user_id: str) -> Optional[Profile]: ...

    async def set_last_reminder_date(self, user_id: str, reminder_date: date) -> None: ...


class PushSink(Protocol):
    async def send_batch(self, messages: Sequence[NotificationMessage]) -> List[SendResult]:
        """
        Delivers the messages and returns one result per message, in order.
        Individual rejections are reported as results; only a failure of the
        transport itself raises PushDeliveryError.
        """
        ...


class EmailSink(Protocol):
    # Used by the approval-notice collaborator, not by the dispatcher.
    async def send(self, to: str, subject: str, body: str) -> None: ...
