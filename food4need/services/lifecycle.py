from dataclasses import dataclass
from typing import Optional, Union

from food4need.models.donation import Donation, DonationStatus
from food4need.models.notification import NotificationAction
from food4need.models.user import UserRole


@dataclass(frozen=True)
class LifecycleNotice:
    recipient_role: UserRole
    title: str
    body_template: str
    action: NotificationAction

    def recipient_id(self, donation: Donation) -> Optional[str]:
        if self.recipient_role is UserRole.NGO:
            return donation.ngo_id
        return donation.restaurant_id

    def render_body(self, donation: Donation) -> str:
        return self.body_template.format(title=donation.title or "your donation")


# Only these forward edges notify anyone. Same-status writes, regressions
# and skipped states resolve to no transition.
TRANSITIONS = {
    (DonationStatus.AVAILABLE, DonationStatus.RESERVED): LifecycleNotice(
        recipient_role=UserRole.RESTAURANT,
        title="Donation Reserved 🧾",
        body_template='NGO reserved "{title}". Please confirm.',
        action=NotificationAction.OPEN_RESTAURANT_DASHBOARD,
    ),
    (DonationStatus.RESERVED, DonationStatus.CONFIRMED): LifecycleNotice(
        recipient_role=UserRole.NGO,
        title="Pickup Confirmed ✅",
        body_template='Restaurant confirmed "{title}".',
        action=NotificationAction.OPEN_NGO_DASHBOARD,
    ),
    (DonationStatus.CONFIRMED, DonationStatus.COMPLETED): LifecycleNotice(
        recipient_role=UserRole.RESTAURANT,
        title="Food Collected 🎉",
        body_template='"{title}" has been collected. Thank you!',
        action=NotificationAction.OPEN_RESTAURANT_HISTORY,
    ),
}


def _as_status(value: Union[str, DonationStatus, None]) -> Optional[DonationStatus]:
    if isinstance(value, DonationStatus):
        return value
    try:
        return DonationStatus(value)
    except ValueError:
        return None


def resolve_transition(
        before: Union[str, DonationStatus, None],
        after: Union[str, DonationStatus, None],
) -> Optional[LifecycleNotice]:
    """Returns the notice for a guarded status change, or None when there is no transition."""
    before_status, after_status = _as_status(before), _as_status(after)
    if before_status is None or after_status is None:
        return None
    return TRANSITIONS.get((before_status, after_status))
