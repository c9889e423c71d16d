"""Seller verification renewal reminders.

Runs daily. Each reminder covers a one-day window before expiry:

    thirty_day   expires in [now + 29d, now + 30d)
    seven_day    expires in [now + 6d,  now + 7d)
    day_of       expires in [now,       now + 1d)

A reminder is recorded on the verification only once the email was
accepted, so each one goes out at most once per paid period.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import send_email
from app.models.base import utcnow
from app.models.seller_verification import SellerVerification
from app.repositories.user_repository import UserRepository
from app.repositories.verification_repository import VerificationRepository
from app.services.addon_catalog import VERIFICATION_TIERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderWindow:
    """One reminder kind.

    Attributes:
        name: Key in the job result.
        days: Days before expiry (0 for the expiry day itself).
        sent_column: SellerVerification column recording the send.
    """

    name: str
    days: int
    sent_column: str

    def bounds(self, now: datetime) -> tuple[datetime, datetime]:
        """[start, end) of expiry times this window covers."""
        end = now + timedelta(days=max(self.days, 1))
        return end - timedelta(days=1), end


REMINDER_WINDOWS: tuple[ReminderWindow, ...] = (
    ReminderWindow("thirty_day", 30, "thirty_day_reminder_sent_at"),
    ReminderWindow("seven_day", 7, "seven_day_reminder_sent_at"),
    ReminderWindow("day_of", 0, "day_of_reminder_sent_at"),
)


@dataclass
class ReminderResult:
    """Result of one reminder run.

    Attributes:
        sent: Reminders delivered, per window name.
        failed: Reminders that could not be delivered.
        total: Verifications matched across all windows.
    """

    sent: dict[str, int] = field(
        default_factory=lambda: {w.name: 0 for w in REMINDER_WINDOWS}
    )
    failed: int = 0
    total: int = 0

    @property
    def message(self) -> str:
        """Summary line returned to the scheduler."""
        return (
            f"Sent {sum(self.sent.values())} renewal reminders "
            f"({self.failed} failed)"
        )


def _renewal_email(
    name: str | None, window: ReminderWindow, expires_at: datetime
) -> tuple[str, str]:
    """Subject and body of a renewal reminder."""
    if window.days == 0:
        subject = "Your Seller Verification Expires Today"
        urgency = "expires today"
        action = (
            "Your ability to create and edit listings will be restricted "
            "until you renew."
        )
    else:
        subject = f"Your Seller Verification Expires in {window.days} Days"
        urgency = f"expires in {window.days} days"
        action = "Renew now to keep your verified seller status."

    pricing = "\n".join(
        f"- {tier.name}: ${tier.price_cents / 100:.0f}"
        for tier in VERIFICATION_TIERS.values()
    )
    text = (
        f"Hi {name or 'there'},\n\n"
        f"Your seller verification {urgency} on "
        f"{expires_at:%B} {expires_at.day}, {expires_at:%Y}. {action}\n\n"
        f"Renew: {settings.frontend_url}/dashboard/verification/seller\n\n"
        f"Renewal pricing:\n{pricing}\n"
    )
    return subject, text


async def _remind(
    db: AsyncSession,
    verification: SellerVerification,
    window: ReminderWindow,
    now: datetime,
) -> bool:
    user = await UserRepository.get_by_id(db, verification.user_id)
    if user is None or verification.expires_at is None:
        return False
    subject, text = _renewal_email(user.name, window, verification.expires_at)
    if not await send_email(to_email=user.email, subject=subject, text=text):
        return False
    setattr(verification, window.sent_column, now)
    await db.flush()
    return True


async def send_renewal_reminders(
    db: AsyncSession, *, now: datetime | None = None
) -> ReminderResult:
    """Email every active seller whose verification enters a reminder window.

    Args:
        db: Async database session.
        now: Reference time (defaults to now).

    Returns:
        ReminderResult with per-window counts.
    """
    current = now or utcnow()
    result = ReminderResult()
    for window in REMINDER_WINDOWS:
        start, end = window.bounds(current)
        due = await VerificationRepository.list_due_for_reminder(
            db, sent_column=window.sent_column, start=start, end=end
        )
        result.total += len(due)
        for verification in due:
            verification_id = verification.id
            try:
                async with db.begin_nested():
                    sent = await _remind(db, verification, window, current)
            except Exception:
                logger.exception(
                    "Failed to send %s reminder for verification %s",
                    window.name,
                    verification_id,
                )
                sent = False
            if sent:
                result.sent[window.name] += 1
            else:
                result.failed += 1

    if result.total:
        logger.info("Verification reminders: %s", result.message)
    return result
