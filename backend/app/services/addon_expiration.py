"""Add-on expiration sweep.

Finds purchases still marked active after their expiry, flips them to
expired and clears the listing flags they control. Each purchase runs in
its own SAVEPOINT: a failure rolls back that purchase only, is logged and
counted, and the batch continues. Re-running is safe because flipped
purchases no longer match the query.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.repositories.addon_repository import AddOnRepository
from app.services.addon_service import expire_purchase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Result of one sweep run.

    Attributes:
        processed: Purchases expired successfully.
        errors: Purchases that failed and were rolled back.
        total: Purchases matched by the query.
    """

    processed: int
    errors: int
    total: int

    @property
    def message(self) -> str:
        """Summary line returned to the scheduler."""
        return f"Processed {self.processed} expired add-ons ({self.errors} errors)"


async def expire_addons(db: AsyncSession, *, now: datetime | None = None) -> SweepResult:
    """Expire every active purchase whose expiry has passed.

    Args:
        db: Async database session.
        now: Reference time (defaults to now).

    Returns:
        SweepResult with processed / error counts.
    """
    current = now or utcnow()
    expired = await AddOnRepository.list_expired_active(db, now=current)

    processed = 0
    errors = 0
    for purchase in expired:
        purchase_id = purchase.id
        try:
            async with db.begin_nested():
                await expire_purchase(db, purchase, now=current)
        except Exception:
            errors += 1
            logger.exception("Failed to expire add-on %s", purchase_id)
            continue
        processed += 1

    if expired:
        logger.info(
            "Add-on sweep: %d processed, %d errors of %d",
            processed,
            errors,
            len(expired),
        )
    return SweepResult(processed=processed, errors=errors, total=len(expired))
