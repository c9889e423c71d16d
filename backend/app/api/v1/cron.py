"""Scheduled job endpoints.

Called by the scheduler with ``Authorization: Bearer <CRON_SECRET>``. The
CronAuth dependency fails closed before any handler code runs, so a
rejected call never writes.
"""

import structlog
from fastapi import APIRouter

from app.api.deps import CronAuth, DbSession
from app.core.responses import DataResponse
from app.models.base import utcnow
from app.repositories.login_attempt_repository import LoginAttemptRepository
from app.repositories.stripe_event_repository import StripeEventRepository
from app.services import verification_workflow
from app.services.addon_expiration import expire_addons
from app.services.verification_reminders import send_renewal_reminders

logger = structlog.get_logger()

router = APIRouter()


@router.post("/expire-addons")
async def run_expire_addons(_auth: CronAuth, db: DbSession) -> DataResponse[dict]:
    """Expire every active add-on past its expiry and clear listing flags."""
    result = await expire_addons(db)
    await db.commit()
    logger.info(
        "Add-on expiry job finished",
        processed=result.processed,
        errors=result.errors,
        total=result.total,
    )
    return DataResponse(
        data={
            "success": True,
            "message": result.message,
            "processed": result.processed,
            "errors": result.errors,
            "total": result.total,
        }
    )


@router.post("/expire-verifications")
async def run_expire_verifications(
    _auth: CronAuth, db: DbSession
) -> DataResponse[dict]:
    """Expire every active seller verification past its expiry."""
    result = await verification_workflow.expire_due(db)
    await db.commit()
    logger.info(
        "Verification expiry job finished",
        processed=result.processed,
        errors=result.errors,
        total=result.total,
    )
    return DataResponse(
        data={
            "success": True,
            "message": (
                f"Expired {result.processed} seller verifications "
                f"({result.errors} errors)"
            ),
            "processed": result.processed,
            "errors": result.errors,
            "total": result.total,
        }
    )


@router.post("/verification-reminders")
async def run_verification_reminders(
    _auth: CronAuth, db: DbSession
) -> DataResponse[dict]:
    """Email renewal reminders 30 days, 7 days and on the day of expiry."""
    result = await send_renewal_reminders(db)
    await db.commit()
    logger.info(
        "Verification reminder job finished",
        sent=result.sent,
        failed=result.failed,
        total=result.total,
    )
    return DataResponse(
        data={
            "success": True,
            "message": result.message,
            "sent": result.sent,
            "failed": result.failed,
            "total": result.total,
        }
    )


@router.post("/cleanup-login-attempts")
async def run_cleanup_login_attempts(
    _auth: CronAuth, db: DbSession
) -> DataResponse[dict]:
    """Delete login attempts and webhook event records past retention."""
    now = utcnow()
    attempts = await LoginAttemptRepository.delete_expired(db, now=now)
    events = await StripeEventRepository.delete_expired(db, now=now)
    await db.commit()
    logger.info("Retention cleanup finished", login_attempts=attempts, events=events)
    return DataResponse(
        data={
            "success": True,
            "message": f"Deleted {attempts} login attempts",
            "deleted": attempts,
            "deleted_events": events,
        }
    )
