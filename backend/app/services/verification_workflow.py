"""Seller verification workflow.

Record states: draft -> pending-admin -> pending-payment -> active, with
expired and revoked as exits. Every transition appends a history entry and
mirrors the state onto the user:

    record state      user status   is_verified_seller
    draft             none          false
    pending-admin     pending       false
    pending-payment   pending       false
    active            active        true
    expired           expired       false
    revoked           revoked       false

Admin-triggered transitions also write a best-effort audit entry.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import InvalidStateError, NotFoundError, ValidationError
from app.core.file_validation import sanitize_filename, validate_verification_document
from app.models.base import utcnow
from app.models.seller_verification import DOCUMENT_TYPES, SellerVerification
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.repositories.verification_repository import VerificationRepository
from app.services import billing_service
from app.services.addon_catalog import VERIFICATION_TIERS
from app.services.audit_service import record_admin_action
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

USER_STATUS_FOR: dict[str, str] = {
    "draft": "none",
    "pending-admin": "pending",
    "pending-payment": "pending",
    "active": "active",
    "expired": "expired",
    "revoked": "revoked",
}

# States in which documents are locked and resubmission is refused
_LOCKED_STATES = frozenset({"pending-admin", "pending-payment", "active"})

# Renewal is offered once the active period has this much time left or less
RENEWAL_WINDOW = timedelta(days=30)

# Presigned upload URLs for documents are short-lived
_DOCUMENT_UPLOAD_EXPIRES_SECONDS = 600

ADMIN_ACTIONS = ("approve", "reject", "revoke", "reinstate")


@dataclass(frozen=True)
class DocumentUpload:
    """Issued document upload.

    Attributes:
        verification: Record the document was attached to.
        upload_url: Presigned PUT URL.
        key: Storage key of the document.
    """

    verification: SellerVerification
    upload_url: str
    key: str


@dataclass(frozen=True)
class ExpirySweepResult:
    """Result of the verification expiry job."""

    processed: int
    errors: int
    total: int


async def _mirror(
    db: AsyncSession, user: User, verification: SellerVerification, now: datetime
) -> None:
    """Copy the record state onto the user's verified-seller fields."""
    status = verification.status
    user_status = USER_STATUS_FOR[status]
    if status == "active":
        await UserRepository.set_verification_mirror(
            db,
            user,
            status=user_status,
            is_verified=True,
            tier=verification.tier,
            approved_at=verification.approved_at,
            expires_at=verification.expires_at,
        )
    elif status == "revoked":
        await UserRepository.set_verification_mirror(
            db,
            user,
            status=user_status,
            is_verified=False,
            approved_at=user.verified_seller_approved_at,
            expires_at=now,
        )
    elif status == "draft":
        await UserRepository.set_verification_mirror(
            db, user, status=user_status, is_verified=False
        )
    else:
        await UserRepository.set_verification_mirror(
            db, user, status=user_status, is_verified=False, keep_dates=True
        )


async def _transition(
    db: AsyncSession,
    verification: SellerVerification,
    user: User,
    *,
    status: str,
    actor_id: uuid.UUID | None,
    reason: str | None,
    now: datetime,
) -> SellerVerification:
    verification.status = status
    await VerificationRepository.append_history(
        db,
        verification,
        status=status,
        changed_by=actor_id,
        reason=reason,
        changed_at=now,
    )
    await _mirror(db, user, verification, now)
    logger.info("Seller verification %s -> %s", verification.id, status)
    return verification


async def _require_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user


async def get_for_user(
    db: AsyncSession, user_id: uuid.UUID
) -> SellerVerification | None:
    """Current verification record of a user, or None."""
    return await VerificationRepository.get_by_user_id(db, user_id)


async def start_document_upload(
    db: AsyncSession,
    *,
    user: User,
    storage: StorageService,
    document_type: str,
    file_name: str,
    content_type: str,
    file_size: int,
    now: datetime | None = None,
) -> DocumentUpload:
    """Issue an upload URL for a verification document and record it.

    Creates the draft record on first upload and replaces any document of
    the same type.

    Raises:
        ValidationError: Bad type, MIME or size, or the record is locked.
    """
    current = now or utcnow()
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(
            f"Invalid document type: {document_type}", field="document_type"
        )
    validate_verification_document(content_type=content_type, file_size=file_size)

    verification = await VerificationRepository.get_by_user_id(db, user.id)
    if verification is not None and verification.status in _LOCKED_STATES:
        raise ValidationError(
            "Documents cannot be changed while verification is "
            f"{verification.status}"
        )

    stamp = int(current.timestamp() * 1000)
    key = (
        f"verification/sellers/{user.id}/"
        f"{document_type}-{stamp}-{sanitize_filename(file_name)}"
    )
    upload_url = storage.presign_put(key, content_type, _DOCUMENT_UPLOAD_EXPIRES_SECONDS)

    if verification is None:
        verification = await VerificationRepository.create(db, user_id=user.id)
        await _transition(
            db,
            verification,
            user,
            status="draft",
            actor_id=user.id,
            reason="Verification started",
            now=current,
        )

    await VerificationRepository.replace_document(
        db,
        verification,
        document_type=document_type,
        storage_key=key,
        file_name=file_name,
    )
    return DocumentUpload(verification=verification, upload_url=upload_url, key=key)


async def submit(
    db: AsyncSession, *, user: User, now: datetime | None = None
) -> SellerVerification:
    """Submit uploaded documents for admin review.

    Raises:
        ValidationError: No record, already submitted or verified, or
            required documents missing.
    """
    verification = await VerificationRepository.get_by_user_id(db, user.id)
    if verification is None:
        raise ValidationError("Upload verification documents first")
    if verification.status in _LOCKED_STATES:
        raise ValidationError(f"Verification is already {verification.status}")

    present = verification.document_types()
    if "drivers_license" not in present:
        raise ValidationError(
            "A driver's license is required", field="drivers_license"
        )
    if "business_license" not in present and "ein_document" not in present:
        raise ValidationError(
            "A business license or EIN document is required",
            field="business_license",
        )

    verification.admin_review_status = "pending"
    verification.admin_reviewed_by = None
    verification.admin_reviewed_at = None
    verification.rejection_reason = None
    return await _transition(
        db,
        verification,
        user,
        status="pending-admin",
        actor_id=user.id,
        reason="Submitted for review",
        now=now or utcnow(),
    )


async def refresh_status(
    db: AsyncSession, *, user: User, now: datetime | None = None
) -> SellerVerification | None:
    """Expire a lapsed verification on read and return the record.

    Returns:
        The user's verification record (None if they never started one).
    """
    current = now or utcnow()
    verification = await VerificationRepository.get_by_user_id(db, user.id)
    expires_at = user.verified_seller_expires_at
    if user.is_verified_seller and expires_at is not None and expires_at < current:
        if verification is not None and verification.status == "active":
            await _transition(
                db,
                verification,
                user,
                status="expired",
                actor_id=None,
                reason="Verification period ended",
                now=current,
            )
        else:
            await UserRepository.set_verification_mirror(
                db, user, status="expired", is_verified=False, keep_dates=True
            )
    return verification


async def start_checkout(
    db: AsyncSession,
    *,
    user: User,
    tier: str,
    now: datetime | None = None,
) -> billing_service.CheckoutSession:
    """Create the verification payment checkout.

    Active sellers may renew once their period has 30 days or less left;
    renewing keeps the record active until the payment lands.

    Raises:
        ValidationError: Unknown tier, no approved review, revoked, or
            still active with more than 30 days left.
    """
    current = now or utcnow()
    tier_spec = VERIFICATION_TIERS.get(tier)
    if tier_spec is None:
        raise ValidationError(f"Invalid tier: {tier}", field="tier")

    verification = await VerificationRepository.get_by_user_id(db, user.id)
    if verification is None:
        raise ValidationError("Submit verification documents first")
    if verification.status == "revoked":
        raise ValidationError("Verification has been revoked")
    if (
        verification.status == "active"
        and verification.expires_at is not None
        and verification.expires_at - current > RENEWAL_WINDOW
    ):
        raise ValidationError("Verification is already active")
    if verification.admin_review_status != "approved":
        raise ValidationError(
            "Verification must be approved by an admin before payment"
        )

    customer_id = await billing_service.get_or_create_customer(db, user)
    session = await billing_service.create_checkout_session(
        customer_id=customer_id,
        line_item=billing_service.catalog_line_item(
            price_id=tier_spec.stripe_price_id,
            price_cents=tier_spec.price_cents,
            name=tier_spec.name,
        ),
        metadata={
            "user_id": user.id,
            "type": "seller_verification",
            "tier": tier,
            "verification_id": verification.id,
        },
        success_url=f"{settings.frontend_url}/dashboard/verification?success=true",
        cancel_url=f"{settings.frontend_url}/dashboard/verification?canceled=true",
    )

    if verification.status not in ("active", "pending-payment"):
        await _transition(
            db,
            verification,
            user,
            status="pending-payment",
            actor_id=user.id,
            reason="Checkout started",
            now=current,
        )
    return session


async def activate_from_payment(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    tier: str,
    payment_id: str | None,
    now: datetime | None = None,
) -> SellerVerification:
    """Activate verification after a confirmed payment (one-year period).

    Renewal reminders start over for the new period.

    Raises:
        NotFoundError: Unknown user.
    """
    current = now or utcnow()
    user = await _require_user(db, user_id)
    verification = await VerificationRepository.get_by_user_id(db, user_id)
    if verification is None:
        verification = await VerificationRepository.create(db, user_id=user_id)

    tier_spec = VERIFICATION_TIERS.get(tier) or VERIFICATION_TIERS["standard"]
    verification.tier = tier_spec.tier
    verification.approved_at = current
    verification.expires_at = current + timedelta(days=tier_spec.duration_days)
    verification.stripe_payment_id = payment_id
    verification.thirty_day_reminder_sent_at = None
    verification.seven_day_reminder_sent_at = None
    verification.day_of_reminder_sent_at = None
    return await _transition(
        db,
        verification,
        user,
        status="active",
        actor_id=None,
        reason="Payment received",
        now=current,
    )


async def apply_admin_action(
    db: AsyncSession,
    *,
    admin: User,
    verification_id: uuid.UUID,
    action: str,
    notes: str | None = None,
    rejection_reason: str | None = None,
    request: Request | None = None,
    now: datetime | None = None,
) -> SellerVerification:
    """Apply an admin review action to a verification record.

    approve: review approved, record -> pending-payment.
    reject: reason required, record -> draft (user -> none).
    revoke: record -> revoked, user revoked with expiry now.
    reinstate: revoked record -> pending-admin.

    Raises:
        NotFoundError: Unknown record.
        ValidationError: Unknown action or missing rejection reason.
        InvalidStateError: Action not allowed from the current state.
    """
    current = now or utcnow()
    verification = await VerificationRepository.get_by_id(db, verification_id)
    if verification is None:
        raise NotFoundError("Verification", str(verification_id))
    user = await _require_user(db, verification.user_id)
    previous = verification.status

    if action == "approve":
        if previous != "pending-admin":
            raise InvalidStateError(f"Cannot approve a {previous} verification")
        verification.admin_review_status = "approved"
        verification.admin_reviewed_by = admin.id
        verification.admin_reviewed_at = current
        verification.admin_notes = notes
        verification.rejection_reason = None
        await _transition(
            db,
            verification,
            user,
            status="pending-payment",
            actor_id=admin.id,
            reason=notes or "Approved by admin",
            now=current,
        )
    elif action == "reject":
        if not rejection_reason:
            raise ValidationError(
                "A rejection reason is required", field="rejection_reason"
            )
        if previous not in ("pending-admin", "pending-payment"):
            raise InvalidStateError(f"Cannot reject a {previous} verification")
        verification.admin_review_status = "rejected"
        verification.admin_reviewed_by = admin.id
        verification.admin_reviewed_at = current
        verification.admin_notes = notes
        verification.rejection_reason = rejection_reason
        await _transition(
            db,
            verification,
            user,
            status="draft",
            actor_id=admin.id,
            reason=rejection_reason,
            now=current,
        )
    elif action == "revoke":
        if previous in ("revoked", "draft"):
            raise InvalidStateError(f"Cannot revoke a {previous} verification")
        verification.admin_notes = notes
        await _transition(
            db,
            verification,
            user,
            status="revoked",
            actor_id=admin.id,
            reason=notes or "Revoked by admin",
            now=current,
        )
    elif action == "reinstate":
        if previous != "revoked":
            raise InvalidStateError(f"Cannot reinstate a {previous} verification")
        verification.admin_review_status = "pending"
        verification.admin_notes = notes
        await _transition(
            db,
            verification,
            user,
            status="pending-admin",
            actor_id=admin.id,
            reason=notes or "Reinstated by admin",
            now=current,
        )
    else:
        raise ValidationError(f"Unknown action: {action}", field="action")

    await record_admin_action(
        db,
        admin=admin,
        action=f"seller_verification.{action}",
        target_type="seller_verification",
        target_id=str(verification.id),
        target_title=user.email,
        details={"from": previous, "to": verification.status},
        reason=rejection_reason or notes,
        request=request,
    )
    return verification


async def force_expire(
    db: AsyncSession,
    *,
    admin: User,
    user_id: uuid.UUID,
    request: Request | None = None,
    now: datetime | None = None,
) -> User:
    """Expire a user's verification immediately.

    Raises:
        NotFoundError: Unknown user.
    """
    current = now or utcnow()
    user = await _require_user(db, user_id)
    previous = user.verified_seller_status

    verification = await VerificationRepository.get_by_user_id(db, user_id)
    if verification is not None:
        verification.expires_at = current
        await _transition(
            db,
            verification,
            user,
            status="expired",
            actor_id=admin.id,
            reason="Force expired by admin",
            now=current,
        )
    await UserRepository.set_verification_mirror(
        db,
        user,
        status="expired",
        is_verified=False,
        approved_at=user.verified_seller_approved_at,
        expires_at=current,
    )

    await record_admin_action(
        db,
        admin=admin,
        action="seller_verification.force_expire",
        target_type="user",
        target_id=str(user.id),
        target_title=user.email,
        details={"from": previous, "to": "expired"},
        request=request,
    )
    return user


async def expire_due(
    db: AsyncSession, *, now: datetime | None = None
) -> ExpirySweepResult:
    """Expire every active record whose period has ended.

    Each record runs in its own SAVEPOINT; failures are logged and counted.
    """
    current = now or utcnow()
    due = await VerificationRepository.list_expired_active(db, now=current)
    processed = 0
    errors = 0
    for verification in due:
        verification_id = verification.id
        try:
            async with db.begin_nested():
                user = await _require_user(db, verification.user_id)
                await _transition(
                    db,
                    verification,
                    user,
                    status="expired",
                    actor_id=None,
                    reason="Verification period ended",
                    now=current,
                )
        except Exception:
            errors += 1
            logger.exception("Failed to expire verification %s", verification_id)
            continue
        processed += 1
    return ExpirySweepResult(processed=processed, errors=errors, total=len(due))
