"""Repository for SellerVerification operations.

Documents and history are child rows loaded with the parent (selectin),
so every method returns records safe to read outside the session.
"""

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.seller_verification import (
    SellerVerification,
    SellerVerificationDocument,
    SellerVerificationHistory,
)


class VerificationRepository:
    """Stateless repository for seller verification tables.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(
        db: AsyncSession, verification_id: uuid.UUID
    ) -> SellerVerification | None:
        """Fetch a verification record by primary key."""
        return await db.get(SellerVerification, verification_id)

    @staticmethod
    async def get_by_user_id(
        db: AsyncSession, user_id: uuid.UUID
    ) -> SellerVerification | None:
        """Fetch the verification record of a user."""
        result = await db.execute(
            select(SellerVerification).where(SellerVerification.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(db: AsyncSession, *, user_id: uuid.UUID) -> SellerVerification:
        """Create a draft verification record with empty children."""
        verification = SellerVerification(
            user_id=user_id,
            status="draft",
            admin_review_status="pending",
            documents=[],
            history=[],
        )
        db.add(verification)
        await db.flush()
        return verification

    @staticmethod
    async def append_history(
        db: AsyncSession,
        verification: SellerVerification,
        *,
        status: str,
        changed_by: uuid.UUID | None,
        reason: str | None = None,
        changed_at: datetime | None = None,
    ) -> SellerVerificationHistory:
        """Append a status history entry.

        Args:
            db: Async database session.
            verification: Record the entry belongs to.
            status: Status after the change.
            changed_by: Acting user (None for scheduled jobs).
            reason: Optional human-readable reason.
            changed_at: Timestamp (defaults to now).

        Returns:
            The new history entry.
        """
        entry = SellerVerificationHistory(
            position=len(verification.history),
            status=status,
            changed_by=changed_by,
            reason=reason,
            changed_at=changed_at or utcnow(),
        )
        verification.history.append(entry)
        await db.flush()
        return entry

    @staticmethod
    async def replace_document(
        db: AsyncSession,
        verification: SellerVerification,
        *,
        document_type: str,
        storage_key: str,
        file_name: str,
    ) -> SellerVerificationDocument:
        """Store a document, replacing any existing one of the same type."""
        for existing in list(verification.documents):
            if existing.document_type == document_type:
                verification.documents.remove(existing)
        # Flush the delete before inserting to keep the (verification, type)
        # unique constraint satisfied.
        await db.flush()
        document = SellerVerificationDocument(
            document_type=document_type,
            storage_key=storage_key,
            file_name=file_name,
            uploaded_at=utcnow(),
        )
        verification.documents.append(document)
        await db.flush()
        return document

    @staticmethod
    async def list_by_status(
        db: AsyncSession,
        *,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[SellerVerification], int]:
        """List verification records, oldest update first.

        Args:
            db: Async database session.
            status: Optional status filter.
            offset: Number of records to skip.
            limit: Maximum records to return.

        Returns:
            Tuple of (records, total count).
        """
        conditions = []
        if status is not None:
            conditions.append(SellerVerification.status == status)

        total = (
            await db.execute(
                select(func.count())
                .select_from(SellerVerification)
                .where(*conditions)
            )
        ).scalar_one()
        result = await db.execute(
            select(SellerVerification)
            .where(*conditions)
            .order_by(SellerVerification.updated_at.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def list_expired_active(
        db: AsyncSession, *, now: datetime
    ) -> list[SellerVerification]:
        """Active records whose paid period has ended."""
        result = await db.execute(
            select(SellerVerification).where(
                SellerVerification.status == "active",
                SellerVerification.expires_at.is_not(None),
                SellerVerification.expires_at < now,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_due_for_reminder(
        db: AsyncSession,
        *,
        sent_column: str,
        start: datetime,
        end: datetime,
    ) -> list[SellerVerification]:
        """Active records expiring in [start, end) with no reminder sent yet.

        Args:
            db: Async database session.
            sent_column: Reminder timestamp column that must still be empty.
            start: Window start (inclusive).
            end: Window end (exclusive).
        """
        sent_at = getattr(SellerVerification, sent_column)
        result = await db.execute(
            select(SellerVerification)
            .where(
                SellerVerification.status == "active",
                SellerVerification.expires_at >= start,
                SellerVerification.expires_at < end,
                sent_at.is_(None),
            )
            .order_by(SellerVerification.expires_at)
        )
        return list(result.scalars().all())
