"""Repository for User operations.

Provides database access for the users table. Verification mirror fields
are written only through set_verification_mirror().
"""

import uuid
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.seller_verification import SellerVerification
from app.models.user import User

# Fields that may be updated via UserRepository.update().
# Security: never add 'id', 'email', 'role', 'is_admin' or the verification
# mirror fields; those change only through dedicated flows.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "phone",
        "company",
        "image",
        "password_hash",
        "stripe_customer_id",
        "last_login",
        "token_invalidated_before",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str | None = None,
        password_hash: str | None = None,
        role: str = "buyer",
        phone: str | None = None,
        company: str | None = None,
    ) -> User:
        """Create a new user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            email: User email address.
            name: Display name.
            password_hash: bcrypt hash.
            role: buyer, seller or contractor.
            phone: Contact phone.
            company: Company name.

        Returns:
            Created User.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            email=email.strip().lower(),
            name=name,
            password_hash=password_hash,
            role=role,
            phone=phone,
            company=company,
        )
        db.add(user)
        await db.flush()
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | datetime | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        return user

    @staticmethod
    async def set_verification_mirror(
        db: AsyncSession,
        user: User,
        *,
        status: str,
        is_verified: bool,
        tier: str | None = None,
        approved_at: datetime | None = None,
        expires_at: datetime | None = None,
        keep_dates: bool = False,
    ) -> User:
        """Write the verified-seller mirror fields on a user.

        Args:
            db: Async database session.
            user: User to update.
            status: none, pending, active, expired or revoked.
            is_verified: Badge flag.
            tier: Paid tier (None leaves the stored tier unchanged).
            approved_at: Start of the paid period.
            expires_at: End of the paid period.
            keep_dates: Leave approved_at / expires_at untouched.

        Returns:
            The updated user.
        """
        user.verified_seller_status = status
        user.is_verified_seller = is_verified
        if tier is not None:
            user.verified_seller_tier = tier
        if not keep_dates:
            user.verified_seller_approved_at = approved_at
            user.verified_seller_expires_at = expires_at
        await db.flush()
        return user

    @staticmethod
    async def set_buyer_verified(
        db: AsyncSession, user: User, *, verified_at: datetime
    ) -> User:
        """Write the buyer verification fields on a user."""
        user.is_verified_buyer = True
        user.buyer_verification_status = "verified"
        user.buyer_verified_at = verified_at
        await db.flush()
        return user

    @staticmethod
    async def list_with_verification_activity(
        db: AsyncSession,
        *,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[User], int]:
        """List users that have any seller verification activity.

        A user qualifies when the mirror status is not ``none`` or a
        verification record exists.

        Returns:
            Tuple of (users, total count), most recently updated first.
        """
        condition = or_(
            User.verified_seller_status != "none",
            User.id.in_(select(SellerVerification.user_id)),
        )
        total = (
            await db.execute(select(func.count()).select_from(User).where(condition))
        ).scalar_one()
        result = await db.execute(
            select(User)
            .where(condition)
            .order_by(User.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
