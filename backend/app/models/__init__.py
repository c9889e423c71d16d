"""SQLAlchemy ORM models for The Rail Exchange.

All models are exported from this module for convenient imports:
    from app.models import User, Listing, AddOnPurchase, ...

Models are organized by domain:
- user.py: User
- listing.py: Listing
- addon.py: AddOnPurchase
- seller_verification.py: SellerVerification, SellerVerificationDocument,
  SellerVerificationHistory
- inquiry.py: Inquiry, InquiryMessage
- audit.py: LoginAttemptLog, AdminAuditLog
- stripe_event.py: StripeEvent
- watchlist.py: WatchlistItem
"""

from app.models.addon import AddOnPurchase
from app.models.audit import AdminAuditLog, LoginAttemptLog
from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.inquiry import Inquiry, InquiryMessage
from app.models.listing import Listing
from app.models.seller_verification import (
    SellerVerification,
    SellerVerificationDocument,
    SellerVerificationHistory,
)
from app.models.stripe_event import StripeEvent
from app.models.user import User
from app.models.watchlist import WatchlistItem

__all__ = [
    "AddOnPurchase",
    "AdminAuditLog",
    "Base",
    "Inquiry",
    "InquiryMessage",
    "Listing",
    "LoginAttemptLog",
    "SellerVerification",
    "SellerVerificationDocument",
    "SellerVerificationHistory",
    "StripeEvent",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "WatchlistItem",
]
