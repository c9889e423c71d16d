"""Add-on catalog: prices, durations and listing flag effects.

Prices are in cents. ``duration_days`` None marks a one-shot add-on that
never expires. Each add-on may have a Stripe price id configured; without
one, purchases activate immediately (test mode).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.config import settings


@dataclass(frozen=True)
class AddOnSpec:
    """Catalog entry for one add-on type.

    Attributes:
        type: Canonical type key.
        name: Display name.
        description: One-line description.
        price_cents: Price in cents.
        duration_days: Active period, None for one-shot add-ons.
        ranking_boost: Search ranking weight added while active.
        price_setting: Settings attribute holding the Stripe price id.
        is_placement: Changes listing visibility (assignable to a listing).
    """

    type: str
    name: str
    description: str
    price_cents: int
    duration_days: int | None
    ranking_boost: int
    price_setting: str
    is_placement: bool = False

    @property
    def stripe_price_id(self) -> str:
        """Configured Stripe price id ("" when unset)."""
        return str(getattr(settings, self.price_setting, "") or "")

    @property
    def formatted_price(self) -> str:
        """Price as a display string, e.g. "$99.00"."""
        return format_cents(self.price_cents)

    @property
    def duration_label(self) -> str:
        """Human-readable duration."""
        if self.duration_days is None:
            return "One-time"
        if self.duration_days == 365:
            return "1 year"
        return f"{self.duration_days} days"

    def expires_at(self, start: datetime) -> datetime | None:
        """Expiry for a purchase activated at ``start``."""
        if self.duration_days is None:
            return None
        return start + timedelta(days=self.duration_days)


ADD_ONS: dict[str, AddOnSpec] = {
    spec.type: spec
    for spec in (
        AddOnSpec(
            type="elite",
            name="Elite Placement",
            description="Top placement in search results and category pages",
            price_cents=9900,
            duration_days=30,
            ranking_boost=3,
            price_setting="stripe_price_elite_placement",
            is_placement=True,
        ),
        AddOnSpec(
            type="ai-enhancement",
            name="AI Listing Enhancement",
            description="AI-improved title and description",
            price_cents=1000,
            duration_days=None,
            ranking_boost=0,
            price_setting="stripe_price_ai_enhancement",
        ),
        AddOnSpec(
            type="spec-sheet",
            name="Spec Sheet",
            description="Generated technical specification sheet",
            price_cents=2500,
            duration_days=None,
            ranking_boost=0,
            price_setting="stripe_price_spec_sheet",
        ),
        AddOnSpec(
            type="verified-badge",
            name="Verified Badge",
            description="Verified badge shown on the listing",
            price_cents=1500,
            duration_days=30,
            ranking_boost=0,
            price_setting="stripe_price_verified_badge",
            is_placement=True,
        ),
        AddOnSpec(
            type="seller-analytics",
            name="Seller Analytics",
            description="Views, inquiries and conversion analytics",
            price_cents=4900,
            duration_days=365,
            ranking_boost=0,
            price_setting="stripe_price_seller_analytics",
        ),
    )
}

# Older clients still send these names for elite placement
LEGACY_ALIASES: dict[str, str] = {"featured": "elite", "premium": "elite"}


@dataclass(frozen=True)
class VerificationTier:
    """Seller verification price tier."""

    tier: str
    name: str
    price_cents: int
    price_setting: str
    duration_days: int = 365

    @property
    def stripe_price_id(self) -> str:
        """Configured Stripe price id ("" when unset)."""
        return str(getattr(settings, self.price_setting, "") or "")


VERIFICATION_TIERS: dict[str, VerificationTier] = {
    "standard": VerificationTier(
        tier="standard",
        name="Verified Seller",
        price_cents=2900,
        price_setting="stripe_price_seller_verified",
    ),
    "priority": VerificationTier(
        tier="priority",
        name="Verified Seller (Priority Review)",
        price_cents=4900,
        price_setting="stripe_price_premium_seller_verified",
    ),
}


@dataclass(frozen=True)
class BuyerVerificationSpec:
    """One-time buyer identity confirmation; it never expires."""

    name: str
    price_cents: int
    price_setting: str
    badge: str

    @property
    def stripe_price_id(self) -> str:
        """Configured Stripe price id ("" when unset)."""
        return str(getattr(settings, self.price_setting, "") or "")


BUYER_VERIFICATION = BuyerVerificationSpec(
    name="Buyer Verification",
    price_cents=100,
    price_setting="stripe_price_buyer_verification",
    badge="Identity Confirmed",
)


def normalize_addon_type(raw: str) -> str:
    """Map legacy names onto canonical types (unknown names pass through)."""
    value = raw.strip().lower()
    return LEGACY_ALIASES.get(value, value)


def get_addon(raw: str) -> AddOnSpec | None:
    """Catalog entry for a (possibly legacy) type name, or None."""
    return ADD_ONS.get(normalize_addon_type(raw))


def format_cents(cents: int) -> str:
    """Format an amount in cents as dollars."""
    return f"${cents / 100:,.2f}"
