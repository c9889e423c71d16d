"""Listing premium_add_ons flag transforms.

Pure functions: each takes the current map and returns a new deep-copied
map, leaving the input untouched. Datetimes are stored as ISO strings.
"""

import copy
from datetime import datetime
from typing import Any

# Flags written when an add-on activates and cleared when it expires
_TIMED_FLAGS: dict[str, tuple[str, ...]] = {
    "elite": ("elite", "premium", "featured"),
    "verified-badge": ("verified_badge",),
}


def flags_for(addon_type: str) -> tuple[str, ...]:
    """Timed flag keys an add-on type controls (empty for one-shot types)."""
    return _TIMED_FLAGS.get(addon_type, ())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def apply_addon(
    current: dict[str, Any] | None,
    addon_type: str,
    *,
    purchased_at: datetime,
    expires_at: datetime | None,
) -> dict[str, Any]:
    """Return a map with the add-on's effect switched on.

    Args:
        current: Existing premium_add_ons map.
        addon_type: Canonical add-on type.
        purchased_at: Activation time.
        expires_at: Expiry (None for one-shot add-ons).

    Returns:
        New map; unknown types return an unchanged copy.
    """
    flags = copy.deepcopy(current or {})
    for key in flags_for(addon_type):
        flags[key] = {
            "active": True,
            "expires_at": _iso(expires_at),
            "purchased_at": _iso(purchased_at),
        }
    if addon_type == "ai-enhancement":
        flags["ai_enhanced"] = True
    elif addon_type == "spec-sheet":
        spec_sheet = dict(flags.get("spec_sheet") or {})
        spec_sheet["generated"] = True
        spec_sheet["generated_at"] = _iso(purchased_at)
        flags["spec_sheet"] = spec_sheet
    return flags


def clear_addon(current: dict[str, Any] | None, addon_type: str) -> dict[str, Any]:
    """Return a map with the add-on's timed flags set inactive.

    Existing ``purchased_at`` / ``expires_at`` values are kept for history.
    One-shot types return an unchanged copy.
    """
    flags = copy.deepcopy(current or {})
    for key in flags_for(addon_type):
        entry = flags.get(key)
        entry = dict(entry) if isinstance(entry, dict) else {}
        entry["active"] = False
        flags[key] = entry
    return flags


def revoke_addon(current: dict[str, Any] | None, addon_type: str) -> dict[str, Any]:
    """Return a map with every effect of an add-on removed.

    Used for refunds and admin cancellations, where one-shot effects are
    taken back as well.
    """
    flags = clear_addon(current, addon_type)
    if addon_type == "ai-enhancement":
        flags["ai_enhanced"] = False
    elif addon_type == "spec-sheet":
        spec_sheet = dict(flags.get("spec_sheet") or {})
        spec_sheet["generated"] = False
        flags["spec_sheet"] = spec_sheet
    return flags


def is_flag_active(flags: dict[str, Any] | None, key: str) -> bool:
    """True when a timed flag entry is present and active."""
    entry = (flags or {}).get(key)
    return isinstance(entry, dict) and bool(entry.get("active"))


def placement_active(flags: dict[str, Any] | None, addon_type: str) -> bool:
    """True when any flag the add-on type controls is currently active."""
    return any(is_flag_active(flags, key) for key in flags_for(addon_type))
