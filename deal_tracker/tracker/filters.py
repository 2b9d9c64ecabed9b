from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

from ..coupons.categorize import categorize
from .models import DealFilterOptions, SavedDeal

_SECONDS_PER_DAY = 24 * 60 * 60


def _days_until(expires_at: datetime, now: datetime) -> int:
    return math.ceil((expires_at - now).total_seconds() / _SECONDS_PER_DAY)


def _matches(deal: SavedDeal, filters: DealFilterOptions, now: datetime) -> bool:
    if filters.stores is not None and deal.store_info.store_id not in filters.stores:
        return False

    if filters.categories is not None and categorize(deal.coupon) not in filters.categories:
        return False

    if filters.min_savings is not None and deal.estimated_savings < filters.min_savings:
        return False

    if filters.max_savings is not None and deal.estimated_savings > filters.max_savings:
        return False

    # Deals without an expiration always pass the window filter
    if filters.expiring_within is not None and deal.expires_at is not None:
        if _days_until(deal.expires_at, now) > filters.expiring_within:
            return False

    return True


def _expiration_key(deal: SavedDeal) -> float:
    return deal.expires_at.timestamp() if deal.expires_at is not None else math.inf


_SORT_KEYS = {
    "savings": lambda deal: deal.estimated_savings,
    "expiration": _expiration_key,
    "date_added": lambda deal: deal.saved_at,
}


def filter_saved_deals(
    deals: Sequence[SavedDeal],
    filters: DealFilterOptions,
    now: datetime | None = None,
) -> list[SavedDeal]:
    """Apply the inclusion filters, then the optional sort; sorting is stable."""
    now = now or datetime.now()
    result = [deal for deal in deals if _matches(deal, filters, now)]
    if filters.sort_by:
        result.sort(key=_SORT_KEYS[filters.sort_by], reverse=filters.sort_order == "desc")
    return result
