from __future__ import annotations

from collections import Counter
from typing import Sequence

from ..tracker.models import DealHistory, PersonalStats, SavedDeal

DEFAULT_FAVORITE_CATEGORY = "pizza"


def compute_personal_stats(
    history: Sequence[DealHistory],
    saved_deals: Sequence[SavedDeal],
) -> PersonalStats:
    total_viewed = len(history)
    total_saved = len(saved_deals)
    total_emailed = sum(1 for h in history if h.emailed_at is not None)

    total_savings = sum(h.estimated_savings for h in history)

    # Ties go to the value seen first in (newest-first) history
    category_counter: Counter[str] = Counter()
    for h in history:
        if h.category:
            category_counter[h.category.value] += 1
    top_category = category_counter.most_common(1)
    favorite_category = top_category[0][0] if top_category else DEFAULT_FAVORITE_CATEGORY

    store_counter: Counter[str] = Counter(h.store_id for h in history)
    top_store = store_counter.most_common(1)
    most_visited_store = top_store[0][0] if top_store else ""

    return PersonalStats(
        total_deals_viewed=total_viewed,
        total_deals_saved=total_saved,
        total_deals_emailed=total_emailed,
        estimated_total_savings=total_savings,
        favorite_category=favorite_category,
        most_visited_store=most_visited_store,
        average_order_value=total_savings / max(total_viewed, 1),
        deal_engagement_rate=total_saved / max(total_viewed, 1),
    )
