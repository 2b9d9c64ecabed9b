from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from ..coupons.categorize import Category, categorize
from ..coupons.models import Coupon, StoreInfo
from ..tracker.models import FavoriteStore, UserPreferences
from .models import DealRecommendation, ReasonType, RecommendationReason
from .scoring import is_meal_time, score_deal

MIN_SCORE = 0.3
DEFAULT_LIMIT = 10
EXPIRING_SOON_WINDOW = timedelta(hours=24)


def build_reasons(
    coupon: Coupon,
    store: StoreInfo,
    preferences: UserPreferences,
    favorite_stores: Sequence[FavoriteStore],
    now: datetime,
    category: Category | None = None,
) -> list[RecommendationReason]:
    """Return every reason that applies to a coupon; each check is independent."""
    category = category or categorize(coupon)
    savings = coupon.estimated_savings
    reasons: list[RecommendationReason] = []

    if any(fav.store_id == store.store_id for fav in favorite_stores):
        reasons.append(RecommendationReason(
            type=ReasonType.favorite_store,
            description="This is one of your favorite stores",
            weight=0.8,
        ))

    if category in preferences.preferred_categories:
        reasons.append(RecommendationReason(
            type=ReasonType.preferred_category,
            description=f"Matches your preferred category: {category.value}",
            weight=0.7,
        ))

    budget = preferences.budget_range
    if budget.min <= savings <= budget.max:
        reasons.append(RecommendationReason(
            type=ReasonType.price_match,
            description="Savings amount matches your budget range",
            weight=0.6,
        ))

    if is_meal_time(now):
        reasons.append(RecommendationReason(
            type=ReasonType.time_relevant,
            description="Perfect timing for your meal",
            weight=0.5,
        ))

    expires_at = coupon.expires_at
    if expires_at is not None and now < expires_at <= now + EXPIRING_SOON_WINDOW:
        reasons.append(RecommendationReason(
            type=ReasonType.expiring_soon,
            description="This deal expires soon - don't miss out!",
            weight=0.9,
        ))

    return reasons


def get_recommendations(
    coupons: Sequence[Coupon],
    store: StoreInfo,
    preferences: UserPreferences,
    favorite_stores: Sequence[FavoriteStore],
    now: datetime | None = None,
    limit: int = DEFAULT_LIMIT,
    min_score: float = MIN_SCORE,
) -> list[DealRecommendation]:
    """Score, explain and rank candidate coupons for one store.

    Candidates scoring at or below ``min_score`` are dropped; the rest are
    ordered by overall score, highest first, and cut to ``limit``.
    """
    now = now or datetime.now()

    items: list[DealRecommendation] = []
    for coupon in coupons:
        category = categorize(coupon)
        score = score_deal(coupon, preferences, now, category=category)
        if not score.overall > min_score:
            continue
        items.append(DealRecommendation(
            coupon=coupon,
            store_info=store,
            score=score,
            reasons=build_reasons(coupon, store, preferences, favorite_stores, now, category=category),
            priority=score.overall,
            category=category,
            estimated_savings=coupon.estimated_savings,
        ))

    items.sort(key=lambda rec: rec.score.overall, reverse=True)
    return items[:limit]
