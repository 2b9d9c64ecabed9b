from __future__ import annotations

from datetime import datetime

from ..coupons.categorize import Category, categorize
from ..coupons.models import Coupon
from ..tracker.models import DealScore, UserPreferences

# Savings at or above this amount earn the full value score.
VALUE_CAP = 20.0

VALUE_WEIGHT = 0.4
PERSONAL_WEIGHT = 0.3
TIME_WEIGHT = 0.3

PREFERRED_RELEVANCE = 0.8
BASE_RELEVANCE = 0.5

LUNCH_HOURS = range(11, 15)  # 11:00-14:59
DINNER_HOURS = range(17, 22)  # 17:00-21:59
LUNCH_RELEVANCE = 0.8
DINNER_RELEVANCE = 0.9
OFF_PEAK_RELEVANCE = 0.5

POPULARITY_PLACEHOLDER = 0.5


def is_meal_time(now: datetime) -> bool:
    return now.hour in LUNCH_HOURS or now.hour in DINNER_HOURS


def time_relevance(now: datetime) -> float:
    if now.hour in DINNER_HOURS:
        return DINNER_RELEVANCE
    if now.hour in LUNCH_HOURS:
        return LUNCH_RELEVANCE
    return OFF_PEAK_RELEVANCE


def score_deal(
    coupon: Coupon,
    preferences: UserPreferences,
    now: datetime | None = None,
    category: Category | None = None,
) -> DealScore:
    """Compute the four-factor relevance score for a single coupon."""
    now = now or datetime.now()
    category = category or categorize(coupon)

    value = min(coupon.estimated_savings / VALUE_CAP, 1.0)
    personal = (
        PREFERRED_RELEVANCE
        if category in preferences.preferred_categories
        else BASE_RELEVANCE
    )
    timing = time_relevance(now)

    overall = value * VALUE_WEIGHT + personal * PERSONAL_WEIGHT + timing * TIME_WEIGHT

    return DealScore(
        overall=overall,
        value=value,
        popularity=POPULARITY_PLACEHOLDER,
        time_relevance=timing,
        personal_relevance=personal,
    )
