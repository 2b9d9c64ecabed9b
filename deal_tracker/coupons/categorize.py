from __future__ import annotations

from enum import Enum
from typing import Iterable

from .models import Coupon


class Category(str, Enum):
    pizza = "pizza"
    bundle = "bundle"
    wings = "wings"
    late_night = "late-night"
    delivery = "delivery"
    carryout = "carryout"
    limited_time = "limited-time"
    default = "default"


CATEGORY_LABELS: dict[Category, str] = {
    Category.pizza: "Pizza Deals",
    Category.bundle: "Bundle Deals",
    Category.wings: "Wings & Sides",
    Category.late_night: "Late Night",
    Category.delivery: "Delivery Special",
    Category.carryout: "Carryout Deal",
    Category.limited_time: "Limited Time",
    Category.default: "Special Offer",
}

# Display order used when grouping coupons for a listing.
CATEGORY_PRIORITY: dict[Category, int] = {
    Category.pizza: 1,
    Category.bundle: 2,
    Category.wings: 3,
    Category.late_night: 4,
    Category.delivery: 5,
    Category.carryout: 6,
    Category.limited_time: 7,
    Category.default: 8,
}

LATE_NIGHT_KEYWORDS = (
    "late night",
    "after 10",
    "after 11",
    "after midnight",
    "night owl",
    "midnight",
    "10pm",
    "11pm",
    "late",
    "night only",
    "evening",
    "after dark",
)

BUNDLE_KEYWORDS = ("bundle", "combo", "meal deal")

PIZZA_KEYWORDS = (
    "pizza",
    "large pizza",
    "medium pizza",
    "small pizza",
    "specialty pizza",
    "cheese pizza",
    "pepperoni pizza",
    "hand tossed",
    "thin crust",
    "pan pizza",
)

WINGS_KEYWORDS = (
    "wings",
    "boneless wings",
    "traditional wings",
    "sides",
    "breadsticks",
    "cheesy bread",
    "pasta",
    "sandwich",
    "salad",
)

LIMITED_TIME_KEYWORDS = (
    "limited time",
    "today only",
    "ends tonight",
    "ends today",
    "while supplies last",
    "limited offer",
    "ends soon",
    "expires today",
    "flash sale",
)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(kw in text for kw in keywords)


def _only_service_method(coupon: Coupon, method: str) -> bool:
    if coupon.service_method == method:
        return True
    return coupon.valid_service_methods == [method]


def categorize(coupon: Coupon) -> Category:
    """Assign a coupon to exactly one category; the first matching rule wins."""
    text = coupon.text

    if _contains_any(text, LATE_NIGHT_KEYWORDS):
        return Category.late_night
    if coupon.bundle or _contains_any(text, BUNDLE_KEYWORDS):
        return Category.bundle
    if _contains_any(text, PIZZA_KEYWORDS):
        return Category.pizza
    if _contains_any(text, WINGS_KEYWORDS):
        return Category.wings
    if _only_service_method(coupon, "Delivery"):
        return Category.delivery
    if _only_service_method(coupon, "Carryout"):
        return Category.carryout
    if _contains_any(text, LIMITED_TIME_KEYWORDS):
        return Category.limited_time
    return Category.default


def group_by_category(coupons: Iterable[Coupon]) -> dict[Category, list[Coupon]]:
    """Group coupons by category, keyed in display order, skipping empty groups."""
    groups: dict[Category, list[Coupon]] = {}
    for coupon in coupons:
        groups.setdefault(categorize(coupon), []).append(coupon)
    return {
        cat: groups[cat]
        for cat in sorted(groups, key=CATEGORY_PRIORITY.__getitem__)
    }


def split_late_night(coupons: Iterable[Coupon]) -> tuple[list[Coupon], list[Coupon]]:
    """Return ``(late_night, regular)`` coupons, preserving input order."""
    late_night: list[Coupon] = []
    regular: list[Coupon] = []
    for coupon in coupons:
        if categorize(coupon) is Category.late_night:
            late_night.append(coupon)
        else:
            regular.append(coupon)
    return late_night, regular
