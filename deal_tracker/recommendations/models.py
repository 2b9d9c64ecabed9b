from __future__ import annotations

from enum import Enum

from pydantic import Field

from ..coupons.categorize import Category
from ..coupons.models import Coupon, StoreInfo
from ..tracker.models import DealScore, TrackerModel


class ReasonType(str, Enum):
    favorite_store = "favorite_store"
    preferred_category = "preferred_category"
    price_match = "price_match"
    time_relevant = "time_relevant"
    expiring_soon = "expiring_soon"


class RecommendationReason(TrackerModel):
    type: ReasonType
    description: str
    weight: float = Field(..., ge=0.0, le=1.0)


class DealRecommendation(TrackerModel):
    coupon: Coupon
    store_info: StoreInfo
    score: DealScore
    reasons: list[RecommendationReason] = Field(default_factory=list)
    priority: float
    category: Category
    estimated_savings: float


class RecommendationRequest(TrackerModel):
    coupons: list[Coupon] = Field(default_factory=list)
    store_info: StoreInfo
