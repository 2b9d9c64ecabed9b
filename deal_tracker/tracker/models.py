from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..coupons.categorize import Category
from ..coupons.models import Coupon, StoreInfo


class TrackerModel(BaseModel):
    """Base for persisted records: snake_case in Python, camelCase on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BudgetRange(TrackerModel):
    min: float = Field(default=0.0, ge=0.0)
    max: float = Field(default=100.0, ge=0.0)

    @model_validator(mode="after")
    def _check_order(self) -> BudgetRange:
        if self.min > self.max:
            raise ValueError("budget min must not exceed max")
        return self


class NotificationSettings(TrackerModel):
    enabled: bool = True
    new_deals: bool = True
    expiring_deals: bool = True
    price_drops: bool = True
    favorite_store_updates: bool = True
    weekly_digest: bool = True
    email_notifications: bool = False


class UserPreferences(TrackerModel):
    favorite_stores: list[str] = Field(default_factory=list)
    preferred_categories: list[Category] = Field(default_factory=list)
    budget_range: BudgetRange = Field(default_factory=BudgetRange)
    order_frequency: Literal["daily", "weekly", "monthly", "rarely"] = "weekly"
    preferred_order_times: list[str] = Field(default_factory=lambda: ["dinner"])
    dietary_restrictions: list[str] = Field(default_factory=list)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)

    @field_validator("preferred_categories", "preferred_order_times", "favorite_stores")
    @classmethod
    def _dedupe(cls, v: list[Any]) -> list[Any]:
        return list(dict.fromkeys(v))


class DealHistory(TrackerModel):
    coupon_id: str
    store_id: str
    viewed_at: datetime
    emailed_at: datetime | None = None
    estimated_savings: float = 0.0
    category: Category | None = None
    deal_score: float | None = None


class SavedDeal(TrackerModel):
    id: str
    coupon: Coupon
    store_info: StoreInfo
    saved_at: datetime
    expires_at: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None
    estimated_savings: float = 0.0


class FavoriteStore(TrackerModel):
    store_id: str
    store_info: StoreInfo | None = None
    added_at: datetime
    last_checked: datetime | None = None
    deal_count: int = 0
    average_savings: float = 0.0


class DealScore(TrackerModel):
    overall: float = Field(..., ge=0.0, le=1.0)
    value: float = Field(..., ge=0.0, le=1.0)
    popularity: float = Field(..., ge=0.0, le=1.0)
    time_relevance: float = Field(..., ge=0.0, le=1.0)
    personal_relevance: float = Field(..., ge=0.0, le=1.0)


class PersonalStats(TrackerModel):
    total_deals_viewed: int = 0
    total_deals_saved: int = 0
    total_deals_emailed: int = 0
    estimated_total_savings: float = 0.0
    favorite_category: str = "pizza"
    most_visited_store: str = ""
    average_order_value: float = 0.0
    deal_engagement_rate: float = 0.0


class DealFilterOptions(TrackerModel):
    stores: list[str] | None = None
    categories: list[Category] | None = None
    min_savings: float | None = None
    max_savings: float | None = None
    expiring_within: int | None = Field(default=None, description="Days")
    sort_by: Literal["savings", "expiration", "date_added"] | None = None
    sort_order: Literal["asc", "desc"] = "asc"


class TrackerState(TrackerModel):
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)
    deal_history: list[DealHistory] = Field(default_factory=list)
    saved_deals: list[SavedDeal] = Field(default_factory=list)
    favorite_stores: list[FavoriteStore] = Field(default_factory=list)
    # Reserved: no producer yet, carried through load/persist untouched.
    insights: list[dict[str, Any]] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.now)


class StorageEnvelope(TrackerModel):
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)
    deal_history: list[DealHistory] = Field(default_factory=list)
    saved_deals: list[SavedDeal] = Field(default_factory=list)
    favorite_stores: list[FavoriteStore] = Field(default_factory=list)
    insights: list[dict[str, Any]] = Field(default_factory=list)
    alerts: list[dict[str, Any]] = Field(default_factory=list)
    version: str
    last_synced_at: datetime | None = None


# ── Request bodies for the HTTP surface ─────────────────────────────────


class TrackViewRequest(TrackerModel):
    coupon: Coupon
    store_info: StoreInfo


class TrackEmailRequest(TrackerModel):
    coupons: list[Coupon] = Field(..., min_length=1)
    store_info: StoreInfo


class SaveDealRequest(TrackerModel):
    coupon: Coupon
    store_info: StoreInfo
    tags: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=500)


class ToggleSavedDealResponse(TrackerModel):
    saved: bool
    saved_deals: list[SavedDeal]
