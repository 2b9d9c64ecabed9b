from __future__ import annotations

import threading
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import ValidationError

from .coupons.categorize import Category
from .coupons.models import StoreInfo
from .recommendations.models import DealRecommendation, RecommendationRequest
from .storage.backends import JsonFileStorage
from .tracker.config import DEFAULT_TRACKER_CONFIG
from .tracker.models import (
    DealFilterOptions,
    DealHistory,
    FavoriteStore,
    PersonalStats,
    SavedDeal,
    SaveDealRequest,
    ToggleSavedDealResponse,
    TrackEmailRequest,
    TrackViewRequest,
    UserPreferences,
)
from .tracker.state import DealTracker

app = FastAPI(title="Deal Tracker API", version="1.0.0")

_tracker: DealTracker | None = None

# Sync handlers run on a threadpool; every tracker call holds this lock.
_tracker_lock = threading.Lock()


def get_tracker() -> DealTracker:
    """Return the process-wide tracker, loading it from disk on first call."""
    global _tracker
    with _tracker_lock:
        if _tracker is None:
            _tracker = DealTracker(JsonFileStorage(DEFAULT_TRACKER_CONFIG.data_dir))
        return _tracker


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/stats", response_model=PersonalStats)
def stats(tracker: DealTracker = Depends(get_tracker)) -> PersonalStats:
    with _tracker_lock:
        return tracker.personal_stats


# ── Preferences ──────────────────────────────────────────────────────────


@app.get("/preferences", response_model=UserPreferences)
def get_preferences(tracker: DealTracker = Depends(get_tracker)) -> UserPreferences:
    with _tracker_lock:
        return tracker.preferences


@app.put("/preferences", response_model=UserPreferences)
def replace_preferences(
    body: UserPreferences,
    tracker: DealTracker = Depends(get_tracker),
) -> UserPreferences:
    with _tracker_lock:
        return tracker.replace_preferences(body)


@app.patch("/preferences", response_model=UserPreferences)
def update_preferences(
    body: dict,
    tracker: DealTracker = Depends(get_tracker),
) -> UserPreferences:
    try:
        with _tracker_lock:
            return tracker.update_preferences(**body)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail="Invalid preference values") from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ── History ──────────────────────────────────────────────────────────────


@app.post("/history/views", response_model=DealHistory)
def track_view(
    body: TrackViewRequest,
    tracker: DealTracker = Depends(get_tracker),
) -> DealHistory:
    with _tracker_lock:
        return tracker.track_view(body.coupon, body.store_info)


@app.post("/history/emails", response_model=list[DealHistory])
def track_email(
    body: TrackEmailRequest,
    tracker: DealTracker = Depends(get_tracker),
) -> list[DealHistory]:
    with _tracker_lock:
        return tracker.track_email(body.coupons, body.store_info)


# ── Saved deals ──────────────────────────────────────────────────────────


@app.get("/saved-deals", response_model=list[SavedDeal])
def list_saved_deals(
    stores: list[str] | None = Query(default=None),
    categories: list[Category] | None = Query(default=None),
    min_savings: float | None = None,
    max_savings: float | None = None,
    expiring_within: int | None = Query(default=None, ge=0),
    sort_by: Literal["savings", "expiration", "date_added"] | None = None,
    sort_order: Literal["asc", "desc"] = "asc",
    tracker: DealTracker = Depends(get_tracker),
) -> list[SavedDeal]:
    filters = DealFilterOptions(
        stores=stores,
        categories=categories,
        min_savings=min_savings,
        max_savings=max_savings,
        expiring_within=expiring_within,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    with _tracker_lock:
        return tracker.filter_saved_deals(filters)


@app.post("/saved-deals", response_model=SavedDeal)
def save_deal(
    body: SaveDealRequest,
    tracker: DealTracker = Depends(get_tracker),
) -> SavedDeal:
    with _tracker_lock:
        return tracker.save_deal(body.coupon, body.store_info, body.tags, body.notes)


@app.post("/saved-deals/toggle", response_model=ToggleSavedDealResponse)
def toggle_saved_deal(
    body: TrackViewRequest,
    tracker: DealTracker = Depends(get_tracker),
) -> ToggleSavedDealResponse:
    with _tracker_lock:
        saved = tracker.toggle_saved_deal(body.coupon, body.store_info)
        return ToggleSavedDealResponse(saved=saved, saved_deals=tracker.saved_deals)


@app.delete("/saved-deals/{deal_id}", response_model=list[SavedDeal])
def remove_saved_deal(
    deal_id: str,
    tracker: DealTracker = Depends(get_tracker),
) -> list[SavedDeal]:
    with _tracker_lock:
        tracker.remove_saved_deal(deal_id)
        return tracker.saved_deals


@app.get("/saved-deals/expiring", response_model=list[SavedDeal])
def upcoming_expirations(
    days: int = Query(default=7, ge=0),
    tracker: DealTracker = Depends(get_tracker),
) -> list[SavedDeal]:
    with _tracker_lock:
        return tracker.upcoming_expirations(days)


# ── Favorite stores ──────────────────────────────────────────────────────


@app.get("/favorite-stores", response_model=list[FavoriteStore])
def list_favorite_stores(tracker: DealTracker = Depends(get_tracker)) -> list[FavoriteStore]:
    with _tracker_lock:
        return tracker.favorite_stores


@app.post("/favorite-stores", response_model=list[FavoriteStore])
def add_favorite_store(
    body: StoreInfo,
    tracker: DealTracker = Depends(get_tracker),
) -> list[FavoriteStore]:
    with _tracker_lock:
        tracker.add_favorite_store(body)
        return tracker.favorite_stores


@app.delete("/favorite-stores/{store_id}", response_model=list[FavoriteStore])
def remove_favorite_store(
    store_id: str,
    tracker: DealTracker = Depends(get_tracker),
) -> list[FavoriteStore]:
    with _tracker_lock:
        tracker.remove_favorite_store(store_id)
        return tracker.favorite_stores


# ── Recommendations ──────────────────────────────────────────────────────


@app.post("/recommendations", response_model=list[DealRecommendation])
def recommendations(
    body: RecommendationRequest,
    tracker: DealTracker = Depends(get_tracker),
) -> list[DealRecommendation]:
    with _tracker_lock:
        return tracker.recommend(body.coupons, body.store_info)
