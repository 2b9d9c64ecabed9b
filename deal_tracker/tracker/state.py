from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

from ..analytics.stats import compute_personal_stats
from ..coupons.categorize import categorize
from ..coupons.models import Coupon, StoreInfo
from ..recommendations.models import DealRecommendation
from ..recommendations.ranking import get_recommendations
from ..recommendations.scoring import score_deal
from ..storage.backends import StoragePort
from .config import DEFAULT_TRACKER_CONFIG, TrackerConfig
from .filters import filter_saved_deals
from .models import (
    DealFilterOptions,
    DealHistory,
    FavoriteStore,
    PersonalStats,
    SavedDeal,
    StorageEnvelope,
    TrackerState,
    UserPreferences,
)

logger = logging.getLogger(__name__)

SAVED_FROM_BROWSER_NOTE = "Saved from coupon browser"


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def default_state(now: datetime | None = None) -> TrackerState:
    return TrackerState(last_updated=now or datetime.now())


class DealTracker:
    """
    Single source of truth for a user's deal tracking data.

    Every mutation builds the next state, swaps it in, and writes the whole
    envelope through the storage port. A failed write is logged and the
    in-memory state stays authoritative. Callers must serialize mutations.
    """

    def __init__(
        self,
        storage: StoragePort,
        config: TrackerConfig = DEFAULT_TRACKER_CONFIG,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._storage = storage
        self._config = config
        self._clock = clock
        self._revision = 0
        self._stats_cache: tuple[int, PersonalStats] | None = None
        self._state = self.load()

    @property
    def state(self) -> TrackerState:
        """A deep copy; the tracker only changes through its own methods."""
        return self._state.model_copy(deep=True)

    @property
    def revision(self) -> int:
        """Incremented on every committed mutation."""
        return self._revision

    @property
    def preferences(self) -> UserPreferences:
        return self._state.user_preferences.model_copy(deep=True)

    @property
    def deal_history(self) -> list[DealHistory]:
        return list(self._state.deal_history)

    @property
    def saved_deals(self) -> list[SavedDeal]:
        return list(self._state.saved_deals)

    @property
    def favorite_stores(self) -> list[FavoriteStore]:
        return list(self._state.favorite_stores)

    # ── Persistence ──────────────────────────────────────────────────────

    def load(self) -> TrackerState:
        """Read the stored envelope; any failure falls back to the default state."""
        try:
            raw = self._storage.get(self._config.storage_key)
            if raw is None:
                return default_state(self._clock())

            data = json.loads(raw)
            version = data.get("version") if isinstance(data, dict) else None
            if version != self._config.storage_version:
                logger.warning(
                    "Deal tracker data version mismatch (%r != %r), using defaults",
                    version,
                    self._config.storage_version,
                )
                return default_state(self._clock())

            envelope = StorageEnvelope.model_validate(data)
        except Exception:
            logger.warning("Failed to load deal tracker data, using defaults", exc_info=True)
            return default_state(self._clock())

        # Stored data may predate the caps or hold duplicate favorites
        favorites: list[FavoriteStore] = []
        seen_stores: set[str] = set()
        for fav in envelope.favorite_stores:
            if fav.store_id not in seen_stores:
                seen_stores.add(fav.store_id)
                favorites.append(fav)

        return TrackerState(
            user_preferences=envelope.user_preferences,
            deal_history=envelope.deal_history[: self._config.max_history_entries],
            saved_deals=envelope.saved_deals[: self._config.max_saved_deals],
            favorite_stores=favorites[: self._config.max_favorite_stores],
            insights=envelope.insights,
            last_updated=self._clock(),
        )

    def persist(self, state: TrackerState) -> None:
        try:
            envelope = StorageEnvelope(
                user_preferences=state.user_preferences,
                deal_history=state.deal_history,
                saved_deals=state.saved_deals,
                favorite_stores=state.favorite_stores,
                insights=state.insights,
                alerts=[],
                version=self._config.storage_version,
                last_synced_at=self._clock(),
            )
            self._storage.set(self._config.storage_key, envelope.model_dump_json(by_alias=True))
        except Exception:
            logger.error("Failed to persist deal tracker data", exc_info=True)

    def _commit(self, **changes: Any) -> TrackerState:
        next_state = self._state.model_copy(update={**changes, "last_updated": self._clock()})
        self._state = next_state
        self._revision += 1
        self.persist(next_state)
        return next_state

    def reset(self) -> None:
        """Drop all tracked data and persist the default state."""
        fresh = default_state(self._clock())
        self._commit(
            user_preferences=fresh.user_preferences,
            deal_history=[],
            saved_deals=[],
            favorite_stores=[],
            insights=[],
        )

    # ── Preferences ──────────────────────────────────────────────────────

    def update_preferences(self, **changes: Any) -> UserPreferences:
        """Shallow-merge ``changes`` (snake_case or camelCase keys) into the preferences.

        Unknown keys raise ``ValueError`` before anything is committed.
        """
        by_alias = {field.alias: name for name, field in UserPreferences.model_fields.items() if field.alias}
        changes = {by_alias.get(key, key): value for key, value in changes.items()}
        unknown = sorted(set(changes) - set(UserPreferences.model_fields))
        if unknown:
            raise ValueError(f"Unknown preference fields: {', '.join(unknown)}")
        merged = {**self._state.user_preferences.model_dump(), **changes}
        preferences = UserPreferences.model_validate(merged)
        self._commit(user_preferences=preferences)
        return self.preferences

    def replace_preferences(self, preferences: UserPreferences) -> UserPreferences:
        self._commit(user_preferences=preferences)
        return self.preferences

    # ── History ──────────────────────────────────────────────────────────

    def _history_entry(self, coupon: Coupon, store: StoreInfo, now: datetime) -> DealHistory:
        category = categorize(coupon)
        return DealHistory(
            coupon_id=coupon.id or f"{coupon.name}-{_epoch_ms(now)}",
            store_id=store.store_id,
            viewed_at=now,
            estimated_savings=coupon.estimated_savings,
            category=category,
            deal_score=score_deal(coupon, self._state.user_preferences, now, category=category).overall,
        )

    def track_view(self, coupon: Coupon, store: StoreInfo) -> DealHistory:
        entry = self._history_entry(coupon, store, self._clock())
        history = [entry, *self.deal_history][: self._config.max_history_entries]
        self._commit(deal_history=history)
        return entry

    def track_email(self, coupons: Sequence[Coupon], store: StoreInfo) -> list[DealHistory]:
        """Mark coupons as emailed.

        The newest not-yet-emailed view of each coupon at this store is
        stamped; coupons without such a view get a new, already-stamped entry.
        """
        now = self._clock()
        history = list(self.deal_history)
        stamped: list[DealHistory] = []
        new_entries: list[DealHistory] = []

        for coupon in coupons:
            index = next(
                (
                    i for i, h in enumerate(history)
                    if coupon.id
                    and h.coupon_id == coupon.id
                    and h.store_id == store.store_id
                    and h.emailed_at is None
                ),
                None,
            )
            if index is None:
                entry = self._history_entry(coupon, store, now).model_copy(update={"emailed_at": now})
                new_entries.append(entry)
            else:
                entry = history[index].model_copy(update={"emailed_at": now})
                history[index] = entry
            stamped.append(entry)

        history = [*reversed(new_entries), *history][: self._config.max_history_entries]
        self._commit(deal_history=history)
        return stamped

    def clear_old_history(self, days: int) -> int:
        """Drop view entries older than ``days``; returns how many were removed."""
        cutoff = self._clock() - timedelta(days=days)
        kept = [h for h in self.deal_history if h.viewed_at >= cutoff]
        removed = len(self.deal_history) - len(kept)
        self._commit(deal_history=kept)
        return removed

    # ── Saved deals ──────────────────────────────────────────────────────

    def save_deal(
        self,
        coupon: Coupon,
        store: StoreInfo,
        tags: Sequence[str] | None = None,
        notes: str | None = None,
    ) -> SavedDeal:
        now = self._clock()
        base_id = f"{coupon.id or coupon.name}-{store.store_id}-{_epoch_ms(now)}"
        existing = {deal.id for deal in self.saved_deals}
        deal_id, suffix = base_id, 1
        while deal_id in existing:
            deal_id = f"{base_id}-{suffix}"
            suffix += 1

        deal = SavedDeal(
            id=deal_id,
            coupon=coupon,
            store_info=store,
            saved_at=now,
            expires_at=coupon.expires_at,
            tags=list(tags or []),
            notes=notes,
            estimated_savings=coupon.estimated_savings,
        )
        saved = [deal, *self.saved_deals][: self._config.max_saved_deals]
        self._commit(saved_deals=saved)
        return deal

    def remove_saved_deal(self, deal_id: str) -> bool:
        """Remove a saved deal by id; unknown ids leave the collection unchanged."""
        saved = [deal for deal in self.saved_deals if deal.id != deal_id]
        removed = len(saved) != len(self.saved_deals)
        self._commit(saved_deals=saved)
        return removed

    def find_saved_deal(self, coupon: Coupon, store: StoreInfo) -> SavedDeal | None:
        """A coupon is saved when its id matches, or its name matches at the same store."""
        for deal in self.saved_deals:
            if coupon.id and deal.coupon.id == coupon.id:
                return deal
            if deal.coupon.name == coupon.name and deal.store_info.store_id == store.store_id:
                return deal
        return None

    def is_deal_saved(self, coupon: Coupon, store: StoreInfo) -> bool:
        return self.find_saved_deal(coupon, store) is not None

    def toggle_saved_deal(self, coupon: Coupon, store: StoreInfo) -> bool:
        """Save the coupon, or remove it when already saved. Returns True if it is now saved."""
        existing = self.find_saved_deal(coupon, store)
        if existing is not None:
            self.remove_saved_deal(existing.id)
            return False
        self.save_deal(coupon, store, tags=[categorize(coupon).value], notes=SAVED_FROM_BROWSER_NOTE)
        return True

    def filter_saved_deals(self, filters: DealFilterOptions | None = None, **options: Any) -> list[SavedDeal]:
        if filters is None:
            filters = DealFilterOptions.model_validate(options)
        return filter_saved_deals(self.saved_deals, filters, self._clock())

    def upcoming_expirations(self, days: int = 7) -> list[SavedDeal]:
        """Saved deals that expire within ``days``, soonest first."""
        now = self._clock()
        horizon = now + timedelta(days=days)
        upcoming = [
            deal for deal in self.saved_deals
            if deal.expires_at is not None and now < deal.expires_at <= horizon
        ]
        return sorted(upcoming, key=lambda deal: deal.expires_at)

    # ── Favorite stores ──────────────────────────────────────────────────

    def is_favorite_store(self, store_id: str) -> bool:
        return any(fav.store_id == str(store_id) for fav in self.favorite_stores)

    def add_favorite_store(self, store: StoreInfo) -> bool:
        """Add a store to favorites. Returns False (and changes nothing) if already present."""
        if self.is_favorite_store(store.store_id):
            return False
        now = self._clock()
        favorite = FavoriteStore(
            store_id=store.store_id,
            store_info=store,
            added_at=now,
            last_checked=now,
            deal_count=0,
            average_savings=0.0,
        )
        favorites = [favorite, *self.favorite_stores][: self._config.max_favorite_stores]
        self._commit(favorite_stores=favorites)
        return True

    def remove_favorite_store(self, store_id: str) -> bool:
        favorites = [fav for fav in self.favorite_stores if fav.store_id != str(store_id)]
        removed = len(favorites) != len(self.favorite_stores)
        self._commit(favorite_stores=favorites)
        return removed

    # ── Derived views ────────────────────────────────────────────────────

    def recommend(self, coupons: Sequence[Coupon], store: StoreInfo) -> list[DealRecommendation]:
        return get_recommendations(
            coupons,
            store,
            self._state.user_preferences,
            self.favorite_stores,
            now=self._clock(),
            limit=self._config.recommendation_limit,
            min_score=self._config.min_recommendation_score,
        )

    @property
    def personal_stats(self) -> PersonalStats:
        """Aggregate statistics, recomputed only after the state changes."""
        if self._stats_cache is None or self._stats_cache[0] != self._revision:
            stats = compute_personal_stats(self.deal_history, self.saved_deals)
            self._stats_cache = (self._revision, stats)
        return self._stats_cache[1]
