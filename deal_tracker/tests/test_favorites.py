from __future__ import annotations

from datetime import datetime

from deal_tracker.coupons.models import StoreInfo
from deal_tracker.storage.backends import MemoryStorage
from deal_tracker.tracker.state import DealTracker

NOW = datetime(2024, 5, 1, 18, 0)


def _tracker() -> DealTracker:
    return DealTracker(MemoryStorage(), clock=lambda: NOW)


def test_add_favorite_store():
    tracker = _tracker()
    store = StoreInfo(StoreID=4321, Phone="555-0100")

    assert tracker.add_favorite_store(store) is True
    favorite = tracker.favorite_stores[0]
    assert favorite.store_id == "4321"
    assert favorite.store_info == store
    assert favorite.added_at == NOW
    assert favorite.last_checked == NOW
    assert favorite.deal_count == 0
    assert favorite.average_savings == 0


def test_adding_same_store_twice_keeps_one():
    tracker = _tracker()
    tracker.add_favorite_store(StoreInfo(StoreID=4321))

    assert tracker.add_favorite_store(StoreInfo(StoreID="4321")) is False
    assert len(tracker.favorite_stores) == 1


def test_favorites_capped_at_twenty_newest_first():
    tracker = _tracker()
    for i in range(25):
        tracker.add_favorite_store(StoreInfo(StoreID=1000 + i))

    ids = [fav.store_id for fav in tracker.favorite_stores]
    assert len(ids) == 20
    assert ids[0] == "1024"
    assert ids[-1] == "1005"


def test_remove_favorite_store():
    tracker = _tracker()
    tracker.add_favorite_store(StoreInfo(StoreID=1))
    tracker.add_favorite_store(StoreInfo(StoreID=2))

    assert tracker.remove_favorite_store("1") is True
    assert [fav.store_id for fav in tracker.favorite_stores] == ["2"]
    assert not tracker.is_favorite_store("1")
    assert tracker.is_favorite_store("2")


def test_remove_unknown_favorite_is_noop():
    tracker = _tracker()
    tracker.add_favorite_store(StoreInfo(StoreID=1))

    assert tracker.remove_favorite_store("99") is False
    assert len(tracker.favorite_stores) == 1


def test_removed_store_can_be_added_again():
    tracker = _tracker()
    tracker.add_favorite_store(StoreInfo(StoreID=1))
    tracker.remove_favorite_store("1")

    assert tracker.add_favorite_store(StoreInfo(StoreID=1)) is True
