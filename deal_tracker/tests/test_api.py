from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from deal_tracker.app import app, get_tracker
from deal_tracker.storage.backends import MemoryStorage
from deal_tracker.tracker.state import DealTracker

NOW = datetime(2024, 5, 1, 18, 0)
STORE = {"StoreID": "4321", "Phone": "555-0100"}
PIZZA = {"ID": "1", "Name": "Large Pizza", "Price": "20"}
WINGS = {"ID": "2", "Name": "8-Piece Wings"}


@pytest.fixture
def client():
    tracker = DealTracker(MemoryStorage(), clock=lambda: NOW)
    app.dependency_overrides[get_tracker] = lambda: tracker
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_tracker_builds_one_instance():
    with patch("deal_tracker.app._tracker", None), \
            patch("deal_tracker.app.JsonFileStorage", return_value=MemoryStorage()) as storage_cls:
        first = get_tracker()
        second = get_tracker()

    assert first is second
    storage_cls.assert_called_once()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_save_and_list_deals(client):
    resp = client.post(
        "/saved-deals",
        json={"coupon": PIZZA, "storeInfo": STORE, "tags": ["dinner"], "notes": "friday"},
    )
    assert resp.status_code == 200
    saved = resp.json()
    assert saved["id"].startswith("1-4321-")
    assert saved["estimatedSavings"] == 20
    assert saved["coupon"]["ID"] == "1"
    assert saved["storeInfo"]["StoreID"] == "4321"

    listed = client.get("/saved-deals").json()
    assert [d["id"] for d in listed] == [saved["id"]]


def test_list_deals_filters_by_category(client):
    client.post("/saved-deals", json={"coupon": PIZZA, "storeInfo": STORE})
    client.post("/saved-deals", json={"coupon": WINGS, "storeInfo": STORE})

    resp = client.get("/saved-deals", params={"categories": ["wings"]})

    assert resp.status_code == 200
    assert [d["coupon"]["ID"] for d in resp.json()] == ["2"]


def test_remove_saved_deal(client):
    saved = client.post("/saved-deals", json={"coupon": PIZZA, "storeInfo": STORE}).json()

    resp = client.delete(f"/saved-deals/{saved['id']}")

    assert resp.status_code == 200
    assert resp.json() == []


def test_toggle_saved_deal(client):
    first = client.post("/saved-deals/toggle", json={"coupon": WINGS, "storeInfo": STORE}).json()
    assert first["saved"] is True
    assert first["savedDeals"][0]["tags"] == ["wings"]

    second = client.post("/saved-deals/toggle", json={"coupon": WINGS, "storeInfo": STORE}).json()
    assert second["saved"] is False
    assert second["savedDeals"] == []


def test_favorite_store_added_once(client):
    client.post("/favorite-stores", json=STORE)
    resp = client.post("/favorite-stores", json=STORE)

    assert resp.status_code == 200
    favorites = resp.json()
    assert len(favorites) == 1
    assert favorites[0]["storeId"] == "4321"
    assert favorites[0]["dealCount"] == 0

    assert client.delete("/favorite-stores/4321").json() == []


def test_track_view_feeds_stats(client):
    resp = client.post("/history/views", json={"coupon": PIZZA, "storeInfo": STORE})
    assert resp.status_code == 200
    assert resp.json()["category"] == "pizza"

    stats = client.get("/stats").json()
    assert stats["totalDealsViewed"] == 1
    assert stats["estimatedTotalSavings"] == 20
    assert stats["mostVisitedStore"] == "4321"


def test_track_email_requires_coupons(client):
    resp = client.post("/history/emails", json={"coupons": [], "storeInfo": STORE})
    assert resp.status_code == 422


def test_recommendations_ranked(client):
    resp = client.post("/recommendations", json={"coupons": [WINGS, PIZZA], "storeInfo": STORE})

    assert resp.status_code == 200
    body = resp.json()
    assert [r["coupon"]["ID"] for r in body] == ["1", "2"]
    assert body[0]["score"]["overall"] == pytest.approx(0.82)
    assert body[0]["category"] == "pizza"
    assert "time_relevant" in [reason["type"] for reason in body[0]["reasons"]]


def test_patch_preferences(client):
    resp = client.patch("/preferences", json={"preferredCategories": ["wings"]})

    assert resp.status_code == 200
    assert resp.json()["preferredCategories"] == ["wings"]
    assert client.get("/preferences").json()["preferredCategories"] == ["wings"]


def test_patch_preferences_rejects_inverted_budget(client):
    resp = client.patch("/preferences", json={"budgetRange": {"min": 50, "max": 10}})

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Invalid preference values"


def test_patch_preferences_rejects_unknown_keys(client):
    resp = client.patch("/preferences", json={"preferedCategories": ["wings"]})

    assert resp.status_code == 422
    assert "preferedCategories" in resp.json()["detail"]
    assert client.get("/preferences").json()["preferredCategories"] == []


def test_concurrent_saves_are_all_kept():
    def slow_clock() -> datetime:
        time.sleep(0.002)
        return NOW

    tracker = DealTracker(MemoryStorage(), clock=slow_clock)
    app.dependency_overrides[get_tracker] = lambda: tracker
    client = TestClient(app)

    def save_batch(worker: int) -> None:
        for i in range(10):
            coupon = {"ID": f"{worker}-{i}", "Name": "Large Pizza"}
            resp = client.post("/saved-deals", json={"coupon": coupon, "storeInfo": STORE})
            assert resp.status_code == 200

    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(save_batch, range(8)))
    finally:
        app.dependency_overrides.clear()

    saved = tracker.saved_deals
    assert len(saved) == 80
    assert len({deal.id for deal in saved}) == 80
