"""Tests for the HTTP query API."""

import threading
from datetime import date

import pytest
from fastapi.testclient import TestClient

from focus_tracker.ledger import ActivityLedger
from focus_tracker.webapp import HistoryLoader, create_app


@pytest.fixture
def ledger(data_dir):
    ledger = ActivityLedger.from_data_dir(data_dir)
    ledger.load_history(date(2024, 1, 5), date(2024, 1, 6))
    return ledger


@pytest.fixture
def client(ledger):
    return TestClient(create_app(ledger=ledger, load_history=False))


def by_groupers(payload):
    return {tuple(item["groupers"].values()): item["duration"] for item in payload}


class TestStatus:
    def test_status_reports_loaded_days(self, client, data_dir):
        response = client.get("/api/status")
        assert response.status_code == 200
        body = response.json()
        assert body["loading"] is False
        assert body["data_dir"] == str(data_dir)
        assert body["days_loaded"] == 2
        assert body["records"] == 3
        assert body["day_errors"] == {}
        assert body["gap_seconds"] == 15
        assert body["idle_grace_seconds"] == 120
        assert body["url_truncation"] == {"github.com": ["*/*"]}


class TestAggregations:
    def test_group_by_category(self, client):
        response = client.get("/api/aggregations", params={"grouper": "category"})
        assert response.status_code == 200
        assert by_groupers(response.json()) == {("Work",): 20, ("Entertainment",): 15}

    def test_multiple_groupers_and_filters(self, client):
        response = client.get(
            "/api/aggregations",
            params=[
                ("grouper", "date"),
                ("grouper", "exe_path"),
                ("start_date", "20240105"),
                ("end_date", "20240105"),
                ("colour", "ignored"),
            ],
        )
        assert response.status_code == 200
        payload = response.json()
        assert by_groupers(payload) == {
            (20240105, "code.exe"): 10,
            (20240105, "chrome.exe"): 10,
        }
        assert list(payload[0]["groupers"]) == ["date", "exe_path"]

    def test_no_groupers_totals_everything(self, client):
        response = client.get("/api/aggregations")
        assert response.json() == [{"groupers": {}, "duration": 35}]

    def test_unknown_grouper_is_bad_request(self, client):
        response = client.get("/api/aggregations", params={"grouper": "colour"})
        assert response.status_code == 400

    def test_bad_date_filter_is_bad_request(self, client):
        response = client.get("/api/aggregations", params={"start_date": "soon"})
        assert response.status_code == 400


class TestCategories:
    def test_list(self, client):
        body = client.get("/api/categories").json()
        assert body["order"] == ["Work", "Entertainment"]
        assert body["categories"]["Work"] == {"sites": ["github.com"], "apps": ["code.exe"]}

    def test_create(self, client):
        response = client.post("/api/categories", json={"name": "Games"})
        assert response.status_code == 201
        assert response.json()["order"] == ["Work", "Entertainment", "Games"]

    def test_create_duplicate_conflicts(self, client):
        response = client.post("/api/categories", json={"name": "Work"})
        assert response.status_code == 409

    def test_create_blank_name_is_bad_request(self, client):
        response = client.post("/api/categories", json={"name": "   "})
        assert response.status_code == 400

    def test_create_rejects_extra_fields(self, client):
        response = client.post("/api/categories", json={"name": "Games", "color": "red"})
        assert response.status_code == 422

    def test_reorder(self, client):
        response = client.put("/api/categories/order", json={"order": ["Entertainment", "Work"]})
        assert response.status_code == 200
        assert response.json()["order"] == ["Entertainment", "Work"]

    def test_reorder_wrong_length(self, client):
        response = client.put("/api/categories/order", json={"order": ["Work"]})
        assert response.status_code == 400

    def test_reorder_unknown_category(self, client):
        response = client.put("/api/categories/order", json={"order": ["Work", "Games"]})
        assert response.status_code == 404

    def test_set_item_category_recategorizes(self, client):
        response = client.put(
            "/api/categories/items",
            json={"identifier": "youtube.com", "category": "Work", "is_app": False},
        )
        assert response.status_code == 200
        assert "youtube.com" in response.json()["categories"]["Work"]["sites"]
        totals = client.get("/api/aggregations", params={"grouper": "category"}).json()
        assert by_groupers(totals) == {("Work",): 35}

    def test_set_item_category_unknown(self, client):
        response = client.put(
            "/api/categories/items",
            json={"identifier": "youtube.com", "category": "Nope"},
        )
        assert response.status_code == 404

    def test_uncategorize(self, client):
        response = client.put(
            "/api/categories/items", json={"identifier": "code.exe", "is_app": True}
        )
        assert response.status_code == 200
        assert response.json()["categories"]["Work"]["apps"] == []


class StubbornLedger:
    """Ledger whose history load ignores the stop request until released."""

    def __init__(self):
        self.calls = 0
        self.release = threading.Event()

    def load_history(self, stop_event=None):
        self.calls += 1
        self.release.wait(timeout=5)


class TestHistoryLoader:
    def test_stop_keeps_tracking_a_thread_that_outlives_the_wait(self):
        ledger = StubbornLedger()
        loader = HistoryLoader(ledger, join_timeout=0.2)
        assert loader.start() is True

        loader.stop()
        assert loader.is_running()
        assert loader.start() is False
        assert ledger.calls == 1

        ledger.release.set()
        loader.stop()
        assert not loader.is_running()
        assert loader.start() is True
        loader.stop()
        assert ledger.calls == 2

    def test_reload_refused_while_previous_load_is_alive(self, ledger):
        app = create_app(ledger=ledger, load_history=False)
        stubborn = StubbornLedger()
        app.state.history_loader = HistoryLoader(stubborn, join_timeout=0.05)
        app.state.history_loader.start()
        client = TestClient(app)
        try:
            response = client.post("/api/reload")
            assert response.status_code == 409
        finally:
            stubborn.release.set()
            app.state.history_loader.stop()
        assert stubborn.calls == 1
