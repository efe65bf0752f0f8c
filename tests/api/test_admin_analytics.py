"""
Tests for the admin dashboard API.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.deps import get_context
from src.api.routes import admin_analytics
from src.core.entities import ArticleMeta, GuestReader, RegisteredReader


@pytest.fixture
def app(test_ctx) -> FastAPI:
    """Test FastAPI app with analytics routes."""
    app = FastAPI()
    app.include_router(admin_analytics.router, prefix="/api/admin/analytics")
    app.dependency_overrides[get_context] = lambda: test_ctx
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_empty_dashboard(client: TestClient) -> None:
    response = client.get("/api/admin/analytics/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["window_days"] == 30
    assert data["timezone"] == "UTC"
    assert data["views"]["total_views"] == 0
    assert data["views"]["monthly_view_growth"] is None
    assert len(data["views_by_day"]) == 30
    assert data["reading_time"]["has_data"] is False
    assert data["reading_time"]["low_confidence"] is True
    assert data["completion_rate"]["value"] is None
    assert data["share_metrics"]["value"]["share_rate"] is None


def test_dashboard_with_data(client: TestClient, test_ctx) -> None:
    test_ctx.articles.save(ArticleMeta(id="a1", title="Budget night", section="politics"))
    tracking = test_ctx.tracking
    tracking.record_article_view("a1", GuestReader("v1"), session_token="t1")
    tracking.record_article_view("a1", RegisteredReader("u1"), session_token="t2")
    tracking.record_share_event("a1", "email", GuestReader("v1"), session_token="t1")

    response = client.get("/api/admin/analytics/dashboard", params={"window_days": 7})

    assert response.status_code == 200
    data = response.json()
    assert data["window_days"] == 7
    assert data["top_articles"] == [{"id": "a1", "title": "Budget night", "views": 2}]
    assert data["views_by_section"] == [{"section": "politics", "views": 2}]
    assert data["audience"]["unique_readers"] == 2
    distribution = data["reader_distribution"]
    assert distribution["value"]["guest"] == 1
    assert distribution["value"]["registered"] == 1
    assert distribution["low_confidence"] is True
    assert distribution["has_data"] is True
    channels = data["share_metrics"]["value"]["channels"]
    assert channels == [{"channel": "email", "count": 1, "guest": 1, "registered": 0}]


@pytest.mark.parametrize("window_days", [0, 366])
def test_invalid_window(client: TestClient, window_days: int) -> None:
    response = client.get(
        "/api/admin/analytics/dashboard", params={"window_days": window_days}
    )

    assert response.status_code == 400
    assert response.json()["detail"]["errors"][0]["code"] == "INVALID_WINDOW"
