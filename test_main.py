# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the Roster Service HTTP surface.
Controllers are exercised through FastAPI's TestClient with the service
graph swapped for in-memory collaborators.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from main import app
from roster.core.config import settings
from roster.core.dependencies import get_history_repo, get_notifier, get_signup_service
from roster.middleware import normalize_path

from conftest import ALICE, BOB, CAROL, CHANNEL_ID, DAVE, EVENT_KEY, RUN_ID, Harness


# ============================================
# Fixtures
# ============================================
@pytest.fixture
def h():
    return Harness(debounce=30)


@pytest.fixture
def client(h):
    app.dependency_overrides[get_signup_service] = lambda: h.service
    app.dependency_overrides[get_notifier] = lambda: h.notifier
    app.dependency_overrides[get_history_repo] = lambda: h.history
    with patch("main.get_notifier", return_value=h.notifier):
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.clear()


def claim(client, role, who, event_key=EVENT_KEY):
    return client.post(f"/api/v1/events/{event_key}/claims", json={
        "channel_id": CHANNEL_ID,
        "role": role,
        "user_id": who.user_id,
        "display_name": who.display_name,
    })


def release(client, who, role=None, event_key=EVENT_KEY):
    body = {"channel_id": CHANNEL_ID, "user_id": who.user_id, "display_name": who.display_name}
    if role:
        body["role"] = role
    return client.request("DELETE", f"/api/v1/events/{event_key}/claims", json=body)


def press(client, custom_id, who):
    return client.post("/api/v1/interactions", json={
        "custom_id": custom_id,
        "channel_id": CHANNEL_ID,
        "user_id": who.user_id,
        "display_name": who.display_name,
    })


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_returns_ok(self, client):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION
        assert "timestamp" in data
        assert set(data["history"]) == {"total", "by_type"}

    def test_readiness(self, client):
        data = client.get("/health/ready").json()
        assert data["status"] == "ready"
        assert data["ledger_configured"] is bool(settings.SHEET_ID)

    def test_metrics_exposed(self, client):
        claim(client, "tank", ALICE)
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "roster_claims_total" in response.text
        assert "roster_requests_total" in response.text


class TestRequestID:
    def test_request_id_generated(self, client):
        assert client.get("/health").headers.get("X-Request-ID")

    def test_request_id_propagated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestPathNormalisation:
    def test_ids_collapsed(self):
        assert normalize_path("/api/v1/events/1001/claims") == "/api/v1/events/{param}/claims"
        assert normalize_path("/api/v1/notifications/RUN-42") == "/api/v1/notifications/{param}"

    def test_root(self):
        assert normalize_path("/") == "/"


# ============================================
# Claims
# ============================================
class TestClaims:
    def test_claim_success(self, client):
        response = claim(client, "tank", ALICE)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "claimed"
        assert data["role"] == "tank"
        assert data["run_id"] == RUN_ID

    def test_role_taken_is_409(self, client):
        claim(client, "tank", ALICE)
        response = claim(client, "tank", BOB)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "role_taken"

    def test_auxiliary_without_primary_is_409(self, client):
        response = claim(client, "keyholder", ALICE)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ineligible_for_auxiliary"

    def test_unknown_role_is_409(self, client):
        response = claim(client, "bard", ALICE)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "unknown_role"

    def test_inactive_event_is_404(self, client):
        response = claim(client, "tank", ALICE, event_key="404")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "event_not_active"

    def test_malformed_event_is_422(self, client, h):
        h.chat.add_announcement("2002", "Activity: Halls of Valor")
        response = claim(client, "tank", ALICE, event_key="2002")
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "malformed_event"

    def test_missing_fields_rejected(self, client):
        response = client.post(f"/api/v1/events/{EVENT_KEY}/claims", json={"role": "tank"})
        assert response.status_code == 422

    def test_ledger_warning_in_payload(self, client, h):
        h.store.fail_appends = True
        data = claim(client, "tank", ALICE).json()
        assert data["warning_code"] == "ledger_sync_failed"
        assert data["warning"]


class TestReleases:
    def test_release_success(self, client):
        claim(client, "tank", ALICE)
        response = release(client, ALICE)
        assert response.status_code == 200
        assert response.json()["status"] == "released"
        assert response.json()["claims"] == {}

    def test_release_specific_role(self, client):
        claim(client, "tank", ALICE)
        claim(client, "keyholder", ALICE)
        data = release(client, ALICE, role="keyholder").json()
        assert data["role"] == "keyholder"
        assert set(data["claims"]) == {"tank"}

    def test_not_signed_up_is_409(self, client):
        response = release(client, ALICE)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "not_signed_up"


# ============================================
# Interactions
# ============================================
class TestInteractions:
    def test_button_press(self, client):
        response = press(client, f"signup_healer_{EVENT_KEY}", ALICE)
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["ephemeral"] is True

    def test_rejection_still_200(self, client):
        press(client, f"signup_tank_{EVENT_KEY}", ALICE)
        response = press(client, f"signup_tank_{EVENT_KEY}", BOB)
        assert response.status_code == 200
        assert response.json()["ok"] is False
        assert response.json()["error"] == "role_taken"

    def test_inactive_event_still_200(self, client):
        response = press(client, "undo_any_404", ALICE)
        assert response.status_code == 200
        assert response.json()["error"] == "event_not_active"


# ============================================
# Events, announcements, notifications, history
# ============================================
class TestEvents:
    def test_list_events(self, client):
        claim(client, "tank", ALICE)
        data = client.get("/api/v1/events").json()
        assert [e["event_key"] for e in data] == [EVENT_KEY]

    def test_get_event(self, client):
        claim(client, "tank", ALICE)
        data = client.get(f"/api/v1/events/{EVENT_KEY}").json()
        assert data["claims"]["tank"]["display_name"] == "Alice"
        assert data["complete"] is False

    def test_get_unloaded_event(self, client):
        assert client.get("/api/v1/events/nope").status_code == 404

    def test_announcement(self, client, h):
        response = client.post("/api/v1/announcements", json={
            "channel_id": CHANNEL_ID,
            "activity_name": "Grim Batol",
            "scheduled_time": "Tuesday after raid",
            "run_id": "RUN-77",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["run_id"] == "RUN-77"
        assert data["event_key"] == h.chat.posts[-1]["id"]

    def test_announcement_post_failure_is_502(self, client, h):
        h.chat.fail_post = True
        response = client.post("/api/v1/announcements", json={
            "channel_id": CHANNEL_ID,
            "activity_name": "Grim Batol",
            "scheduled_time": "soon",
            "run_id": "RUN-77",
        })
        assert response.status_code == 502


class TestNotifications:
    def _fill(self, client):
        claim(client, "tank", ALICE)
        claim(client, "healer", BOB)
        claim(client, "dps1", CAROL)
        claim(client, "dps2", DAVE)
        return claim(client, "keyholder", ALICE)

    def test_pending_after_full_group(self, client):
        assert self._fill(client).json()["notification_armed"] is True
        pending = client.get("/api/v1/notifications/pending").json()
        assert [p["run_id"] for p in pending] == [RUN_ID]

    def test_release_cancels_pending(self, client):
        self._fill(client)
        assert release(client, CAROL).json()["notification_cancelled"] is True
        assert client.get("/api/v1/notifications/pending").json() == []

    def test_reset_pending(self, client):
        self._fill(client)
        response = client.delete(f"/api/v1/notifications/{RUN_ID}")
        assert response.status_code == 200
        assert response.json() == {"run_id": RUN_ID, "cancelled": True, "reset": False}

    def test_reset_unknown_run(self, client):
        assert client.delete("/api/v1/notifications/RUN-0").status_code == 404


class TestHistory:
    def test_history_filters(self, client):
        claim(client, "tank", ALICE)
        release(client, ALICE)
        data = client.get("/api/v1/history", params={"run_id": RUN_ID}).json()
        assert [e["event_type"] for e in data] == ["claim", "release"]
        data = client.get("/api/v1/history", params={"event_type": "release"}).json()
        assert len(data) == 1

    def test_history_limit(self, client):
        claim(client, "tank", ALICE)
        release(client, ALICE)
        data = client.get("/api/v1/history", params={"limit": 1}).json()
        assert [e["event_type"] for e in data] == ["release"]
