"""
Compliance API tests.

Verifies:
- Creation defaults and documents handling
- Upcoming window: open items due within N days, soonest first
- Overdue is derived at read time, never stored
- High/critical items alert the owner without failing on provider errors
"""

from datetime import datetime, timedelta, timezone

import pytest

from oem_api.models import ComplianceItem, Notification


def due_in(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_item(client, headers, **overrides):
    payload = {
        "title": "GOTS certification renewal",
        "type": "certification",
        "due_date": due_in(20),
    }
    payload.update(overrides)
    resp = client.post("/api/compliance", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


# =============================================================================
# CRUD
# =============================================================================


class TestComplianceCrud:
    def test_create_defaults(self, client, user, auth_headers):
        item = create_item(client, auth_headers(user))
        assert item["priority"] == "medium"
        assert item["status"] == "pending"
        assert item["documents"] == []
        assert item["is_overdue"] is False
        assert item["user_id"] == user.id

    def test_due_date_required(self, client, user, auth_headers):
        resp = client.post(
            "/api/compliance",
            json={"title": "Audit", "type": "audit"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400
        assert "due_date" in resp.get_json()["error"]

    def test_unknown_type_rejected(self, client, user, auth_headers):
        resp = client.post(
            "/api/compliance",
            json={"title": "Audit", "type": "inspection", "due_date": due_in(3)},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400

    def test_patch_documents_null_resets_to_empty(self, client, user, auth_headers):
        headers = auth_headers(user)
        item = create_item(client, headers, documents=["gots.pdf", "oeko-tex.pdf"])
        resp = client.patch(f"/api/compliance/{item['id']}", json={"documents": None}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["documents"] == []

    def test_patch_null_priority_rejected(self, client, user, auth_headers):
        headers = auth_headers(user)
        item = create_item(client, headers)
        resp = client.patch(f"/api/compliance/{item['id']}", json={"priority": None}, headers=headers)
        assert resp.status_code == 400

    def test_other_users_item_is_404(self, client, user, other_user, auth_headers):
        item = create_item(client, auth_headers(user))
        resp = client.get(f"/api/compliance/{item['id']}", headers=auth_headers(other_user))
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Compliance item not found"

    def test_delete(self, client, user, auth_headers, db_session):
        headers = auth_headers(user)
        item = create_item(client, headers, status="completed")
        resp = client.delete(f"/api/compliance/{item['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Compliance item deleted successfully"
        assert db_session.get(ComplianceItem, item["id"]) is None

    def test_list_filters(self, client, user, auth_headers):
        headers = auth_headers(user)
        create_item(client, headers, type="audit", priority="low")
        create_item(client, headers, type="report", priority="low")
        data = client.get("/api/compliance?type=audit", headers=headers).get_json()["data"]
        assert [i["type"] for i in data["compliance"]] == ["audit"]
        assert data["pagination"]["total"] == 1


# =============================================================================
# UPCOMING / OVERDUE
# =============================================================================


class TestUpcoming:
    def test_window(self, client, user, auth_headers):
        headers = auth_headers(user)
        soon = create_item(client, headers, title="Soon", due_date=due_in(5))
        create_item(client, headers, title="Later", due_date=due_in(40))
        create_item(client, headers, title="Done", due_date=due_in(5), status="completed")
        late = create_item(client, headers, title="Late", due_date=due_in(-2))

        data = client.get("/api/compliance/upcoming", headers=headers).get_json()["data"]
        assert data["count"] == 2
        assert [i["id"] for i in data["upcoming"]] == [late["id"], soon["id"]]
        assert data["upcoming"][0]["is_overdue"] is True

    def test_custom_days(self, client, user, auth_headers):
        headers = auth_headers(user)
        create_item(client, headers, due_date=due_in(40))
        data = client.get("/api/compliance/upcoming?days=45", headers=headers).get_json()["data"]
        assert data["count"] == 1

    @pytest.mark.parametrize("days", ["-1", "abc", "99999"])
    def test_invalid_days(self, client, user, auth_headers, days):
        resp = client.get(f"/api/compliance/upcoming?days={days}", headers=auth_headers(user))
        assert resp.status_code == 400

    def test_overdue_is_not_stored(self, client, user, auth_headers, db_session):
        item = create_item(client, auth_headers(user), due_date=due_in(-1))
        assert item["is_overdue"] is True
        assert db_session.get(ComplianceItem, item["id"]).status == "pending"


class TestComplianceStats:
    def test_counts(self, client, user, auth_headers):
        headers = auth_headers(user)
        create_item(client, headers, type="audit", priority="low", due_date=due_in(-3))
        create_item(client, headers, type="audit", priority="low", status="in_progress")
        create_item(client, headers, type="report", priority="low", status="completed", due_date=due_in(-3))

        stats = client.get("/api/compliance/stats", headers=headers).get_json()["data"]
        assert stats["total"] == 3
        assert stats["pending"] == 1
        assert stats["in_progress"] == 1
        assert stats["completed"] == 1
        assert stats["overdue"] == 1
        assert stats["by_type"] == {"certification": 0, "audit": 2, "report": 1, "alert": 0}
        assert stats["by_priority"]["low"] == 3
        assert stats["this_month"] == 3


# =============================================================================
# ALERTS
# =============================================================================


class TestPriorityAlerts:
    @pytest.mark.parametrize("priority", ["high", "critical"])
    def test_alert_sent(self, client, phone_user, auth_headers, providers, db_session, priority):
        item = create_item(client, auth_headers(phone_user), priority=priority)

        assert len(providers.messages) == 1
        assert "GOTS certification renewal" in providers.messages[0]["Body"]
        logged = db_session.query(Notification).filter_by(compliance_id=item["id"]).one()
        assert logged.type == "compliance_alert"
        assert logged.message == "Compliance alert for GOTS certification renewal"

    def test_no_alert_for_low_priority(self, client, phone_user, auth_headers, providers):
        create_item(client, auth_headers(phone_user), priority="low")
        assert providers.messages == []

    def test_alert_failure_is_not_fatal(self, client, phone_user, auth_headers, providers, db_session):
        providers.messaging_down = True
        item = create_item(client, auth_headers(phone_user), priority="critical")

        assert db_session.get(ComplianceItem, item["id"]) is not None
        logged = db_session.query(Notification).filter_by(compliance_id=item["id"]).one()
        assert logged.status == "failed"
        assert logged.error
