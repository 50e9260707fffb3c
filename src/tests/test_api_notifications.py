"""Tests for the notifications API: sending, scoping and read state."""
import pytest

from notifications.models import Notification
from notifications.services import create_notification


def _titles(resp):
    return {row["title"] for row in resp.json()["data"]}


@pytest.fixture
def notify(db):
    def _notify(actor, to, title="Heads up", **extra):
        return create_notification({"title": title, "message": "Details inside", "to": to, **extra}, actor=actor)

    return _notify


@pytest.mark.django_db
class TestSendNotification:
    def test_manager_broadcasts(self, manager_client):
        resp = manager_client.post(
            "/api/notifications",
            {"title": "Promo", "message": "Double commission today", "type": "success", "to": ["ALL"]},
            format="json",
        )

        assert resp.status_code == 201
        body = resp.json()
        data = body["data"]
        assert body["notification"] == data
        assert data["to"] == ["ALL"]
        assert data["type"] == "success"
        assert data["created_by_name"] == "Maya Manager"
        assert data["read"] is False
        assert data["timestamp"]

    def test_team_leader_notifies_own_team(self, team_leader_client, salesman_user):
        resp = team_leader_client.post(
            "/api/notifications",
            {"message": "Call your leads", "to": [str(salesman_user.pk)], "priority": "high"},
            format="json",
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["to"] == [str(salesman_user.pk)]

    def test_team_leader_cannot_notify_other_team(self, team_leader_client, other_salesman):
        resp = team_leader_client.post(
            "/api/notifications",
            {"message": "Hello", "to": [str(other_salesman.pk)]},
            format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
        assert not Notification.objects.exists()

    def test_salesman_cannot_send(self, salesman_client):
        resp = salesman_client.post("/api/notifications", {"message": "Hi", "to": ["ALL"]}, format="json")

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    def test_missing_recipients_is_validation_error(self, manager_client):
        resp = manager_client.post("/api/notifications", {"message": "Hi", "to": []}, format="json")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestNotificationList:
    def test_salesman_sees_addressed_only(
        self, salesman_client, manager_user, salesman_user, other_salesman, notify,
    ):
        notify(manager_user, ["ALL"], title="Everyone")
        notify(manager_user, [str(salesman_user.pk)], title="Just Sam")
        notify(manager_user, [str(other_salesman.pk)], title="Just Bea")

        resp = salesman_client.get("/api/notifications")

        assert resp.status_code == 200
        assert _titles(resp) == {"Everyone", "Just Sam"}
        assert resp.json()["notifications"] == resp.json()["data"]

    def test_cannot_read_foreign_notification(self, salesman_client, manager_user, other_salesman, notify):
        notification = notify(manager_user, [str(other_salesman.pk)])

        resp = salesman_client.post(f"/api/notifications/{notification.pk}/read")

        assert resp.status_code == 404

    def test_mark_read_and_unread_filter(self, salesman_client, manager_user, notify):
        first = notify(manager_user, ["ALL"], title="First")
        notify(manager_user, ["ALL"], title="Second")

        resp = salesman_client.post(f"/api/notifications/{first.pk}/read")

        assert resp.status_code == 200
        assert resp.json()["data"]["read"] is True
        assert _titles(salesman_client.get("/api/notifications", {"unread": "true"})) == {"Second"}
        rows = salesman_client.get("/api/notifications").json()["data"]
        assert {row["title"]: row["read"] for row in rows} == {"First": True, "Second": False}

    def test_read_all_and_unread_count(self, salesman_client, other_salesman_client, manager_user, notify):
        notify(manager_user, ["ALL"])
        notify(manager_user, ["ALL"], priority="high")

        assert salesman_client.get("/api/notifications/unread-count").json()["data"] == {"unread": 2}

        resp = salesman_client.post("/api/notifications/read-all")

        assert resp.status_code == 200
        assert resp.json()["data"] == {"updated": 2}
        assert salesman_client.get("/api/notifications/unread-count").json()["data"] == {"unread": 0}
        assert other_salesman_client.get("/api/notifications/unread-count").json()["data"] == {"unread": 2}

    def test_priority_filter(self, manager_client, manager_user, notify):
        notify(manager_user, ["ALL"], title="Urgent", priority="high")
        notify(manager_user, ["ALL"], title="Routine", priority="low")

        assert _titles(manager_client.get("/api/notifications", {"priority": "high"})) == {"Urgent"}
