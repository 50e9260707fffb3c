"""Tests for the callbacks API: scoping, status transitions, conversion and stats."""
from datetime import date

import pytest

from callbacks.models import Callback
from deals.models import Deal


def _names(resp):
    return {row["customer_name"] for row in resp.json()["data"]}


@pytest.mark.django_db
class TestCallbackScoping:
    def test_salesman_sees_own_callbacks(self, salesman_client, salesman_user, other_salesman, make_callback):
        make_callback(salesman_user, customer_name="Mine")
        make_callback(other_salesman, customer_name="Theirs")

        resp = salesman_client.get("/api/callbacks")

        assert resp.status_code == 200
        assert _names(resp) == {"Mine"}
        assert resp.json()["callbacks"] == resp.json()["data"]

    def test_team_leader_sees_team_callbacks(
        self, team_leader_client, salesman_user, other_salesman, make_callback,
    ):
        make_callback(salesman_user, customer_name="Alpha lead")
        make_callback(other_salesman, customer_name="Beta lead")

        assert _names(team_leader_client.get("/api/callbacks")) == {"Alpha lead"}

    def test_customer_service_sees_own_only(
        self, customer_service_client, customer_service_user, salesman_user, make_callback,
    ):
        make_callback(customer_service_user, customer_name="Support call")
        make_callback(salesman_user, customer_name="Sales call")

        assert _names(customer_service_client.get("/api/callbacks")) == {"Support call"}

    def test_status_and_priority_filters(self, manager_client, salesman_user, make_callback):
        make_callback(salesman_user, customer_name="Urgent", priority=Callback.Priority.HIGH)
        make_callback(salesman_user, customer_name="Later", status=Callback.Status.CONTACTED)

        assert _names(manager_client.get("/api/callbacks", {"priority": "high"})) == {"Urgent"}
        assert _names(manager_client.get("/api/callbacks", {"status": "contacted"})) == {"Later"}


@pytest.mark.django_db
class TestCallbackWrites:
    def test_create_stamps_creator_and_team(self, salesman_client, salesman_user):
        resp = salesman_client.post(
            "/api/callbacks",
            {"customerName": "Ann Lee", "phoneNumber": "+15550101", "priority": "high"},
            format="json",
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert resp.json()["callback"] == data
        assert data["created_by_id"] == str(salesman_user.pk)
        assert data["created_by_name"] == "Sam Seller"
        assert data["sales_team"] == "Alpha"
        assert data["status"] == "pending"
        assert data["first_call_date"] == date.today().isoformat()

    def test_missing_phone_is_validation_error(self, salesman_client):
        resp = salesman_client.post("/api/callbacks", {"customerName": "Ann"}, format="json")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_allowed_transition(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user)

        resp = salesman_client.patch(f"/api/callbacks/{callback.pk}", {"status": "contacted"}, format="json")

        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "contacted"

    def test_illegal_transition_is_rejected(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user, status=Callback.Status.CANCELLED)

        resp = salesman_client.patch(f"/api/callbacks/{callback.pk}", {"status": "pending"}, format="json")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
        callback.refresh_from_db()
        assert callback.status == Callback.Status.CANCELLED

    def test_marking_converted_completes_callback(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user)

        resp = salesman_client.patch(
            f"/api/callbacks/{callback.pk}", {"convertedToDeal": True}, format="json",
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["converted_to_deal"] is True
        assert data["status"] == "completed"
        assert data["converted_at"]

    def test_completed_callback_cannot_be_flagged_converted(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user, status=Callback.Status.COMPLETED)

        resp = salesman_client.put(
            f"/api/callbacks/{callback.pk}", {"converted_to_deal": True}, format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
        callback.refresh_from_db()
        assert callback.converted_to_deal is False

    def test_cannot_unconvert(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(
            salesman_user, converted_to_deal=True, status=Callback.Status.COMPLETED,
        )

        resp = salesman_client.patch(
            f"/api/callbacks/{callback.pk}", {"converted_to_deal": False}, format="json",
        )

        assert resp.status_code == 400
        callback.refresh_from_db()
        assert callback.converted_to_deal is True


@pytest.mark.django_db
class TestCallbackConvert:
    def test_convert_creates_deal(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user, customer_name="Ann Lee", callback_notes="Wants 2 screens")

        resp = salesman_client.post(
            f"/api/callbacks/{callback.pk}/convert",
            {"amountPaid": "250.00", "serviceTier": "Premium"},
            format="json",
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["deal"]["customer_name"] == "Ann Lee"
        assert data["deal"]["sales_agent"] == "Sam Seller"
        assert data["deal"]["notes"] == "Wants 2 screens"
        assert data["callback"]["status"] == "completed"
        assert data["callback"]["converted_to_deal"] is True
        assert data["callback"]["deal_id"] == data["deal"]["deal_id"]

        deal = Deal.objects.get()
        assert deal.converted_from_callback_id == callback.pk

    def test_convert_twice_is_rejected(self, salesman_client, salesman_user, make_callback):
        callback = make_callback(salesman_user)
        first = salesman_client.post(f"/api/callbacks/{callback.pk}/convert", {}, format="json")
        assert first.status_code == 201

        second = salesman_client.post(f"/api/callbacks/{callback.pk}/convert", {}, format="json")

        assert second.status_code == 400
        assert second.json()["error"]["code"] == "BAD_REQUEST"
        assert Deal.objects.count() == 1

    def test_cannot_convert_foreign_callback(self, salesman_client, other_salesman, make_callback):
        callback = make_callback(other_salesman)

        resp = salesman_client.post(f"/api/callbacks/{callback.pk}/convert", {}, format="json")

        assert resp.status_code == 404
        assert not Deal.objects.exists()


@pytest.mark.django_db
class TestCallbackStatsAndExport:
    def test_stats_for_scope(self, salesman_client, salesman_user, other_salesman, make_callback):
        make_callback(salesman_user)
        make_callback(salesman_user, status=Callback.Status.CONTACTED, priority=Callback.Priority.HIGH)
        make_callback(salesman_user, status=Callback.Status.COMPLETED, converted_to_deal=True)
        make_callback(other_salesman)

        resp = salesman_client.get("/api/callbacks/stats")

        assert resp.status_code == 200
        stats = resp.json()["data"]
        assert stats["total"] == 3
        assert stats["pending"] == 1
        assert stats["contacted"] == 1
        assert stats["completed"] == 1
        assert stats["converted"] == 1
        assert stats["conversionRate"] == pytest.approx(33.33, abs=0.01)
        assert stats["byPriority"]["high"] == 1
        assert stats["today"] == 3

    def test_export(self, manager_client, salesman_user, make_callback):
        make_callback(salesman_user, customer_name="Ann, Lee")

        resp = manager_client.get("/api/callbacks/export/")

        assert resp.status_code == 200
        content = resp.content.decode("utf-8-sig")
        assert content.splitlines()[0].startswith('"Customer","Phone"')
        assert '"Ann, Lee"' in content
        assert '"No"' in content
