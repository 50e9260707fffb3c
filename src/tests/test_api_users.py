"""Tests for the user directory, user management and the sales feed."""
import pytest
from django.contrib.auth import get_user_model

User = get_user_model()


def _emails(resp):
    return {row["email"] for row in resp.json()["data"]}


@pytest.mark.django_db
class TestUserDirectory:
    def test_manager_lists_everyone(self, manager_client, team_leader_user, salesman_user, other_salesman):
        resp = manager_client.get("/api/users")

        assert resp.status_code == 200
        assert _emails(resp) == {"manager@test.com", "leader@test.com", "sales@test.com", "beta@test.com"}
        assert resp.json()["users"] == resp.json()["data"]

    def test_manager_filters_by_role(self, manager_client, team_leader_user, salesman_user, other_salesman):
        resp = manager_client.get("/api/users", {"role": "salesman"})

        assert _emails(resp) == {"sales@test.com", "beta@test.com"}

    def test_team_leader_sees_team(self, team_leader_client, salesman_user, other_salesman):
        assert _emails(team_leader_client.get("/api/users")) == {"leader@test.com", "sales@test.com"}

    def test_salesman_sees_self(self, salesman_client, other_salesman):
        assert _emails(salesman_client.get("/api/users")) == {"sales@test.com"}

    def test_inactive_users_hidden(self, manager_client, salesman_user):
        salesman_user.is_active = False
        salesman_user.save(update_fields=["is_active"])

        assert "sales@test.com" not in _emails(manager_client.get("/api/users"))

    def test_non_manager_cannot_create(self, team_leader_client):
        resp = team_leader_client.post(
            "/api/users",
            {"email": "x@test.com", "name": "Xavier New", "password": "Str0ng-Passw0rd!"},
            format="json",
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"
        assert not User.objects.filter(email="x@test.com").exists()


@pytest.mark.django_db
class TestUserManagement:
    def test_manager_creates_user(self, manager_client):
        resp = manager_client.post(
            "/api/users",
            {
                "email": "new@test.com",
                "name": "Nina New Agent",
                "password": "Str0ng-Passw0rd!",
                "role": "salesman",
                "team": "Alpha",
            },
            format="json",
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["user"] == body["data"]
        assert body["data"]["name"] == "Nina New Agent"
        assert "password" not in body["data"]
        user = User.objects.get(email="new@test.com")
        assert (user.first_name, user.last_name) == ("Nina", "New Agent")
        assert user.check_password("Str0ng-Passw0rd!")

    def test_weak_password_is_rejected(self, manager_client):
        resp = manager_client.post(
            "/api/users",
            {"email": "weak@test.com", "first_name": "Wes", "password": "12345678"},
            format="json",
        )

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert {"password"} <= {d["field"] for d in error["details"]}

    def test_team_leader_needs_managed_team(self, manager_client):
        resp = manager_client.post(
            "/api/users",
            {"email": "tl@test.com", "first_name": "Tia", "password": "Str0ng-Passw0rd!", "role": "team_leader"},
            format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["details"][0]["field"] == "managed_team"

    def test_duplicate_email_is_rejected(self, manager_client, salesman_user):
        resp = manager_client.post(
            "/api/users",
            {"email": "sales@test.com", "first_name": "Sam", "password": "Str0ng-Passw0rd!"},
            format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_manager_updates_role_and_team(self, manager_client, salesman_user):
        resp = manager_client.patch(
            f"/api/users/{salesman_user.pk}",
            {"role": "team_leader", "managed_team": "Alpha"},
            format="json",
        )

        assert resp.status_code == 200
        salesman_user.refresh_from_db()
        assert salesman_user.role == "team_leader"
        assert salesman_user.managed_team == "Alpha"

    def test_salesman_cannot_update_users(self, salesman_client, salesman_user):
        resp = salesman_client.patch(f"/api/users/{salesman_user.pk}", {"role": "manager"}, format="json")

        assert resp.status_code == 403
        salesman_user.refresh_from_db()
        assert salesman_user.role == "salesman"

    def test_delete_deactivates(self, manager_client, salesman_user, make_deal):
        deal = make_deal(salesman_user)

        resp = manager_client.delete(f"/api/users/{salesman_user.pk}")

        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False
        salesman_user.refresh_from_db()
        assert salesman_user.is_active is False
        deal.refresh_from_db()
        assert deal.sales_agent_id == salesman_user.pk

    def test_manager_cannot_deactivate_self(self, manager_client, manager_user):
        resp = manager_client.delete(f"/api/users/{manager_user.pk}")

        assert resp.status_code == 400
        manager_user.refresh_from_db()
        assert manager_user.is_active is True

    def test_manager_reactivates_and_lists_inactive(self, manager_client, salesman_user):
        salesman_user.is_active = False
        salesman_user.save(update_fields=["is_active"])

        listed = manager_client.get("/api/users", {"includeInactive": "true"})
        assert "sales@test.com" in _emails(listed)

        resp = manager_client.patch(f"/api/users/{salesman_user.pk}", {"is_active": True}, format="json")

        assert resp.status_code == 200
        salesman_user.refresh_from_db()
        assert salesman_user.is_active is True


@pytest.mark.django_db
class TestSalesFeed:
    def test_feed_rows_carry_legacy_keys(self, manager_client, salesman_user, make_deal):
        deal = make_deal(salesman_user, amount="450")

        resp = manager_client.get("/api/sales")

        assert resp.status_code == 200
        body = resp.json()
        row = body["data"][0]
        assert body["sales"] == body["data"]
        assert body["total"] == 1
        assert row["amount"] == 450
        assert row["sales_agent"] == "Sam Seller"
        assert row["SalesAgentID"] == row["sales_agent_id"] == str(salesman_user.pk)
        assert row["DealID"] == deal.deal_id
        assert row["team"] == "Alpha"

    def test_feed_is_scoped(self, salesman_client, salesman_user, other_salesman, make_deal):
        make_deal(salesman_user)
        make_deal(other_salesman)

        rows = salesman_client.get("/api/sales").json()["data"]

        assert [row["sales_agent"] for row in rows] == ["Sam Seller"]
