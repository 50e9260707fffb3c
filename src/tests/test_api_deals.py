"""Tests for the deals API: scoping, pagination, writes, export and import."""
from datetime import date

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from core.models import AuditLog
from deals.models import Deal


def _deal_ids(resp):
    return {row["deal_id"] for row in resp.json()["data"]}


# ---------------------------------------------------------------------------
# Role scoping
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestDealScoping:
    def test_manager_sees_every_deal(self, manager_client, salesman_user, other_salesman, make_deal):
        mine = make_deal(salesman_user)
        theirs = make_deal(other_salesman)

        resp = manager_client.get("/api/deals")

        assert resp.status_code == 200
        assert _deal_ids(resp) == {mine.deal_id, theirs.deal_id}

    def test_manager_team_filter(self, manager_client, salesman_user, other_salesman, make_deal):
        make_deal(salesman_user)
        beta = make_deal(other_salesman)

        resp = manager_client.get("/api/deals", {"salesTeam": "Beta"})

        assert _deal_ids(resp) == {beta.deal_id}

    def test_salesman_only_sees_own_deals(self, salesman_client, salesman_user, other_salesman, make_deal):
        mine = make_deal(salesman_user)
        make_deal(other_salesman)

        resp = salesman_client.get("/api/deals")

        assert _deal_ids(resp) == {mine.deal_id}

    def test_client_role_hints_cannot_widen_scope(self, salesman_client, salesman_user, other_salesman, make_deal):
        mine = make_deal(salesman_user)
        make_deal(other_salesman)

        resp = salesman_client.get(
            "/api/deals",
            {"userRole": "manager", "userId": str(other_salesman.pk), "salesTeam": "Beta"},
        )

        assert _deal_ids(resp) == {mine.deal_id}

    def test_team_leader_sees_team_and_own(
        self, team_leader_client, team_leader_user, salesman_user, other_salesman, make_deal,
    ):
        own = make_deal(team_leader_user, sales_team="Gamma")
        team = make_deal(salesman_user)
        make_deal(other_salesman)

        resp = team_leader_client.get("/api/deals")

        assert _deal_ids(resp) == {own.deal_id, team.deal_id}

    def test_salesman_cannot_read_foreign_deal(self, salesman_client, other_salesman, make_deal):
        deal = make_deal(other_salesman)

        resp = salesman_client.get(f"/api/deals/{deal.pk}")

        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"

    def test_unauthenticated_gets_error_envelope(self, api_client):
        resp = api_client.get("/api/deals")

        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestDealList:
    def test_envelope_with_meta_and_legacy_keys(self, manager_client, salesman_user, make_deal):
        for _ in range(3):
            make_deal(salesman_user)

        resp = manager_client.get("/api/deals/", {"page": 2, "limit": 2})

        body = resp.json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        assert body["meta"] == {
            "page": 2,
            "limit": 2,
            "total": 3,
            "totalPages": 2,
            "hasNext": False,
            "hasPrev": True,
        }
        assert body["deals"] == body["data"]
        assert body["total"] == 3

    def test_page_past_the_end_is_empty(self, manager_client, salesman_user, make_deal):
        make_deal(salesman_user)

        resp = manager_client.get("/api/deals", {"page": 9, "limit": 25})

        assert resp.status_code == 200
        assert resp.json()["data"] == []
        assert resp.json()["meta"]["total"] == 1

    def test_limit_is_clamped(self, manager_client):
        resp = manager_client.get("/api/deals", {"limit": 5000, "page": "abc"})

        meta = resp.json()["meta"]
        assert (meta["page"], meta["limit"]) == (1, 200)

    def test_status_filter_and_all(self, manager_client, salesman_user, make_deal):
        active = make_deal(salesman_user)
        make_deal(salesman_user, status=Deal.Status.CANCELLED)

        assert _deal_ids(manager_client.get("/api/deals", {"status": "active"})) == {active.deal_id}
        assert len(manager_client.get("/api/deals", {"status": "all"}).json()["data"]) == 2

    def test_month_and_date_range_filters(self, manager_client, salesman_user, make_deal):
        january = make_deal(salesman_user, signup_date=date(2025, 1, 10))
        make_deal(salesman_user, signup_date=date(2025, 2, 10))

        assert _deal_ids(manager_client.get("/api/deals", {"month": "2025-01"})) == {january.deal_id}
        resp = manager_client.get("/api/deals", {"from": "2025-01-01", "to": "2025-01-31"})
        assert _deal_ids(resp) == {january.deal_id}

    def test_bad_date_is_validation_error(self, manager_client):
        resp = manager_client.get("/api/deals", {"from": "yesterday"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"][0]["field"] == "from"

    def test_search(self, manager_client, salesman_user, make_deal):
        target = make_deal(salesman_user, customer_name="Zelda Fitzgerald")
        make_deal(salesman_user)

        assert _deal_ids(manager_client.get("/api/deals", {"search": "zelda"})) == {target.deal_id}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestDealWrites:
    def test_salesman_creates_deal_with_defaults(self, salesman_client, salesman_user):
        resp = salesman_client.post(
            "/api/deals",
            {"customerName": "Ann Lee", "amountPaid": "300.00", "programType": "IBO PRO"},
            format="json",
        )

        assert resp.status_code == 201
        body = resp.json()
        data = body["data"]
        assert body["deal"] == data
        assert data["DealID"].startswith("D")
        assert data["sales_agent"] == "Sam Seller"
        assert data["closing_agent"] == "Sam Seller"
        assert data["SalesAgentID"] == str(salesman_user.pk)
        assert data["sales_team"] == "Alpha"
        assert data["duration_months"] == 12
        assert data["stage"] == "lead"
        assert data["is_ibo_pro"] is True
        assert data["amount_paid"] == 300

    def test_missing_customer_name_is_validation_error(self, salesman_client):
        resp = salesman_client.post("/api/deals", {"amountPaid": "10"}, format="json")

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert {"customer_name"} <= {d["field"] for d in error["details"]}

    def test_salesman_cannot_record_for_another_agent(self, salesman_client, other_salesman):
        resp = salesman_client.post(
            "/api/deals",
            {"customerName": "Ann Lee", "salesAgentId": str(other_salesman.pk)},
            format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
        assert not Deal.objects.exists()

    def test_salesman_cannot_record_under_another_agents_name(self, salesman_client, other_salesman):
        resp = salesman_client.post(
            "/api/deals",
            {"customerName": "Ann Lee", "salesAgentName": other_salesman.display_name},
            format="json",
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
        assert not Deal.objects.exists()

    def test_salesman_cannot_patch_agent_name(self, salesman_client, salesman_user, other_salesman, make_deal):
        deal = make_deal(salesman_user)

        resp = salesman_client.patch(f"/api/deals/{deal.pk}", {"salesAgentName": "Bea Beta"}, format="json")

        assert resp.status_code == 400
        deal.refresh_from_db()
        assert deal.sales_agent_name == "Sam Seller"

    def test_team_leader_records_for_team_member(self, team_leader_client, salesman_user):
        resp = team_leader_client.post(
            "/api/deals",
            {"customerName": "Ann Lee", "salesAgentId": str(salesman_user.pk)},
            format="json",
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["sales_agent"] == "Sam Seller"

    def test_patch_status(self, salesman_client, salesman_user, make_deal):
        deal = make_deal(salesman_user)

        resp = salesman_client.patch(f"/api/deals/{deal.pk}", {"status": "completed"}, format="json")

        assert resp.status_code == 200
        deal.refresh_from_db()
        assert deal.status == Deal.Status.COMPLETED

    def test_put_is_partial(self, manager_client, salesman_user, make_deal):
        deal = make_deal(salesman_user)

        resp = manager_client.put(f"/api/deals/{deal.pk}/", {"stage": "qualified"}, format="json")

        assert resp.status_code == 200
        assert resp.json()["data"]["stage"] == "qualified"
        assert resp.json()["data"]["customer_name"] == deal.customer_name

    def test_delete_not_allowed(self, manager_client, salesman_user, make_deal):
        deal = make_deal(salesman_user)

        resp = manager_client.delete(f"/api/deals/{deal.pk}")

        assert resp.status_code == 405
        assert Deal.objects.filter(pk=deal.pk).exists()

    def test_api_call_is_audited(self, manager_client, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            resp = manager_client.get("/api/deals")

        assert resp.status_code == 200
        log = AuditLog.objects.get(action="deals.list")
        assert log.entity_type == "deals"
        assert log.status_code == 200


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestDealExport:
    def test_export_csv_respects_scope(self, salesman_client, salesman_user, other_salesman, make_deal):
        mine = make_deal(salesman_user, customer_name='Ann "The Closer" Lee')
        theirs = make_deal(other_salesman)

        resp = salesman_client.get("/api/deals/export")

        assert resp.status_code == 200
        assert resp["Content-Type"] == "text/csv; charset=utf-8"
        assert "deals_export_" in resp["Content-Disposition"]
        content = resp.content.decode("utf-8")
        assert content.startswith("\ufeff")
        assert '"Deal ID","Customer"' in content
        assert mine.deal_id in content
        assert '"Ann ""The Closer"" Lee"' in content
        assert theirs.deal_id not in content


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _csv_upload(text, name="deals.csv"):
    return SimpleUploadedFile(name, text.encode("utf-8"), content_type="text/csv")


@pytest.mark.django_db
class TestDealImport:
    def test_manager_imports_rows_with_defaults(self, manager_client, salesman_user):
        content = (
            "customer_name;amount;sales_agent;program;date\n"
            "Ann Lee;300;Sam Seller;IBO PRO;2025-01-10\n"
            "Bob Ray;$1,200.50;Walk-in Agent;;2025-01-11\n"
        )

        resp = manager_client.post("/api/deals/import", {"file": _csv_upload(content)}, format="multipart")

        assert resp.status_code == 201
        body = resp.json()
        assert body["imported"] == 2
        assert body["data"]["rejected"] == 0
        ann = Deal.objects.get(customer_name="Ann Lee")
        assert ann.sales_agent == salesman_user
        assert ann.sales_team == "Alpha"
        assert ann.is_ibo_pro is True
        assert ann.signup_date == date(2025, 1, 10)
        assert ann.duration_months == 12
        bob = Deal.objects.get(customer_name="Bob Ray")
        assert bob.sales_agent is None
        assert bob.sales_agent_name == "Walk-in Agent"
        assert str(bob.amount_paid) == "1200.50"

    def test_bad_rows_are_reported_by_line(self, manager_client):
        content = (
            "Customer,Amount Paid,Signup Date\n"
            "Ann Lee,300,2025-01-10\n"
            ",150,2025-01-11\n"
            "\n"
            "Cal Doe,abc,2025-01-12\n"
        )

        resp = manager_client.post("/api/deals/import", {"file": _csv_upload(content)}, format="multipart")

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["imported"] == 1
        assert [error["line"] for error in data["errors"]] == [3, 5]
        assert "customer name" in data["errors"][0]["message"]
        assert data["errors"][1]["message"].startswith("amount_paid")
        assert Deal.objects.count() == 1

    def test_export_file_round_trips(self, manager_client, salesman_user, make_deal):
        deal = make_deal(salesman_user, customer_name="Round Trip", deal_id="DOLD1")
        exported = manager_client.get("/api/deals/export").content.decode("utf-8-sig")
        deal.delete()

        resp = manager_client.post("/api/sales/import", {"file": _csv_upload(exported)}, format="multipart")

        assert resp.status_code == 201
        restored = Deal.objects.get(deal_id="DOLD1")
        assert restored.customer_name == "Round Trip"
        assert restored.sales_agent == salesman_user

    def test_nothing_importable_is_validation_error(self, manager_client):
        resp = manager_client.post(
            "/api/deals/import", {"file": _csv_upload("customer_name,amount\n,\nNo Amount,\n")}, format="multipart",
        )

        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert [detail["line"] for detail in body["error"]["details"]] == [3]
        assert not Deal.objects.exists()

    def test_missing_file(self, manager_client):
        resp = manager_client.post("/api/deals/import", {}, format="multipart")

        assert resp.status_code == 400
        assert resp.json()["error"]["details"][0]["field"] == "file"

    def test_import_is_manager_only(self, team_leader_client):
        content = "customer_name,amount\nAnn Lee,300\n"

        resp = team_leader_client.post("/api/deals/import", {"file": _csv_upload(content)}, format="multipart")

        assert resp.status_code == 403
        assert not Deal.objects.exists()
