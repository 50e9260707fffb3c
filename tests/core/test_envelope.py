from datetime import date

import pytest

from api.v1.pagination import compute_page_meta, parse_page_params
from core import tasks
from core.envelope import ErrorCode, build_meta, error_payload, log_api_call, success_payload, total_pages
from core.exceptions import flatten_validation_errors
from core.export import export_filename, parse_csv, rows_to_csv


class TestPaginationMath:
    def test_total_pages(self):
        assert total_pages(47, 25) == 2
        assert total_pages(50, 25) == 2
        assert total_pages(51, 25) == 3
        assert total_pages(0, 25) == 0

    def test_last_page_meta(self):
        meta = compute_page_meta(2, 25, 47)
        assert meta == {"page": 2, "limit": 25, "total": 47, "totalPages": 2, "hasNext": False, "hasPrev": True}

    def test_empty_meta(self):
        meta = compute_page_meta(1, 25, 0)
        assert (meta["totalPages"], meta["hasNext"], meta["hasPrev"]) == (0, False, False)

    def test_properties_hold_for_many_inputs(self):
        for total in (0, 1, 24, 25, 26, 199, 200):
            for limit in (1, 7, 25, 200):
                pages = total_pages(total, limit)
                for page in range(1, pages + 2):
                    meta = compute_page_meta(page, limit, total)
                    assert meta["hasNext"] == (page < pages)
                    assert meta["hasPrev"] == (page > 1)

    def test_parse_page_params(self):
        assert parse_page_params(None, None, default_limit=25, max_limit=200) == (1, 25)
        assert parse_page_params("0", "500", default_limit=25, max_limit=200) == (1, 200)
        assert parse_page_params("abc", "0", default_limit=25, max_limit=200) == (1, 1)
        assert parse_page_params("3", "10", default_limit=25, max_limit=200) == (3, 10)


class TestEnvelope:
    def test_success_payload_recomputes_total_pages(self):
        payload = success_payload([1], meta={"page": 1, "limit": 10, "total": 31, "totalPages": 99})
        assert payload["success"] is True
        assert payload["meta"]["totalPages"] == 4

    def test_meta_without_total_is_kept(self):
        assert build_meta({"page": 1}) == {"page": 1}

    def test_error_payload(self):
        payload = error_payload(ErrorCode.NOT_FOUND)
        assert payload == {
            "success": False,
            "message": "Resource not found",
            "error": {"code": "NOT_FOUND", "message": "Resource not found"},
        }
        assert "data" not in payload

    def test_flatten_validation_errors(self):
        details = flatten_validation_errors({"amount_paid": ["Too small."], "items": [{"qty": ["Required."]}]})
        assert {"field": "amount_paid", "message": "Too small."} in details
        assert {"field": "items[0].qty", "message": "Required."} in details


class TestCsv:
    columns = [("customer", "Customer"), ("amount", "Amount"), ("agent", "Agent")]

    def test_filename(self):
        assert export_filename("deals", date(2025, 3, 9)) == "deals_export_2025-03-09.csv"

    def test_every_field_is_quoted(self):
        text = rows_to_csv([{"customer": "Ann", "amount": 10, "agent": None}], self.columns)
        assert text.splitlines()[0] == '"Customer","Amount","Agent"'
        assert text.splitlines()[1] == '"Ann","10",""'

    def test_round_trip(self):
        rows = [
            {"customer": 'Jo "JJ" Smith', "amount": "120.50", "agent": "Ann, Lee"},
            {"customer": "Line\nBreak", "amount": "0", "agent": ""},
        ]
        header, parsed = parse_csv("\ufeff" + rows_to_csv(rows, self.columns))
        assert header == ["Customer", "Amount", "Agent"]
        assert len(parsed) == len(rows)
        assert parsed == [[row["customer"], row["amount"], row["agent"]] for row in rows]


@pytest.mark.django_db
class TestAuditDispatch:
    def test_audit_is_queued_without_publish_retries(self, monkeypatch, django_capture_on_commit_callbacks):
        calls = []
        monkeypatch.setattr(tasks.record_api_call, "apply_async", lambda **kwargs: calls.append(kwargs))

        with django_capture_on_commit_callbacks(execute=True):
            log_api_call("deals.list", 200)

        (call,) = calls
        assert call["retry"] is False
        assert call["kwargs"]["action"] == "deals.list"

    def test_broker_failure_is_swallowed(self, monkeypatch, django_capture_on_commit_callbacks):
        def refuse(**kwargs):
            raise ConnectionError("broker down")

        monkeypatch.setattr(tasks.record_api_call, "apply_async", refuse)

        with django_capture_on_commit_callbacks(execute=True):
            log_api_call("deals.list", 200)
