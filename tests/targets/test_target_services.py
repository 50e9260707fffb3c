from datetime import date
from decimal import Decimal

import pytest

from targets.services import (
    create_target,
    normalize_period,
    period_bounds,
    target_progress,
    update_target,
)


def test_period_parsing():
    assert normalize_period("january 2025") == "January 2025"
    assert normalize_period("2025-03") == "March 2025"
    assert period_bounds("February 2024") == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValueError):
        normalize_period("Smarch 2025")
    with pytest.raises(ValueError):
        normalize_period("2025-13")


@pytest.mark.django_db
class TestTargets:
    def test_create_fills_names(self, manager_user, salesman_user):
        target = create_target(
            {"agent": salesman_user, "period": "2025-01", "monthly_target": Decimal("10000"), "deals_target": 10},
            actor=manager_user,
        )
        assert target.period == "January 2025"
        assert target.agent_name == "Sam Seller"
        assert target.sales_team == "Alpha"
        assert target.manager == manager_user
        assert target.manager_name == "Maya Manager"

    def test_duplicate_agent_period(self, manager_user, salesman_user):
        create_target({"agent": salesman_user, "period": "January 2025"}, actor=manager_user)
        with pytest.raises(ValueError):
            create_target({"agent": salesman_user, "period": "2025-01"}, actor=manager_user)

    def test_update(self, manager_user, salesman_user):
        target = create_target({"agent": salesman_user, "period": "January 2025"}, actor=manager_user)
        update_target(target, {"monthly_target": Decimal("500"), "period": "2025-02"}, actor=manager_user)
        target.refresh_from_db()
        assert target.monthly_target == Decimal("500")
        assert target.period == "February 2025"

    def test_progress_from_deals_in_period(self, manager_user, salesman_user, make_deal):
        target = create_target(
            {"agent": salesman_user, "period": "January 2025", "monthly_target": Decimal("10000"), "deals_target": 10},
            actor=manager_user,
        )
        for _ in range(8):
            make_deal(salesman_user, amount="937.50", signup_date=date(2025, 1, 15))
        make_deal(salesman_user, amount="5000", signup_date=date(2025, 2, 1))

        progress = target_progress(target)
        assert progress["currentSales"] == Decimal("7500.00")
        assert progress["currentDeals"] == 8
        assert progress["revenueProgress"] == 75.0
        assert progress["dealsProgress"] == 80.0
        assert progress["status"] == "on-track"
