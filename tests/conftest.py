from datetime import date
from decimal import Decimal

import pytest

from accounts.models import User
from callbacks.models import Callback
from deals.models import Deal


@pytest.fixture
def manager_user(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Maya",
        last_name="Manager",
        role=User.Role.MANAGER,
    )


@pytest.fixture
def team_leader_user(db):
    return User.objects.create_user(
        email="leader@test.com",
        password="testpass123",
        first_name="Leo",
        last_name="Leader",
        role=User.Role.TEAM_LEADER,
        team="Alpha",
        managed_team="Alpha",
    )


@pytest.fixture
def salesman_user(db):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sam",
        last_name="Seller",
        role=User.Role.SALESMAN,
        team="Alpha",
    )


@pytest.fixture
def other_salesman(db):
    return User.objects.create_user(
        email="beta@test.com",
        password="testpass123",
        first_name="Bea",
        last_name="Beta",
        role=User.Role.SALESMAN,
        team="Beta",
    )


@pytest.fixture
def make_deal(db):
    counter = {"n": 0}

    def _make(agent=None, amount="100.00", signup_date=None, **extra):
        counter["n"] += 1
        fields = {
            "deal_id": f"DTEST{counter['n']}",
            "customer_name": f"Customer {counter['n']}",
            "amount_paid": Decimal(amount),
            "signup_date": signup_date or date.today(),
            "duration_months": 12,
            "sales_agent": agent,
            "sales_agent_name": agent.display_name if agent else "",
            "sales_team": agent.team if agent else "",
        }
        fields.update(extra)
        return Deal.objects.create(**fields)

    return _make


@pytest.fixture
def make_callback(db):
    def _make(creator=None, **extra):
        fields = {
            "customer_name": "Prospect",
            "phone_number": "+15550100",
            "first_call_date": date.today(),
            "created_by": creator,
            "created_by_name": creator.display_name if creator else "",
            "sales_team": creator.team if creator else "",
        }
        fields.update(extra)
        return Callback.objects.create(**fields)

    return _make
