from urllib.parse import parse_qsl

from accounts.scoping import (
    CUSTOMER_SERVICE,
    MANAGER,
    SALESMAN,
    TEAM_LEADER,
    Scope,
    build_query_params,
    build_query_string,
    clean_filters,
    policy_for,
)


def test_manager_params_with_team_filter_last():
    scope = Scope(role=MANAGER, user_id="m1")
    params = build_query_params(scope, {"salesTeam": "Beta", "search": "john", "status": "active"}, page=2, limit=50)
    assert params == [
        ("page", "2"),
        ("limit", "50"),
        ("userRole", "manager"),
        ("userId", "m1"),
        ("search", "john"),
        ("status", "active"),
        ("salesTeam", "Beta"),
    ]


def test_team_leader_always_uses_managed_team():
    scope = Scope(role=TEAM_LEADER, user_id="t1", managed_team="Alpha")
    params = dict(build_query_params(scope, {"salesTeam": "Beta"}))
    assert params["managedTeam"] == "Alpha"
    assert "salesTeam" not in params
    assert policy_for(TEAM_LEADER).team_filter_locked


def test_own_row_roles_have_no_team_filter():
    for role in (SALESMAN, CUSTOMER_SERVICE):
        scope = Scope(role=role, user_id="s1")
        params = dict(build_query_params(scope, {"salesTeam": "Beta"}))
        assert params["userRole"] == role
        assert "salesTeam" not in params
        assert not policy_for(role).exposes_team_filter


def test_empty_and_all_filters_are_dropped():
    assert clean_filters({"search": "  ", "status": "all", "stage": "ALL", "priority": None, "month": "2025-01"}) == {
        "month": "2025-01",
    }


def test_query_string_is_stable():
    scope = Scope(role=SALESMAN, user_id="s1")
    filters = {"to": "2025-01-31", "from": "2025-01-01", "search": "a b"}
    first = build_query_string(scope, filters)
    assert first == build_query_string(scope, dict(reversed(list(filters.items()))))
    assert [key for key, _ in parse_qsl(first)] == ["page", "limit", "userRole", "userId", "search", "from", "to"]


def test_row_filters():
    assert policy_for(MANAGER).row_filter(Scope(MANAGER, "m")).unrestricted
    assert policy_for(MANAGER).row_filter(Scope(MANAGER, "m"), {"salesTeam": "Beta"}).team == "Beta"

    leader = policy_for(TEAM_LEADER).row_filter(Scope(TEAM_LEADER, "t", "Alpha"), {"salesTeam": "Beta"})
    assert (leader.agent_id, leader.team, leader.match_any) == ("t", "Alpha", True)

    own = policy_for(SALESMAN).row_filter(Scope(SALESMAN, "s"))
    assert (own.agent_id, own.team) == ("s", None)


def test_unknown_role_sees_own_rows_only():
    assert policy_for("intern").row_filter(Scope("intern", "x")).agent_id == "x"
