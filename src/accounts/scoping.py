"""Role scoping policies.

One policy per role decides two things:

* which query parameters a list view sends for a given set of filters
  (``query_params``), and
* which rows the server lets the caller see (``row_filter``).

Both sides go through :data:`POLICIES` so the rule for each role lives in one
place. Everything here is pure: no ORM, no request objects.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlencode

MANAGER = "manager"
TEAM_LEADER = "team_leader"
SALESMAN = "salesman"
CUSTOMER_SERVICE = "customer-service"

# Appended in this order when present.
FILTER_KEYS = ("search", "status", "stage", "priority", "from", "to", "month")
TEAM_KEY = "salesTeam"
ALL = "all"


@dataclass(frozen=True)
class Scope:
    """Who is asking: the authenticated user's role, id and managed team."""

    role: str
    user_id: str
    managed_team: str = ""

    @classmethod
    def for_user(cls, user) -> "Scope":
        role = user.role
        if getattr(user, "is_superuser", False):
            role = MANAGER
        return cls(
            role=role,
            user_id=str(user.pk),
            managed_team=getattr(user, "managed_team", "") or "",
        )


@dataclass(frozen=True)
class RowFilter:
    """Row restriction for a scope.

    ``agent_id`` and ``team`` are the conditions that apply; ``match_any``
    joins them with OR instead of AND. No condition means every row.
    """

    agent_id: str | None = None
    team: str | None = None
    match_any: bool = False

    @property
    def unrestricted(self) -> bool:
        return self.agent_id is None and self.team is None


def _present(value) -> bool:
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and text.lower() != ALL


def clean_filters(filters: Mapping[str, object] | None) -> dict[str, str]:
    """Keep the known optional filters that are non-empty and not ``"all"``."""
    filters = filters or {}
    return {
        key: str(filters[key]).strip()
        for key in FILTER_KEYS
        if _present(filters.get(key))
    }


class ScopingPolicy:
    role = ""
    team_filter_locked = False
    exposes_team_filter = False

    def scope_params(self, scope: Scope) -> list[tuple[str, str]]:
        return [("userRole", self.role), ("userId", scope.user_id)]

    def team_filter(self, scope: Scope, filters: Mapping[str, object]) -> str | None:
        return None

    def query_params(self, scope: Scope, filters: Mapping[str, object] | None = None) -> list[tuple[str, str]]:
        filters = filters or {}
        params = self.scope_params(scope)
        params.extend(clean_filters(filters).items())
        team = self.team_filter(scope, filters)
        if team is not None:
            params.append((TEAM_KEY, team))
        return params

    def row_filter(self, scope: Scope, filters: Mapping[str, object] | None = None) -> RowFilter:
        raise NotImplementedError


class ManagerPolicy(ScopingPolicy):
    role = MANAGER
    exposes_team_filter = True

    def team_filter(self, scope, filters):
        team = filters.get(TEAM_KEY)
        return str(team).strip() if _present(team) else None

    def row_filter(self, scope, filters=None):
        return RowFilter(team=self.team_filter(scope, filters or {}))


class TeamLeaderPolicy(ScopingPolicy):
    role = TEAM_LEADER
    team_filter_locked = True

    def scope_params(self, scope):
        return super().scope_params(scope) + [("managedTeam", scope.managed_team)]

    def row_filter(self, scope, filters=None):
        # Own rows stay visible even when they were logged outside the managed team.
        return RowFilter(agent_id=scope.user_id, team=scope.managed_team or None, match_any=True)


class OwnRowsPolicy(ScopingPolicy):
    role = SALESMAN

    def row_filter(self, scope, filters=None):
        return RowFilter(agent_id=scope.user_id)


class CustomerServicePolicy(OwnRowsPolicy):
    role = CUSTOMER_SERVICE


POLICIES: dict[str, ScopingPolicy] = {
    MANAGER: ManagerPolicy(),
    TEAM_LEADER: TeamLeaderPolicy(),
    SALESMAN: OwnRowsPolicy(),
    CUSTOMER_SERVICE: CustomerServicePolicy(),
}


def policy_for(role: str) -> ScopingPolicy:
    """Return the policy for ``role``; unknown roles only see their own rows."""
    return POLICIES.get(role, POLICIES[SALESMAN])


def build_query_params(
    scope: Scope,
    filters: Mapping[str, object] | None = None,
    page: int = 1,
    limit: int = 25,
) -> list[tuple[str, str]]:
    """Full parameter list for a list request, in a stable order."""
    params = [("page", str(page)), ("limit", str(limit))]
    params.extend(policy_for(scope.role).query_params(scope, filters))
    return params


def build_query_string(scope: Scope, filters=None, page: int = 1, limit: int = 25) -> str:
    return urlencode(build_query_params(scope, filters, page=page, limit=limit))
