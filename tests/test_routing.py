"""Tests for keyword-based auto-assignment."""

import uuid
from datetime import timedelta

import pytest

from ticketflow.routing.application import AutoAssignmentRouter, IAssignmentDirectory
from ticketflow.routing.domain import (
    AssignmentRule,
    default_team_name,
    first_matching_rule,
    routing_text,
)
from ticketflow.routing.infrastructure import SQLAlchemyAssignmentDirectory

from conftest import FIXED_NOW, seed_rule, seed_team


class InMemoryDirectory(IAssignmentDirectory):
    def __init__(self, rules=None, teams=None):
        self.rules = rules or []
        self.teams = teams or {}

    async def list_active_rules(self, tenant_id):
        return [rule for rule in self.rules if rule.tenant_id == tenant_id and rule.is_active]

    async def find_team_id_by_name(self, tenant_id, name):
        return self.teams.get((tenant_id, name))


def make_rule(tenant_id, keyword, user_id=None, is_active=True):
    return AssignmentRule(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        keyword=keyword,
        assigned_user_id=user_id or uuid.uuid4(),
        is_active=is_active,
    )


@pytest.mark.parametrize("text,team", [
    ("question about my bill", "Billing"),
    ("duplicate invoc charge", "Billing"),
    ("payment declined", "Billing"),
    ("getting an error on login", "Technical"),
    ("found a bug", "Technical"),
    ("sync failed overnight", "Technical"),
    ("how do i export my data", "General Support"),
    ("bug in the billing page", "Billing"),
])
def test_default_team_buckets(text, team):
    assert default_team_name(text) == team


def test_routing_text_is_lowercased_subject_and_description():
    assert routing_text("Login ERROR", None) == "login error "
    assert routing_text("Hi", "There") == "hi there"


def test_first_matching_rule_is_case_insensitive_and_ordered():
    tenant = uuid.uuid4()
    first = make_rule(tenant, "VPN")
    second = make_rule(tenant, "vpn access")

    assert first_matching_rule("cannot reach vpn access", [first, second]) is first
    assert first_matching_rule("nothing relevant", [first, second]) is None


@pytest.mark.asyncio
async def test_rule_match_suppresses_team_defaults():
    tenant = uuid.uuid4()
    agent = uuid.uuid4()
    billing = uuid.uuid4()
    router = AutoAssignmentRouter(InMemoryDirectory(
        rules=[make_rule(tenant, "refund", agent)],
        teams={(tenant, "Billing"): billing},
    ))

    decision = await router.route(tenant, "Refund for invoice", "payment was taken twice")

    assert decision.assigned_user_id == agent
    assert decision.assigned_team_id is None


@pytest.mark.asyncio
async def test_inactive_rules_are_ignored():
    tenant = uuid.uuid4()
    technical = uuid.uuid4()
    router = AutoAssignmentRouter(InMemoryDirectory(
        rules=[make_rule(tenant, "error", is_active=False)],
        teams={(tenant, "Technical"): technical},
    ))

    decision = await router.route(tenant, "Error 500", "")

    assert decision.assigned_user_id is None
    assert decision.assigned_team_id == technical


@pytest.mark.asyncio
async def test_missing_team_leaves_ticket_unassigned():
    router = AutoAssignmentRouter(InMemoryDirectory())

    decision = await router.route(uuid.uuid4(), "Hello", "Just a question")

    assert decision.assigned_team_id is None
    assert decision.assigned_user_id is None


@pytest.mark.asyncio
async def test_sqlalchemy_directory_orders_rules_by_creation(db, tenant_id):
    late_user, early_user = uuid.uuid4(), uuid.uuid4()
    await seed_rule(db, tenant_id, "password", late_user, created_at=FIXED_NOW)
    await seed_rule(db, tenant_id, "reset", early_user, created_at=FIXED_NOW - timedelta(days=1))
    await seed_rule(db, tenant_id, "password", uuid.uuid4(), is_active=False)

    rules = await SQLAlchemyAssignmentDirectory(db).list_active_rules(tenant_id)

    assert [rule.assigned_user_id for rule in rules] == [early_user, late_user]


@pytest.mark.asyncio
async def test_sqlalchemy_directory_scopes_teams_to_tenant(db, tenant_id):
    team_id = await seed_team(db, tenant_id, "Billing")
    await seed_team(db, uuid.uuid4(), "Technical")
    directory = SQLAlchemyAssignmentDirectory(db)

    assert await directory.find_team_id_by_name(tenant_id, "Billing") == team_id
    assert await directory.find_team_id_by_name(tenant_id, "Technical") is None
