"""Tests for builders/roles.py."""

from __future__ import annotations

import pytest

from conftest import agent_record, group_record, make_response
from freshservice_connector.builders import RoleBuilder
from freshservice_connector.errors import PrincipalTypeError
from freshservice_connector.mappers import role_resource
from freshservice_connector.models import Role
from freshservice_connector.pagination import PageToken, SyncPhase
from freshservice_connector.resources import (
    Grant,
    GrantAlreadyExists,
    GrantAlreadyRevoked,
    Resource,
    ResourceId,
)


@pytest.fixture
def builder(client):
    return RoleBuilder(client)


@pytest.fixture
def role():
    return role_resource(Role(id=7, name="Admin"))


class TestEntitlements:
    def test_assigned(self, builder, role):
        (entitlement,) = builder.entitlements(role)
        assert entitlement.id == "role:7:assigned"
        assert entitlement.display_name == "Admin Role assigned"
        assert entitlement.grantable_to == ("agent",)


class TestGrants:
    def test_walks_agents_then_groups(self, builder, role, session):
        session.add(
            "GET", "agents",
            make_response(body={"agents": [agent_record(1, role_ids=(7,)), agent_record(2, role_ids=(8,))]}, next_page=2),
            make_response(body={"agents": [agent_record(3, role_ids=(8, 7))]}),
        )
        session.add("GET", "groups", make_response(
            body={"groups": [group_record(50, role_ids=[7]), group_record(51)]}
        ))

        first = builder.grants(role)
        assert [str(g.principal) for g in first.items] == ["agent:1"]
        assert PageToken.decode(first.next_token, "role") == PageToken("role", 2, SyncPhase.USERS)

        second = builder.grants(role, first.next_token)
        assert [str(g.principal) for g in second.items] == ["agent:3"]
        assert PageToken.decode(second.next_token, "role") == PageToken("role", 1, SyncPhase.GROUPS)

        third = builder.grants(role, second.next_token)
        assert [g.id for g in third.items] == ["role:7:assigned:agent_group:50"]
        assert third.next_token == ""

    def test_timeout_in_agent_walk_moves_to_groups(self, builder, role, session):
        session.add("GET", "agents", make_response(408, body=b""))
        page = builder.grants(role)
        assert page.items == []
        assert PageToken.decode(page.next_token, "role").phase is SyncPhase.GROUPS

    def test_timeout_in_group_walk_finishes(self, builder, role, session):
        session.add("GET", "groups", make_response(408, body=b""))
        token = PageToken("role", 1, SyncPhase.GROUPS).encode()
        page = builder.grants(role, token)
        assert page.items == []
        assert page.next_token == ""


class TestGrant:
    def test_appends_role_keeping_existing_scope(self, builder, role, session):
        existing = {"role_id": 3, "assignment_scope": "specified_groups", "groups": [4]}
        session.add("GET", "agents/9", make_response(body={"agent": agent_record(9, roles=[existing])}))
        session.add("PUT", "agents/9", make_response(body={"agent": agent_record(9, role_ids=(3, 7))}))

        builder.grant(Resource(ResourceId("agent", "9"), "Nine"), builder.entitlements(role)[0])

        assert session.calls_to("PUT", "agents/9")[0].json == {
            "roles": [
                {"role_id": 3, "assignment_scope": "specified_groups", "groups": [4]},
                {"role_id": 7, "assignment_scope": "entire_helpdesk"},
            ]
        }

    def test_already_assigned(self, builder, role, session):
        session.add("GET", "agents/9", make_response(body={"agent": agent_record(9, role_ids=(7,))}))
        annotations = builder.grant(Resource(ResourceId("agent", "9"), "Nine"), builder.entitlements(role)[0])
        assert GrantAlreadyExists() in annotations
        assert session.calls_to("PUT", "agents/9") == []

    def test_rejects_group_principal(self, builder, role, session):
        principal = Resource(ResourceId("agent_group", "50"), "Ops")
        with pytest.raises(PrincipalTypeError):
            builder.grant(principal, builder.entitlements(role)[0])
        assert session.calls == []


class TestRevoke:
    def test_removes_only_that_role(self, builder, role, session):
        session.add("GET", "agents/9", make_response(body={"agent": agent_record(9, role_ids=(3, 7))}))
        session.add("PUT", "agents/9", make_response(body={"agent": agent_record(9, role_ids=(3,))}))

        builder.revoke(Grant(builder.entitlements(role)[0], ResourceId("agent", "9")))

        assert session.calls_to("PUT", "agents/9")[0].json == {
            "roles": [{"role_id": 3, "assignment_scope": "entire_helpdesk"}]
        }

    def test_not_assigned(self, builder, role, session):
        session.add("GET", "agents/9", make_response(body={"agent": agent_record(9, role_ids=(3,))}))
        annotations = builder.revoke(Grant(builder.entitlements(role)[0], ResourceId("agent", "9")))
        assert GrantAlreadyRevoked() in annotations
        assert session.calls_to("PUT", "agents/9") == []
