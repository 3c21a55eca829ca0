"""Roles: the "assigned" entitlement.

Role assignments are embedded on each agent record (``roles``: role id plus
assignment scope), and on some accounts agent groups carry ``role_ids``.
Working out who holds one role therefore means walking every agent page
and then every group page. The page token carries which of the two walks
is in progress (``SyncPhase``) along with the page number.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from freshservice_connector.builders.base import BaseBuilder, SyncPage, rate_limit_annotations
from freshservice_connector.mappers import role_resource
from freshservice_connector.models import AgentRole
from freshservice_connector.pagination import PageToken, SyncPhase
from freshservice_connector.resources import (
    AGENT,
    AGENT_GROUP,
    ROLE,
    Entitlement,
    Grant,
    GrantAlreadyExists,
    GrantAlreadyRevoked,
    Resource,
    ResourceId,
)

logger = logging.getLogger("freshservice.builders.roles")

ASSIGNED = "assigned"


class RoleBuilder(BaseBuilder):
    RESOURCE_TYPE = ROLE

    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        return self._list_resources(
            page_token,
            self.client.list_roles,
            lambda role: role_resource(role, parent_id),
        )

    def entitlements(self, resource: Resource) -> list[Entitlement]:
        return [
            Entitlement(
                resource=resource,
                slug=ASSIGNED,
                display_name=f"{resource.display_name} Role {ASSIGNED}",
                description=f"Assigned to {resource.display_name} role",
                grantable_to=(AGENT.id,),
            )
        ]

    def grants(self, resource: Resource, page_token: str = "") -> SyncPage[Grant]:
        role_id = self._numeric_id(resource.id.resource, "role id")
        entitlement = self.entitlements(resource)[0]
        token = PageToken.decode(page_token, ROLE.id, SyncPhase.USERS)

        if token.phase is SyncPhase.USERS:
            page = self._fetch_page(token, self.client.list_agents)
            if page is None or page.next_page is None:
                next_token = token.advance_phase(SyncPhase.GROUPS)
            else:
                next_token = token.next_page(page.next_page)
            if page is None:
                return SyncPage([], next_token.encode())
            grants = [
                Grant(entitlement, ResourceId(AGENT.id, str(agent.id)))
                for agent in page.records
                if role_id in agent.role_ids
            ]
            return SyncPage(grants, next_token.encode(), rate_limit_annotations(page.rate_limit))

        if token.phase is SyncPhase.GROUPS:
            page = self._fetch_page(token, self.client.list_agent_groups)
            if page is None:
                return SyncPage()
            grants = [
                Grant(entitlement, ResourceId(AGENT_GROUP.id, str(group.id)))
                for group in page.records
                if role_id in group.role_ids
            ]
            return SyncPage(
                grants,
                token.next_page(page.next_page).encode(),
                rate_limit_annotations(page.rate_limit),
            )

        return SyncPage()

    def grant(self, principal: Resource, entitlement: Entitlement) -> list[Any]:
        self._check_principal(principal.id, AGENT, "be granted")
        role_id = self._numeric_id(entitlement.resource.id.resource, "role id")
        agent_id = self._numeric_id(principal.id.resource, "agent id")

        agent, read_rl = self.client.get_agent(agent_id)
        if role_id in agent.role_ids:
            return rate_limit_annotations(read_rl) + [GrantAlreadyExists()]

        roles = list(agent.roles) + [AgentRole(role_id=role_id)]
        _, write_rl = self.client.update_agent_roles(agent_id, roles)
        logger.info(
            "Role has been assigned",
            extra={"resource_id": role_id, "principal_id": agent_id, "entitlement_id": entitlement.id},
        )
        return rate_limit_annotations(write_rl)

    def revoke(self, grant: Grant) -> list[Any]:
        self._check_principal(grant.principal, AGENT, "be revoked from")
        role_id = self._numeric_id(grant.entitlement.resource.id.resource, "role id")
        agent_id = self._numeric_id(grant.principal.resource, "agent id")

        agent, read_rl = self.client.get_agent(agent_id)
        if role_id not in agent.role_ids:
            return rate_limit_annotations(read_rl) + [GrantAlreadyRevoked()]

        roles = [r for r in agent.roles if r.role_id != role_id]
        _, write_rl = self.client.update_agent_roles(agent_id, roles)
        logger.info(
            "Role has been revoked",
            extra={"resource_id": role_id, "principal_id": agent_id, "entitlement_id": grant.entitlement.id},
        )
        return rate_limit_annotations(write_rl)
