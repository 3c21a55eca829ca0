"""Agent groups: member and admin (group leader) entitlements.

The group record's ``members`` and ``leaders`` lists are the only record of
membership. Freshservice has no add/remove-member call for agent groups, so
grant and revoke read the group, edit the list in memory and PUT the whole
list back. Two callers editing the same group at once can lose an update:
the API offers no version check to guard against it.

Grants yields one ``member`` grant per id in ``members`` (|members| of
them) plus one ``admin`` grant per id in ``leaders``; a leader who is also
a member appears under both entitlements.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from freshservice_connector.builders.base import BaseBuilder, SyncPage, rate_limit_annotations
from freshservice_connector.errors import RequestTimeout
from freshservice_connector.mappers import agent_group_resource
from freshservice_connector.models import AgentGroup
from freshservice_connector.resources import (
    AGENT,
    AGENT_GROUP,
    Entitlement,
    EntitlementPurpose,
    Grant,
    GrantAlreadyExists,
    GrantAlreadyRevoked,
    Resource,
    ResourceId,
)

logger = logging.getLogger("freshservice.builders.agent_groups")

MEMBER = "member"
ADMIN = "admin"

# entitlement slug -> AgentGroup attribute / update_agent_group keyword
_LISTS = {MEMBER: "members", ADMIN: "leaders"}


class AgentGroupBuilder(BaseBuilder):
    RESOURCE_TYPE = AGENT_GROUP

    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        return self._list_resources(
            page_token,
            self.client.list_agent_groups,
            lambda group: agent_group_resource(group, parent_id),
        )

    def entitlements(self, resource: Resource) -> list[Entitlement]:
        return [
            Entitlement(
                resource=resource,
                slug=MEMBER,
                display_name=f"{resource.display_name} Group Member",
                description=f"Member of the {resource.display_name} group in Freshservice",
                grantable_to=(AGENT.id,),
            ),
            Entitlement(
                resource=resource,
                slug=ADMIN,
                display_name=f"{resource.display_name} Group Admin",
                description=f"Leader of the {resource.display_name} group in Freshservice",
                grantable_to=(AGENT.id,),
                purpose=EntitlementPurpose.PERMISSION,
            ),
        ]

    def grants(self, resource: Resource, page_token: str = "") -> SyncPage[Grant]:
        try:
            group, rate_limit = self.client.get_agent_group(resource.id.resource)
        except RequestTimeout:
            logger.warning(
                "Request timed out reading group, treating as no grants",
                extra={"resource_type": AGENT_GROUP.id, "resource_id": resource.id.resource},
            )
            return SyncPage()

        entitlements = {e.slug: e for e in self.entitlements(resource)}
        grants = [
            Grant(entitlements[slug], ResourceId(AGENT.id, str(agent_id)))
            for slug, attr in _LISTS.items()
            for agent_id in getattr(group, attr)
        ]
        return SyncPage(grants, "", rate_limit_annotations(rate_limit))

    def grant(self, principal: Resource, entitlement: Entitlement) -> list[Any]:
        self._check_principal(principal.id, AGENT, "be granted")
        attr = self._list_for(entitlement)
        agent_id = self._numeric_id(principal.id.resource, "agent id")
        group_id = entitlement.resource.id.resource

        group, read_rl = self.client.get_agent_group(group_id)
        current = list(getattr(group, attr))
        if agent_id in current:
            return rate_limit_annotations(read_rl) + [GrantAlreadyExists()]

        _, write_rl = self._replace(group, attr, current + [agent_id])
        logger.info(
            "Membership has been created",
            extra={"resource_id": group_id, "principal_id": agent_id, "entitlement_id": entitlement.id},
        )
        return rate_limit_annotations(write_rl)

    def revoke(self, grant: Grant) -> list[Any]:
        self._check_principal(grant.principal, AGENT, "be revoked from")
        attr = self._list_for(grant.entitlement)
        agent_id = self._numeric_id(grant.principal.resource, "agent id")
        group_id = grant.entitlement.resource.id.resource

        group, read_rl = self.client.get_agent_group(group_id)
        current = list(getattr(group, attr))
        if agent_id not in current:
            return rate_limit_annotations(read_rl) + [GrantAlreadyRevoked()]

        _, write_rl = self._replace(group, attr, [m for m in current if m != agent_id])
        logger.info(
            "Membership has been revoked",
            extra={"resource_id": group_id, "principal_id": agent_id, "entitlement_id": grant.entitlement.id},
        )
        return rate_limit_annotations(write_rl)

    @staticmethod
    def _list_for(entitlement: Entitlement) -> str:
        try:
            return _LISTS[entitlement.slug]
        except KeyError:
            raise ValueError(f"unknown agent group entitlement {entitlement.slug!r}") from None

    def _replace(self, group: AgentGroup, attr: str, new_list: list[int]) -> tuple[AgentGroup, Any]:
        return self.client.update_agent_group(group.id, **{attr: new_list})
