"""Requester groups: the "member" entitlement, granted to requesters only.

Unlike agent groups, Freshservice exposes membership of requester groups as
its own paginated listing with per-member add and remove calls. Grant and
revoke still read current membership first so that repeating either is a
no-op.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from freshservice_connector.builders.base import BaseBuilder, SyncPage, rate_limit_annotations
from freshservice_connector.mappers import requester_group_resource
from freshservice_connector.pagination import PageToken
from freshservice_connector.resources import (
    REQUESTER,
    REQUESTER_GROUP,
    Entitlement,
    Grant,
    GrantAlreadyExists,
    GrantAlreadyRevoked,
    Resource,
    ResourceId,
)

logger = logging.getLogger("freshservice.builders.requester_groups")

MEMBER = "member"


class RequesterGroupBuilder(BaseBuilder):
    RESOURCE_TYPE = REQUESTER_GROUP

    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        return self._list_resources(
            page_token,
            self.client.list_requester_groups,
            lambda group: requester_group_resource(group, parent_id),
        )

    def entitlements(self, resource: Resource) -> list[Entitlement]:
        return [
            Entitlement(
                resource=resource,
                slug=MEMBER,
                display_name=f"{resource.display_name} Requester Group {MEMBER}",
                description=f"Access to {resource.display_name} requester group in Freshservice",
                grantable_to=(REQUESTER.id,),
            )
        ]

    def grants(self, resource: Resource, page_token: str = "") -> SyncPage[Grant]:
        entitlement = self.entitlements(resource)[0]
        token = PageToken.decode(page_token, REQUESTER_GROUP.id)
        page = self._fetch_page(
            token,
            lambda page, per_page: self.client.list_requester_group_members(
                resource.id.resource, page, per_page
            ),
        )
        if page is None:
            return SyncPage()
        grants = [
            Grant(entitlement, ResourceId(REQUESTER.id, str(member.id)))
            for member in page.records
        ]
        return SyncPage(
            grants,
            token.next_page(page.next_page).encode(),
            rate_limit_annotations(page.rate_limit),
        )

    def grant(self, principal: Resource, entitlement: Entitlement) -> list[Any]:
        self._check_principal(principal.id, REQUESTER, "be granted")
        group_id = entitlement.resource.id.resource
        requester_id = self._numeric_id(principal.id.resource, "requester id")

        if self._is_member(group_id, requester_id):
            return [GrantAlreadyExists()]

        rate_limit = self.client.add_requester_group_member(group_id, requester_id)
        logger.info(
            "Membership has been created",
            extra={"resource_id": group_id, "principal_id": requester_id, "entitlement_id": entitlement.id},
        )
        return rate_limit_annotations(rate_limit)

    def revoke(self, grant: Grant) -> list[Any]:
        self._check_principal(grant.principal, REQUESTER, "be revoked from")
        group_id = grant.entitlement.resource.id.resource
        requester_id = self._numeric_id(grant.principal.resource, "requester id")

        if not self._is_member(group_id, requester_id):
            return [GrantAlreadyRevoked()]

        rate_limit = self.client.remove_requester_group_member(group_id, requester_id)
        logger.info(
            "Membership has been revoked",
            extra={"resource_id": group_id, "principal_id": requester_id, "entitlement_id": grant.entitlement.id},
        )
        return rate_limit_annotations(rate_limit)

    def _is_member(self, group_id: str, requester_id: int) -> bool:
        page_number: Optional[int] = 1
        while page_number is not None:
            page = self.client.list_requester_group_members(group_id, page_number, self.page_size)
            if any(member.id == requester_id for member in page.records):
                return True
            page_number = page.next_page
        return False
