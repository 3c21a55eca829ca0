"""Requester users: customers. No entitlements; membership lives on requester groups."""

from __future__ import annotations

from typing import Optional

from freshservice_connector.builders.base import BaseBuilder, SyncPage
from freshservice_connector.mappers import requester_resource
from freshservice_connector.resources import REQUESTER, Resource, ResourceId


class RequesterBuilder(BaseBuilder):
    RESOURCE_TYPE = REQUESTER

    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        return self._list_resources(
            page_token,
            self.client.list_requesters,
            lambda requester: requester_resource(requester, parent_id),
        )
