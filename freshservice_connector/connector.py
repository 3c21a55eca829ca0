"""Connector facade: the builders, metadata and id-based grant/revoke dispatch."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from freshservice_connector.builders import (
    AgentBuilder,
    AgentGroupBuilder,
    BaseBuilder,
    RequesterBuilder,
    RequesterGroupBuilder,
    RoleBuilder,
)
from freshservice_connector.client import FreshServiceClient
from freshservice_connector.config import ConnectorConfig
from freshservice_connector.resources import (
    Entitlement,
    Grant,
    Resource,
    ResourceId,
    ResourceType,
)
from freshservice_connector.ticketing import TicketingAdapter

logger = logging.getLogger("freshservice.connector")

# Sync order: users before the groups and roles that reference them.
BUILDER_REGISTRY: tuple[type[BaseBuilder], ...] = (
    AgentBuilder,
    RequesterBuilder,
    AgentGroupBuilder,
    RoleBuilder,
    RequesterGroupBuilder,
)


class Connector:
    def __init__(self, client: FreshServiceClient, config: ConnectorConfig) -> None:
        self.client = client
        self.config = config
        self._builders = {
            cls.RESOURCE_TYPE.id: cls(client, page_size=config.page_size)
            for cls in BUILDER_REGISTRY
        }
        self.ticketing: Optional[TicketingAdapter] = None
        if config.ticketing:
            self.ticketing = TicketingAdapter(
                client, category_id=config.category_id, page_size=config.page_size
            )

    def builders(self) -> list[BaseBuilder]:
        return list(self._builders.values())

    def builder(self, resource_type: str) -> BaseBuilder:
        try:
            return self._builders[resource_type]
        except KeyError:
            raise ValueError(f"unknown resource type {resource_type!r}") from None

    def resource_types(self) -> list[ResourceType]:
        return [b.resource_type for b in self._builders.values()]

    def metadata(self) -> dict[str, Any]:
        return {
            "display_name": "Freshservice",
            "description": (
                "Connector syncing agents, requesters, agent groups, roles and "
                "requester groups from Freshservice."
            ),
            "ticketing": self.ticketing is not None,
        }

    def validate(self) -> list[Any]:
        """Exercise the credentials with the cheapest authenticated call."""
        page = self.client.list_agents(page=1, per_page=1)
        logger.info("Credentials validated", extra={"rate_limit_remaining": (
            page.rate_limit.remaining if page.rate_limit else None
        )})
        return [page.rate_limit] if page.rate_limit else []

    def grant(self, principal_id: ResourceId, entitlement_id: str) -> list[Any]:
        entitlement = Entitlement.from_id(entitlement_id)
        principal = Resource(id=principal_id, display_name=principal_id.resource)
        return self.builder(entitlement.resource.id.resource_type).grant(principal, entitlement)

    def revoke(self, grant_id: str) -> list[Any]:
        grant = Grant.from_id(grant_id)
        return self.builder(grant.entitlement.resource.id.resource_type).revoke(grant)


def new_connector(
    config: ConnectorConfig, session: Optional[requests.Session] = None
) -> Connector:
    """Build the client (validating the domain) and wrap it in a Connector."""
    return Connector(FreshServiceClient.from_config(config, session=session), config)
