"""Agent users: staff accounts. Listed only; their roles are granted via the role builder."""

from __future__ import annotations

from typing import Optional

from freshservice_connector.builders.base import BaseBuilder, SyncPage
from freshservice_connector.mappers import agent_resource
from freshservice_connector.resources import AGENT, Resource, ResourceId


class AgentBuilder(BaseBuilder):
    RESOURCE_TYPE = AGENT

    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        return self._list_resources(
            page_token,
            self.client.list_agents,
            lambda agent: agent_resource(agent, parent_id),
        )
