"""One sync builder per Freshservice resource type."""

from freshservice_connector.builders.agent_groups import AgentGroupBuilder
from freshservice_connector.builders.agents import AgentBuilder
from freshservice_connector.builders.base import BaseBuilder, SyncPage
from freshservice_connector.builders.requester_groups import RequesterGroupBuilder
from freshservice_connector.builders.requesters import RequesterBuilder
from freshservice_connector.builders.roles import RoleBuilder

__all__ = [
    "AgentBuilder",
    "AgentGroupBuilder",
    "BaseBuilder",
    "RequesterBuilder",
    "RequesterGroupBuilder",
    "RoleBuilder",
    "SyncPage",
]
