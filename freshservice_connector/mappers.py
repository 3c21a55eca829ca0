"""Vendor record -> generic resource. Pure functions, no I/O."""

from __future__ import annotations

from typing import Optional

from freshservice_connector.models import Agent, AgentGroup, Requester, RequesterGroup, Role
from freshservice_connector.resources import (
    AGENT,
    AGENT_GROUP,
    REQUESTER,
    REQUESTER_GROUP,
    ROLE,
    GroupTrait,
    Resource,
    ResourceId,
    RoleTrait,
    UserStatus,
    UserTrait,
)


def display_name(first_name: Optional[str], last_name: Optional[str], email: Optional[str]) -> str:
    """First + last name, or the email when both are blank."""
    name = " ".join(p.strip() for p in (first_name or "", last_name or "") if p and p.strip())
    return name or (email or "")


def _status(active: bool) -> UserStatus:
    return UserStatus.ENABLED if active else UserStatus.DISABLED


def agent_resource(agent: Agent, parent_id: Optional[ResourceId] = None) -> Resource:
    profile = {
        "login": agent.email,
        "first_name": agent.first_name,
        "last_name": agent.last_name,
        "email": agent.email,
        "user_id": agent.id,
        "type": agent.agent_type,
        "job_title": agent.job_title,
        "mobile_phone": agent.mobile_phone,
        "work_phone": agent.work_phone,
        "address": agent.address,
        "role_ids": list(agent.role_ids),
        "last_active_at": agent.last_active_at.isoformat() if agent.last_active_at else None,
    }
    return Resource(
        id=ResourceId(AGENT.id, str(agent.id)),
        display_name=display_name(agent.first_name, agent.last_name, agent.email),
        parent_id=parent_id,
        user_trait=UserTrait(
            login=agent.email,
            email=agent.email,
            status=_status(agent.active),
            profile=profile,
            last_login_at=agent.last_login_at.isoformat() if agent.last_login_at else None,
        ),
    )


def requester_resource(requester: Requester, parent_id: Optional[ResourceId] = None) -> Resource:
    profile = {
        "login": requester.email,
        "first_name": requester.first_name,
        "last_name": requester.last_name,
        "email": requester.email,
        "user_id": requester.id,
        "is_agent": requester.is_agent,
        "job_title": requester.job_title,
        "mobile_phone": requester.mobile_phone,
        "work_phone": requester.work_phone,
        "address": requester.address,
    }
    return Resource(
        id=ResourceId(REQUESTER.id, str(requester.id)),
        display_name=display_name(requester.first_name, requester.last_name, requester.email),
        parent_id=parent_id,
        user_trait=UserTrait(
            login=requester.email,
            email=requester.email,
            status=_status(requester.active),
            profile=profile,
        ),
    )


def agent_group_resource(group: AgentGroup, parent_id: Optional[ResourceId] = None) -> Resource:
    return Resource(
        id=ResourceId(AGENT_GROUP.id, str(group.id)),
        display_name=group.name or str(group.id),
        description=group.description,
        parent_id=parent_id,
        group_trait=GroupTrait(profile={
            "group_id": group.id,
            "group_name": group.name,
            "member_count": len(group.members),
        }),
    )


def requester_group_resource(group: RequesterGroup, parent_id: Optional[ResourceId] = None) -> Resource:
    return Resource(
        id=ResourceId(REQUESTER_GROUP.id, str(group.id)),
        display_name=group.name or str(group.id),
        description=group.description,
        parent_id=parent_id,
        group_trait=GroupTrait(profile={
            "group_id": group.id,
            "group_name": group.name,
            "group_type": group.group_type,
        }),
    )


def role_resource(role: Role, parent_id: Optional[ResourceId] = None) -> Resource:
    return Resource(
        id=ResourceId(ROLE.id, str(role.id)),
        display_name=role.name or str(role.id),
        description=role.description,
        parent_id=parent_id,
        role_trait=RoleTrait(profile={
            "role_id": role.id,
            "role_name": role.name,
            "role_type": role.role_type,
            "default": role.default,
        }),
    )
