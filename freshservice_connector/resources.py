"""Generic identity-governance model the sync builders emit.

Ids follow the orchestrator's scheme: a resource is ``kind:resourceId`` and
an entitlement is ``kind:resourceId:slug``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Trait(str, Enum):
    USER = "user"
    GROUP = "group"
    ROLE = "role"


class UserStatus(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


class EntitlementPurpose(str, Enum):
    ASSIGNMENT = "assignment"
    PERMISSION = "permission"


@dataclass(frozen=True)
class ResourceType:
    id: str
    display_name: str
    description: str
    traits: tuple[Trait, ...]
    skip_entitlements_and_grants: bool = False


AGENT = ResourceType(
    id="agent",
    display_name="Agent",
    description="Agent users of Freshservice",
    traits=(Trait.USER,),
)
REQUESTER = ResourceType(
    id="requester",
    display_name="Requester",
    description="Requester users of Freshservice",
    traits=(Trait.USER,),
    skip_entitlements_and_grants=True,
)
AGENT_GROUP = ResourceType(
    id="agent_group",
    display_name="Agent Group",
    description="Agent groups of Freshservice",
    traits=(Trait.GROUP,),
)
ROLE = ResourceType(
    id="role",
    display_name="Role",
    description="Roles of Freshservice",
    traits=(Trait.ROLE,),
)
REQUESTER_GROUP = ResourceType(
    id="requester_group",
    display_name="Requester Group",
    description="Requester groups of Freshservice",
    traits=(Trait.GROUP,),
)

RESOURCE_TYPES = (AGENT, REQUESTER, AGENT_GROUP, ROLE, REQUESTER_GROUP)


@dataclass(frozen=True)
class ResourceId:
    resource_type: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource}"

    @classmethod
    def parse(cls, value: str) -> "ResourceId":
        kind, sep, rid = value.partition(":")
        if not sep or not kind or not rid or ":" in rid:
            raise ValueError(f"invalid resource id {value!r}, expected kind:id")
        return cls(kind, rid)


@dataclass(frozen=True)
class UserTrait:
    login: Optional[str]
    email: Optional[str]
    status: UserStatus
    profile: dict[str, Any] = field(default_factory=dict, hash=False)
    last_login_at: Optional[str] = None


@dataclass(frozen=True)
class GroupTrait:
    profile: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class RoleTrait:
    profile: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class Resource:
    id: ResourceId
    display_name: str
    description: Optional[str] = None
    parent_id: Optional[ResourceId] = None
    user_trait: Optional[UserTrait] = None
    group_trait: Optional[GroupTrait] = None
    role_trait: Optional[RoleTrait] = None


def entitlement_id(resource_id: ResourceId, slug: str) -> str:
    return f"{resource_id.resource_type}:{resource_id.resource}:{slug}"


def parse_entitlement_id(value: str) -> tuple[ResourceId, str]:
    """Split ``kind:resourceId:slug``. Exactly three non-empty parts."""
    parts = value.split(":")
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"invalid entitlement id {value!r}, expected kind:id:slug")
    return ResourceId(parts[0], parts[1]), parts[2]


@dataclass(frozen=True)
class Entitlement:
    resource: Resource
    slug: str
    display_name: str
    description: str
    grantable_to: tuple[str, ...]
    purpose: EntitlementPurpose = EntitlementPurpose.ASSIGNMENT

    @property
    def id(self) -> str:
        return entitlement_id(self.resource.id, self.slug)

    @classmethod
    def from_id(cls, value: str) -> "Entitlement":
        """Minimal entitlement for grant/revoke requests that carry only an id."""
        resource_id, slug = parse_entitlement_id(value)
        return cls(
            resource=Resource(id=resource_id, display_name=resource_id.resource),
            slug=slug,
            display_name=slug,
            description="",
            grantable_to=(),
        )


@dataclass(frozen=True)
class Grant:
    entitlement: Entitlement
    principal: ResourceId

    @property
    def id(self) -> str:
        return f"{self.entitlement.id}:{self.principal}"

    @classmethod
    def from_id(cls, value: str) -> "Grant":
        """Parse ``kind:resourceId:slug:principalKind:principalId``."""
        parts = value.split(":")
        if len(parts) != 5 or not all(parts):
            raise ValueError(f"invalid grant id {value!r}")
        return cls(
            entitlement=Entitlement.from_id(":".join(parts[:3])),
            principal=ResourceId(parts[3], parts[4]),
        )


@dataclass(frozen=True)
class GrantAlreadyExists:
    """Grant requested for a principal that already holds it; nothing written."""


@dataclass(frozen=True)
class GrantAlreadyRevoked:
    """Revoke requested for a principal that does not hold it; nothing written."""
