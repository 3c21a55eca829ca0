"""Typed Freshservice records.

Freshservice has served several shapes for the same entity over the life of
the v2 API (agents in particular: flat name/email fields vs. a nested
``contact`` object). Each ``from_dict`` accepts every known shape and yields
one dataclass; optional fields are ``None`` or empty when absent, and a
missing ``id`` is rejected with ``DecodeError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from freshservice_connector.errors import DecodeError

DEFAULT_ASSIGNMENT_SCOPE = "entire_helpdesk"
SERVICE_ITEM_VISIBILITY_DRAFT = 1


def _require(data: Any, key: str, record: str) -> Any:
    if not isinstance(data, dict):
        raise DecodeError(f"{record}: expected an object, got {type(data).__name__}", data)
    value = data.get(key)
    if value is None:
        raise DecodeError(f"{record}: required field {key!r} is missing", data)
    return value


def _int(value: Any, key: str, record: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"{record}: field {key!r} is not an integer: {value!r}") from exc


def _int_list(values: Any, key: str, record: str) -> tuple[int, ...]:
    if not values:
        return ()
    if not isinstance(values, list):
        raise DecodeError(f"{record}: field {key!r} is not a list: {values!r}")
    return tuple(_int(v, key, record) for v in values)


def _str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse Freshservice ISO-8601 timestamps ("2024-01-02T03:04:05Z")."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def split_full_name(name: str) -> tuple[str, str]:
    """Split "Jane van Dyke" into ("Jane", "van Dyke")."""
    first, _, last = name.strip().partition(" ")
    return first, last.strip()


@dataclass(frozen=True)
class AgentRole:
    role_id: int
    assignment_scope: str = DEFAULT_ASSIGNMENT_SCOPE
    groups: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "AgentRole":
        return cls(
            role_id=_int(_require(data, "role_id", "agent role"), "role_id", "agent role"),
            assignment_scope=data.get("assignment_scope") or DEFAULT_ASSIGNMENT_SCOPE,
            groups=_int_list(data.get("groups"), "groups", "agent role"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "role_id": self.role_id,
            "assignment_scope": self.assignment_scope,
        }
        if self.groups:
            payload["groups"] = list(self.groups)
        return payload


@dataclass(frozen=True)
class Agent:
    id: int
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    active: bool = True
    job_title: Optional[str] = None
    mobile_phone: Optional[str] = None
    work_phone: Optional[str] = None
    address: Optional[str] = None
    agent_type: Optional[str] = None
    roles: tuple[AgentRole, ...] = ()
    last_login_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None

    @property
    def role_ids(self) -> tuple[int, ...]:
        return tuple(r.role_id for r in self.roles)

    @classmethod
    def from_dict(cls, data: dict) -> "Agent":
        agent_id = _int(_require(data, "id", "agent"), "id", "agent")
        roles = tuple(AgentRole.from_dict(r) for r in data.get("roles") or [])
        last_active_at = parse_timestamp(data.get("last_active_at"))

        contact = data.get("contact")
        if isinstance(contact, dict):
            # Older shape: identity details nested under "contact".
            first, last = split_full_name(contact.get("name") or "")
            return cls(
                id=agent_id,
                email=_str(contact.get("email")),
                first_name=first or None,
                last_name=last or None,
                active=bool(contact.get("active", True)) and not data.get("deactivated", False),
                job_title=_str(contact.get("job_title")),
                mobile_phone=_str(contact.get("mobile")),
                work_phone=_str(contact.get("phone")),
                agent_type=_str(data.get("type")),
                roles=roles,
                last_login_at=parse_timestamp(contact.get("last_login_at")),
                last_active_at=last_active_at,
            )

        return cls(
            id=agent_id,
            email=_str(data.get("email")),
            first_name=_str(data.get("first_name")),
            last_name=_str(data.get("last_name")),
            active=bool(data.get("active", True)) and not data.get("deactivated", False),
            job_title=_str(data.get("job_title")),
            mobile_phone=_str(data.get("mobile_phone_number")),
            work_phone=_str(data.get("work_phone_number")),
            address=_str(data.get("address")),
            agent_type=_str(data.get("type") or data.get("agent_type")),
            roles=roles,
            last_login_at=parse_timestamp(data.get("last_login_at")),
            last_active_at=last_active_at,
        )


@dataclass(frozen=True)
class Requester:
    id: int
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    active: bool = True
    is_agent: bool = False
    job_title: Optional[str] = None
    mobile_phone: Optional[str] = None
    work_phone: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Requester":
        # Requester group member listings use "email" instead of "primary_email".
        return cls(
            id=_int(_require(data, "id", "requester"), "id", "requester"),
            email=_str(data.get("primary_email") or data.get("email")),
            first_name=_str(data.get("first_name")),
            last_name=_str(data.get("last_name")),
            active=bool(data.get("active", True)),
            is_agent=bool(data.get("is_agent", False)),
            job_title=_str(data.get("job_title")),
            mobile_phone=_str(data.get("mobile_phone_number")),
            work_phone=_str(data.get("work_phone_number")),
            address=_str(data.get("address")),
        )


@dataclass(frozen=True)
class AgentGroup:
    id: int
    name: str = ""
    description: Optional[str] = None
    members: tuple[int, ...] = ()
    leaders: tuple[int, ...] = ()
    role_ids: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "AgentGroup":
        return cls(
            id=_int(_require(data, "id", "agent group"), "id", "agent group"),
            name=data.get("name") or "",
            description=_str(data.get("description")),
            members=_int_list(data.get("members"), "members", "agent group"),
            leaders=_int_list(data.get("leaders"), "leaders", "agent group"),
            role_ids=_int_list(data.get("role_ids"), "role_ids", "agent group"),
        )


@dataclass(frozen=True)
class Role:
    id: int
    name: str = ""
    description: Optional[str] = None
    role_type: Optional[str] = None
    default: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Role":
        return cls(
            id=_int(_require(data, "id", "role"), "id", "role"),
            name=data.get("name") or "",
            description=_str(data.get("description")),
            role_type=_str(data.get("role_type")),
            default=bool(data.get("default", False)),
        )


@dataclass(frozen=True)
class RequesterGroup:
    id: int
    name: str = ""
    description: Optional[str] = None
    group_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RequesterGroup":
        return cls(
            id=_int(_require(data, "id", "requester group"), "id", "requester group"),
            name=data.get("name") or "",
            description=_str(data.get("description")),
            group_type=_str(data.get("type")),
        )


@dataclass(frozen=True)
class CustomField:
    name: str
    label: str
    field_type: str
    required: bool = False
    choices: tuple[tuple[str, ...], ...] = ()
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "CustomField":
        name = str(_require(data, "name", "custom field"))
        field_type = str(_require(data, "field_type", "custom field"))
        raw_choices = data.get("choices") or []
        if not isinstance(raw_choices, list):
            raise DecodeError(f"custom field {name!r}: choices is not a list", data)
        choices = []
        for choice in raw_choices:
            # Each choice is a [label, value] pair; label is what users pick.
            if not isinstance(choice, list) or not choice:
                raise DecodeError(f"custom field {name!r}: malformed choice {choice!r}", data)
            choices.append(tuple(str(c) for c in choice))
        return cls(
            name=name,
            label=data.get("label") or name,
            field_type=field_type,
            required=bool(data.get("required", False)),
            choices=tuple(choices),
            deleted=bool(data.get("deleted", False)),
        )


@dataclass(frozen=True)
class ServiceItem:
    id: int
    display_id: int
    name: str = ""
    category_id: Optional[int] = None
    deleted: bool = False
    visibility: Optional[int] = None  # 1 = draft, 2 = published
    custom_fields: tuple[dict, ...] = field(default=(), repr=False)

    @property
    def is_draft(self) -> bool:
        return self.visibility == SERVICE_ITEM_VISIBILITY_DRAFT

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceItem":
        item_id = _int(_require(data, "id", "service item"), "id", "service item")
        category_id = data.get("category_id")
        visibility = data.get("visibility")
        return cls(
            id=item_id,
            display_id=_int(data.get("display_id", item_id), "display_id", "service item"),
            name=data.get("name") or "",
            category_id=_int(category_id, "category_id", "service item") if category_id is not None else None,
            deleted=bool(data.get("deleted", False)),
            visibility=_int(visibility, "visibility", "service item") if visibility is not None else None,
            # Decoded field by field later so one bad field cannot sink the item.
            custom_fields=tuple(data.get("custom_fields") or ()),
        )


@dataclass(frozen=True)
class TicketRecord:
    id: int
    subject: str = ""
    description_text: str = ""
    status: Optional[int] = None
    tags: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TicketRecord":
        status = data.get("status")
        return cls(
            id=_int(_require(data, "id", "ticket"), "id", "ticket"),
            subject=data.get("subject") or "",
            description_text=data.get("description_text") or "",
            status=_int(status, "status", "ticket") if status is not None else None,
            tags=tuple(str(t) for t in data.get("tags") or ()),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )
