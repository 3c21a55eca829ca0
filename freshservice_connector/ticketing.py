"""Ticketing: service catalog items as ticket schemas, service requests as tickets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Optional

from freshservice_connector.builders.base import SyncPage, rate_limit_annotations
from freshservice_connector.client import FreshServiceClient
from freshservice_connector.errors import (
    DecodeError,
    FreshServiceError,
    RequestTimeout,
    TicketUpdateError,
    TicketValidationError,
)
from freshservice_connector.models import CustomField, ServiceItem, TicketRecord
from freshservice_connector.pagination import PageToken
from freshservice_connector.resources import Resource

logger = logging.getLogger("freshservice.ticketing")

TICKET_SCHEMA = "ticket_schema"


class FieldKind(str, Enum):
    STRING = "string"
    STRINGS = "strings"
    BOOL = "bool"
    TIMESTAMP = "timestamp"
    PICK_STRING = "pick_string"
    PICK_MULTIPLE_STRINGS = "pick_multiple_strings"


@dataclass(frozen=True)
class TicketStatus:
    id: str
    display_name: str = ""


# Freshservice ticket statuses are fixed; there is no endpoint to list them.
TICKET_STATUSES = (
    TicketStatus("2", "Open"),
    TicketStatus("3", "Pending"),
    TicketStatus("4", "Resolved"),
    TicketStatus("5", "Closed"),
)


@dataclass(frozen=True)
class TicketCustomField:
    id: str
    display_name: str
    kind: FieldKind
    required: bool = False
    allowed_values: tuple[str, ...] = ()


@dataclass
class TicketSchema:
    id: str
    display_name: str
    custom_fields: dict[str, TicketCustomField] = field(default_factory=dict)
    statuses: tuple[TicketStatus, ...] = TICKET_STATUSES


@dataclass
class Ticket:
    id: str = ""
    display_name: str = ""
    description: str = ""
    status: Optional[TicketStatus] = None
    labels: list[str] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)
    requested_for: Optional[Resource] = None
    reporter: Optional[Resource] = None
    url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TicketResult:
    """Per-item outcome of a bulk call; ``error`` is set instead of raising."""

    ticket: Optional[Ticket] = None
    error: Optional[str] = None
    annotations: list[Any] = field(default_factory=list)


def _simple(cf: CustomField, kind: FieldKind) -> TicketCustomField:
    return TicketCustomField(cf.name, cf.label, kind, cf.required)


def _pick(cf: CustomField, kind: FieldKind) -> TicketCustomField:
    # Choices are [label, value] pairs; for dropdowns both are the label,
    # for multi-selects the value is a UUID. Users pick by label.
    return TicketCustomField(
        cf.name, cf.label, kind, cf.required, tuple(choice[0] for choice in cf.choices)
    )


_FIELD_TRANSLATORS: dict[str, Callable[[CustomField], TicketCustomField]] = {
    "custom_text": lambda cf: _simple(cf, FieldKind.STRING),
    "custom_paragraph": lambda cf: _simple(cf, FieldKind.STRING),
    "custom_url": lambda cf: _simple(cf, FieldKind.STRING),
    "custom_date": lambda cf: _simple(cf, FieldKind.TIMESTAMP),
    "custom_checkbox": lambda cf: _simple(cf, FieldKind.BOOL),
    "custom_dropdown": lambda cf: _pick(cf, FieldKind.PICK_STRING),
    "custom_multi_select_dropdown": lambda cf: _pick(cf, FieldKind.PICK_MULTIPLE_STRINGS),
    "custom_lookup_bigint": lambda cf: _simple(cf, FieldKind.STRING),
    # Populated with a list of record ids.
    "custom_multi_lookup": lambda cf: _simple(cf, FieldKind.STRINGS),
}

# Known types with no generic counterpart. Static rich text is display-only.
UNSUPPORTED_FIELD_TYPES = frozenset({
    "custom_decimal",
    "custom_number",
    "custom_static_rich_text",
    "nested_field",
})


def translate_custom_fields(service_item: ServiceItem) -> dict[str, TicketCustomField]:
    """Translate a catalog item's fields one by one, skipping what cannot be mapped."""
    fields: dict[str, TicketCustomField] = {}
    for raw in service_item.custom_fields:
        try:
            cf = CustomField.from_dict(raw)
        except DecodeError as exc:
            logger.warning(
                "Skipping undecodable custom field: %s",
                exc,
                extra={"catalog_item_id": service_item.display_id},
            )
            continue
        if cf.deleted:
            continue
        translate = _FIELD_TRANSLATORS.get(cf.field_type)
        if translate is None:
            reason = "unsupported" if cf.field_type in UNSUPPORTED_FIELD_TYPES else "unknown"
            logger.warning(
                "Skipping %s custom field type %s (%s)",
                reason,
                cf.field_type,
                cf.name,
                extra={"catalog_item_id": service_item.display_id, "field_type": cf.field_type},
            )
            continue
        schema_field = translate(cf)
        fields[schema_field.id] = schema_field
    return fields


def schema_for_service_item(service_item: ServiceItem) -> TicketSchema:
    return TicketSchema(
        id=str(service_item.display_id),
        display_name=service_item.name,
        custom_fields=translate_custom_fields(service_item),
    )


def _check_value(cf: TicketCustomField, value: Any) -> None:
    def fail(expected: str) -> None:
        raise TicketValidationError(
            f"custom field {cf.id!r}: expected {expected}, got {value!r}"
        )

    if cf.kind in (FieldKind.STRING, FieldKind.PICK_STRING):
        if not isinstance(value, str):
            fail("a string")
        if cf.kind is FieldKind.PICK_STRING and value not in cf.allowed_values:
            fail(f"one of {list(cf.allowed_values)}")
    elif cf.kind in (FieldKind.STRINGS, FieldKind.PICK_MULTIPLE_STRINGS):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            fail("a list of strings")
        if cf.kind is FieldKind.PICK_MULTIPLE_STRINGS:
            bad = [v for v in value if v not in cf.allowed_values]
            if bad:
                fail(f"values from {list(cf.allowed_values)}")
    elif cf.kind is FieldKind.BOOL:
        if not isinstance(value, bool):
            fail("a boolean")
    elif cf.kind is FieldKind.TIMESTAMP:
        if not isinstance(value, (date, str)):
            fail("a date")
        if isinstance(value, str):
            try:
                date.fromisoformat(value)
            except ValueError:
                fail("an ISO date (YYYY-MM-DD)")


def validate_ticket(schema: TicketSchema, ticket: Ticket) -> None:
    """Raise TicketValidationError unless ``ticket`` satisfies ``schema``."""
    for field_id, cf in schema.custom_fields.items():
        value = ticket.custom_fields.get(field_id)
        if value is None or value == "" or value == []:
            if cf.required:
                raise TicketValidationError(f"custom field {field_id!r} is required")
            continue
        _check_value(cf, value)


def _wire_value(cf: TicketCustomField, value: Any) -> Any:
    if cf.kind is FieldKind.TIMESTAMP and isinstance(value, datetime):
        return value.date().isoformat()
    if cf.kind is FieldKind.TIMESTAMP and isinstance(value, date):
        return value.isoformat()
    if isinstance(value, tuple):
        return list(value)
    return value


def _login(resource: Resource, role: str) -> str:
    trait = resource.user_trait
    if trait is None or not trait.login:
        raise TicketValidationError(f"{role} {resource.id} has no user login")
    return trait.login


class TicketingAdapter:
    def __init__(
        self,
        client: FreshServiceClient,
        category_id: Optional[str] = None,
        page_size: int = 100,
    ) -> None:
        self.client = client
        self.category_id = category_id
        self.page_size = page_size

    def _to_ticket(self, record: TicketRecord, requested_for: Optional[Resource] = None) -> Ticket:
        return Ticket(
            id=str(record.id),
            display_name=record.subject,
            description=record.description_text,
            status=TicketStatus(str(record.status)) if record.status is not None else None,
            labels=list(record.tags),
            url=self.client.ticket_url(record.id),
            created_at=record.created_at,
            updated_at=record.updated_at,
            requested_for=requested_for,
        )

    def list_ticket_schemas(self, page_token: str = "") -> SyncPage[TicketSchema]:
        """One page of published catalog items, each fetched in full and translated."""
        token = PageToken.decode(page_token, TICKET_SCHEMA)
        try:
            page = self.client.list_service_catalog_items(
                token.page, self.page_size, category_id=self.category_id
            )
        except RequestTimeout:
            logger.warning("Request timed out, treating as end of data", extra={"page": token.page})
            return SyncPage()

        schemas = []
        for item in page.records:
            if item.deleted or item.is_draft:
                continue
            detail, _ = self.client.get_service_item(item.display_id)
            schemas.append(schema_for_service_item(detail))
        return SyncPage(
            schemas,
            token.next_page(page.next_page).encode(),
            rate_limit_annotations(page.rate_limit),
        )

    def get_ticket_schema(self, schema_id: str) -> TicketSchema:
        service_item, _ = self.client.get_service_item(schema_id)
        return schema_for_service_item(service_item)

    def get_ticket(self, ticket_id: str) -> tuple[Ticket, list[Any]]:
        record, rate_limit = self.client.get_ticket(ticket_id)
        return self._to_ticket(record), rate_limit_annotations(rate_limit)

    def create_ticket(self, ticket: Ticket, schema: TicketSchema) -> tuple[Ticket, list[Any]]:
        """Place a service request, then set subject, description and tags.

        The place_request endpoint ignores those three, hence the follow-up
        update. The two calls are not atomic: if the update fails the
        request already exists, and TicketUpdateError carries it.
        """
        validate_ticket(schema, ticket)

        custom_fields = {
            field_id: _wire_value(cf, ticket.custom_fields[field_id])
            for field_id, cf in schema.custom_fields.items()
            if ticket.custom_fields.get(field_id) not in (None, "", [])
        }

        requested_for = _login(ticket.requested_for, "requested_for") if ticket.requested_for else ""
        requested_by = _login(ticket.reporter, "reporter") if ticket.reporter else ""
        if not requested_by:
            me, _ = self.client.get_agent("me")
            requested_by = me.email or ""

        payload: dict[str, Any] = {
            "email": requested_by,
            "quantity": 1,
            "custom_fields": custom_fields,
        }
        if requested_for:
            payload["requested_for"] = requested_for

        try:
            record, _ = self.client.create_service_request(schema.id, payload)
        except FreshServiceError:
            logger.error(
                "Failed to create service request", extra={"catalog_item_id": schema.id}
            )
            raise
        created = self._to_ticket(record, requested_for=ticket.requested_for)
        logger.info(
            "Service request created",
            extra={"catalog_item_id": schema.id, "resource_id": created.id},
        )

        update: dict[str, Any] = {"subject": ticket.display_name, "description": ticket.description}
        if ticket.labels:
            update["tags"] = list(ticket.labels)
        try:
            updated, rate_limit = self.client.update_ticket(record.id, update)
        except FreshServiceError as exc:
            raise TicketUpdateError(
                f"freshservice-connector: failed to update ticket {created.id}: {exc}", created
            ) from exc

        created.display_name = updated.subject
        created.description = updated.description_text
        created.labels = list(updated.tags)
        created.updated_at = updated.updated_at or created.updated_at
        return created, rate_limit_annotations(rate_limit)

    def bulk_create_tickets(self, ticket_requests: list[tuple[Ticket, TicketSchema]]) -> list[TicketResult]:
        results = []
        for ticket, schema in ticket_requests:
            try:
                created, annotations = self.create_ticket(ticket, schema)
                results.append(TicketResult(created, None, annotations))
            except TicketUpdateError as exc:
                results.append(TicketResult(exc.ticket, str(exc)))
            except FreshServiceError as exc:
                results.append(TicketResult(None, str(exc)))
        return results

    def bulk_get_tickets(self, ticket_ids: list[str]) -> list[TicketResult]:
        results = []
        for ticket_id in ticket_ids:
            try:
                ticket, annotations = self.get_ticket(ticket_id)
                results.append(TicketResult(ticket, None, annotations))
            except FreshServiceError as exc:
                results.append(TicketResult(None, str(exc)))
        return results
