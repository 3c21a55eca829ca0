"""Tests for ticketing.py."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import agent_record, make_response
from freshservice_connector.errors import (
    RateLimitExceeded,
    TicketUpdateError,
    TicketValidationError,
)
from freshservice_connector.models import ServiceItem
from freshservice_connector.resources import Resource, ResourceId, UserStatus, UserTrait
from freshservice_connector.ticketing import (
    FieldKind,
    Ticket,
    TicketingAdapter,
    TicketStatus,
    schema_for_service_item,
    translate_custom_fields,
    validate_ticket,
)

CUSTOM_FIELDS = [
    {"name": "reason", "label": "Reason", "field_type": "custom_text", "required": True},
    {"name": "device", "label": "Device", "field_type": "custom_dropdown",
     "choices": [["Laptop", "Laptop"], ["Phone", "Phone"]]},
    {"name": "apps", "label": "Apps", "field_type": "custom_multi_select_dropdown",
     "choices": [["Slack", "6f1c-uuid"], ["Zoom", "9a2d-uuid"]]},
    {"name": "urgent", "label": "Urgent", "field_type": "custom_checkbox"},
    {"name": "needed_by", "label": "Needed by", "field_type": "custom_date"},
    {"name": "cost", "label": "Cost", "field_type": "custom_decimal"},
    {"name": "note", "label": "Note", "field_type": "custom_static_rich_text"},
    {"name": "manager", "label": "Manager", "field_type": "custom_lookup_bigint"},
    {"name": "assets", "label": "Assets", "field_type": "custom_multi_lookup"},
    {"name": "location", "label": "Location", "field_type": "nested_field"},
    {"label": "Broken", "field_type": "custom_text"},
    {"name": "old", "label": "Old", "field_type": "custom_text", "deleted": True},
    {"name": "mystery", "label": "Mystery", "field_type": "custom_hologram"},
]

ITEM = {"id": 1, "display_id": 11, "name": "New laptop", "visibility": 2, "custom_fields": CUSTOM_FIELDS}


@pytest.fixture
def adapter(client):
    return TicketingAdapter(client)


@pytest.fixture
def schema():
    return schema_for_service_item(ServiceItem.from_dict(ITEM))


def _user(kind, rid, login):
    return Resource(
        ResourceId(kind, rid), login,
        user_trait=UserTrait(login=login, email=login, status=UserStatus.ENABLED),
    )


def _ticket(**custom):
    fields = {"reason": "new hire"}
    fields.update(custom)
    return Ticket(display_name="Need laptop", description="For the new hire", labels=["hw"],
                  custom_fields=fields)


class TestFieldTranslation:
    def test_supported_fields_only(self):
        fields = translate_custom_fields(ServiceItem.from_dict(ITEM))
        assert sorted(fields) == [
            "apps", "assets", "device", "manager", "needed_by", "reason", "urgent",
        ]

    def test_kinds(self):
        fields = translate_custom_fields(ServiceItem.from_dict(ITEM))
        assert fields["reason"].kind is FieldKind.STRING
        assert fields["reason"].required is True
        assert fields["urgent"].kind is FieldKind.BOOL
        assert fields["needed_by"].kind is FieldKind.TIMESTAMP
        assert fields["manager"].kind is FieldKind.STRING
        assert fields["assets"].kind is FieldKind.STRINGS

    def test_pick_lists_use_labels(self):
        fields = translate_custom_fields(ServiceItem.from_dict(ITEM))
        assert fields["device"].allowed_values == ("Laptop", "Phone")
        assert fields["apps"].kind is FieldKind.PICK_MULTIPLE_STRINGS
        assert fields["apps"].allowed_values == ("Slack", "Zoom")

    def test_schema(self, schema):
        assert schema.id == "11"
        assert schema.display_name == "New laptop"
        assert [s.id for s in schema.statuses] == ["2", "3", "4", "5"]


class TestValidation:
    def test_valid(self, schema):
        validate_ticket(schema, _ticket(device="Laptop", apps=["Zoom"], urgent=True, needed_by=date(2024, 5, 1)))

    def test_missing_required(self, schema):
        with pytest.raises(TicketValidationError, match="required"):
            validate_ticket(schema, Ticket(custom_fields={}))

    def test_value_outside_choices(self, schema):
        with pytest.raises(TicketValidationError):
            validate_ticket(schema, _ticket(device="Tablet"))

    def test_multi_value_outside_choices(self, schema):
        with pytest.raises(TicketValidationError):
            validate_ticket(schema, _ticket(apps=["Zoom", "Teams"]))

    def test_wrong_type(self, schema):
        with pytest.raises(TicketValidationError):
            validate_ticket(schema, _ticket(urgent="yes"))

    def test_multi_lookup_needs_list(self, schema):
        validate_ticket(schema, _ticket(manager="17", assets=["101", "102"]))
        with pytest.raises(TicketValidationError, match="assets"):
            validate_ticket(schema, _ticket(assets="101"))

    def test_date_string_must_be_iso(self, schema):
        validate_ticket(schema, _ticket(needed_by="2024-05-01"))
        with pytest.raises(TicketValidationError, match="needed_by"):
            validate_ticket(schema, _ticket(needed_by="not a date"))


class TestListSchemas:
    def test_skips_drafts_and_deleted(self, adapter, session):
        session.add("GET", "service_catalog/items", make_response(body={"service_items": [
            {"id": 1, "display_id": 11, "visibility": 2},
            {"id": 2, "display_id": 12, "visibility": 1},
            {"id": 3, "display_id": 13, "visibility": 2, "deleted": True},
        ]}))
        session.add("GET", "service_catalog/items/11", make_response(body={"service_item": ITEM}))

        page = adapter.list_ticket_schemas()

        assert [s.id for s in page.items] == ["11"]
        assert page.next_token == ""
        assert [c.path for c in session.calls] == ["service_catalog/items", "service_catalog/items/11"]

    def test_category_restriction(self, client, session):
        session.add("GET", "service_catalog/items", make_response(body={"service_items": []}))
        TicketingAdapter(client, category_id="42").list_ticket_schemas()
        assert session.calls[0].params["category_id"] == "42"

    def test_timeout_ends_listing(self, adapter, session):
        session.add("GET", "service_catalog/items", make_response(408, body=b""))
        page = adapter.list_ticket_schemas()
        assert page.items == []
        assert page.next_token == ""


def _create_routes(session, update=None):
    session.add("GET", "agents/me", make_response(body={"agent": agent_record(1, email="me@acme.com")}))
    session.add("POST", "service_catalog/items/11/place_request", make_response(
        body={"service_request": {"id": 500, "subject": "Request for New laptop", "status": 2}}
    ))
    if update is None:
        update = make_response(body={"ticket": {
            "id": 500, "subject": "Need laptop", "description_text": "For the new hire",
            "tags": ["hw"], "status": 2,
        }})
    session.add("PUT", "tickets/500", update)


class TestCreateTicket:
    def test_place_request_then_update(self, adapter, schema, session):
        _create_routes(session)

        ticket, _ = adapter.create_ticket(_ticket(device="Laptop", needed_by=date(2024, 5, 1)), schema)

        assert [(c.method, c.path) for c in session.calls] == [
            ("GET", "agents/me"),
            ("POST", "service_catalog/items/11/place_request"),
            ("PUT", "tickets/500"),
        ]
        placed = session.calls[1].json
        assert placed["email"] == "me@acme.com"
        assert placed["quantity"] == 1
        assert placed["custom_fields"] == {"reason": "new hire", "device": "Laptop", "needed_by": "2024-05-01"}
        assert "requested_for" not in placed
        assert session.calls[2].json == {
            "subject": "Need laptop", "description": "For the new hire", "tags": ["hw"],
        }
        assert ticket.id == "500"
        assert ticket.display_name == "Need laptop"
        assert ticket.status == TicketStatus("2")
        assert ticket.url == "https://acme.freshservice.com/a/tickets/500"

    def test_reporter_and_requested_for(self, adapter, schema, session):
        _create_routes(session)
        ticket = _ticket()
        ticket.reporter = _user("agent", "3", "boss@acme.com")
        ticket.requested_for = _user("requester", "4", "newbie@acme.com")

        created, _ = adapter.create_ticket(ticket, schema)

        assert session.calls_to("GET", "agents/me") == []
        placed = session.calls_to("POST", "service_catalog/items/11/place_request")[0].json
        assert placed["email"] == "boss@acme.com"
        assert placed["requested_for"] == "newbie@acme.com"
        assert created.requested_for == ticket.requested_for

    def test_invalid_ticket_sends_nothing(self, adapter, schema, session):
        with pytest.raises(TicketValidationError):
            adapter.create_ticket(_ticket(device="Tablet"), schema)
        assert session.calls == []

    def test_update_failure_carries_created_ticket(self, adapter, schema, session):
        _create_routes(session, update=make_response(500, body=b"boom"))
        with pytest.raises(TicketUpdateError) as exc:
            adapter.create_ticket(_ticket(), schema)
        assert exc.value.ticket.id == "500"

    def test_place_request_failure_propagates(self, adapter, schema, session):
        session.add("GET", "agents/me", make_response(body={"agent": agent_record(1)}))
        session.add("POST", "service_catalog/items/11/place_request",
                    make_response(429, body=b"", headers={"Retry-After": "5"}))
        with pytest.raises(RateLimitExceeded):
            adapter.create_ticket(_ticket(), schema)
        assert session.calls_to("PUT", "tickets/500") == []


class TestBulk:
    def test_bulk_create_reports_per_item(self, adapter, schema, session):
        _create_routes(session)
        results = adapter.bulk_create_tickets([(_ticket(device="Tablet"), schema), (_ticket(), schema)])
        assert results[0].ticket is None
        assert "device" in results[0].error
        assert results[1].ticket.id == "500"
        assert results[1].error is None

    def test_bulk_get(self, adapter, session):
        session.add("GET", "tickets/1", make_response(body={"ticket": {"id": 1, "subject": "A", "status": 3}}))
        session.add("GET", "tickets/2", make_response(404, body=b"not found"))
        results = adapter.bulk_get_tickets(["1", "2"])
        assert results[0].ticket.status == TicketStatus("3")
        assert results[1].ticket is None
        assert "404" in results[1].error


def test_get_ticket(adapter, session):
    session.add("GET", "tickets/9", make_response(body={"ticket": {
        "id": 9, "subject": "Printer", "description_text": "jammed", "tags": ["office"],
        "created_at": "2024-03-01T10:00:00Z",
    }}))
    ticket, _ = adapter.get_ticket("9")
    assert ticket.display_name == "Printer"
    assert ticket.labels == ["office"]
    assert ticket.created_at.year == 2024
