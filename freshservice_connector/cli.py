"""CLI entry point: sync, validate, grant, revoke, ticket schemas, tickets."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
import time
from typing import Any, Callable, Iterator, TextIO

from freshservice_connector.builders import BaseBuilder, SyncPage
from freshservice_connector.config import load_config
from freshservice_connector.connector import Connector, new_connector
from freshservice_connector.errors import FreshServiceError
from freshservice_connector.logging_config import configure_logging
from freshservice_connector.resources import Entitlement, Grant, Resource, ResourceId

logger = logging.getLogger("freshservice.cli")


def _drain(fetch: Callable[[str], SyncPage]) -> Iterator[Any]:
    """Follow page tokens until the builder returns an empty one."""
    token = ""
    while True:
        page = fetch(token)
        yield from page.items
        token = page.next_token
        if not token:
            return


def _emit(out: TextIO, kind: str, body: dict[str, Any]) -> None:
    out.write(json.dumps({"kind": kind, **body}, default=str) + "\n")


def _resource_line(resource: Resource) -> dict[str, Any]:
    body = dataclasses.asdict(resource)
    body["id"] = str(resource.id)
    body["parent_id"] = str(resource.parent_id) if resource.parent_id else None
    return body


def _entitlement_line(entitlement: Entitlement) -> dict[str, Any]:
    return {
        "id": entitlement.id,
        "resource": str(entitlement.resource.id),
        "slug": entitlement.slug,
        "display_name": entitlement.display_name,
        "description": entitlement.description,
        "grantable_to": list(entitlement.grantable_to),
        "purpose": entitlement.purpose.value,
    }


def _grant_line(grant: Grant) -> dict[str, Any]:
    return {
        "id": grant.id,
        "entitlement": grant.entitlement.id,
        "principal": str(grant.principal),
    }


def sync_builder(builder: BaseBuilder, out: TextIO) -> dict[str, int]:
    """List every resource of one type, then its entitlements and grants."""
    counts = {"resources": 0, "entitlements": 0, "grants": 0}
    rtype = builder.resource_type
    for resource in _drain(lambda token: builder.list(None, token)):
        _emit(out, "resource", _resource_line(resource))
        counts["resources"] += 1
        if rtype.skip_entitlements_and_grants:
            continue
        for entitlement in builder.entitlements(resource):
            _emit(out, "entitlement", _entitlement_line(entitlement))
            counts["entitlements"] += 1
        for grant in _drain(lambda token, r=resource: builder.grants(r, token)):
            _emit(out, "grant", _grant_line(grant))
            counts["grants"] += 1
    return counts


def run_sync(connector: Connector, out: TextIO) -> dict[str, dict[str, int]]:
    results: dict[str, dict[str, int]] = {}
    for builder in connector.builders():
        name = builder.resource_type.id
        started = time.monotonic()
        logger.info("Starting sync for %s", name, extra={"resource_type": name})
        results[name] = sync_builder(builder, out)
        logger.info(
            "Sync results for %s: %s",
            name,
            results[name],
            extra={"resource_type": name, "duration_s": round(time.monotonic() - started, 3)},
        )
    return results


def cmd_sync(args: argparse.Namespace, connector: Connector) -> None:
    """Run one full sync, writing JSON lines to stdout."""
    if args.resource_type:
        results = {args.resource_type: sync_builder(connector.builder(args.resource_type), sys.stdout)}
    else:
        results = run_sync(connector, sys.stdout)
    logger.info("Sync complete: %s", results)


def cmd_validate(args: argparse.Namespace, connector: Connector) -> None:
    connector.validate()
    print(json.dumps(connector.metadata()))


def cmd_grant(args: argparse.Namespace, connector: Connector) -> None:
    annotations = connector.grant(ResourceId.parse(args.principal), args.entitlement)
    print(json.dumps({"annotations": [type(a).__name__ for a in annotations]}))


def cmd_revoke(args: argparse.Namespace, connector: Connector) -> None:
    annotations = connector.revoke(args.grant)
    print(json.dumps({"annotations": [type(a).__name__ for a in annotations]}))


def _require_ticketing(connector: Connector):
    if connector.ticketing is None:
        raise FreshServiceError("ticketing is disabled; set FRESHSERVICE_TICKETING=true")
    return connector.ticketing


def cmd_ticket_schemas(args: argparse.Namespace, connector: Connector) -> None:
    ticketing = _require_ticketing(connector)
    for schema in _drain(ticketing.list_ticket_schemas):
        print(json.dumps(dataclasses.asdict(schema), default=str))


def cmd_ticket(args: argparse.Namespace, connector: Connector) -> None:
    ticket, _ = _require_ticketing(connector).get_ticket(args.ticket_id)
    print(json.dumps(dataclasses.asdict(ticket), default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freshservice-connector",
        description="Freshservice identity connector",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Sync resources, entitlements and grants")
    sync_parser.add_argument(
        "--resource-type", "-r",
        choices=["agent", "requester", "agent_group", "role", "requester_group"],
        default=None,
        help="Sync a single resource type (default: all)",
    )
    sync_parser.set_defaults(func=cmd_sync)

    validate_parser = subparsers.add_parser("validate", help="Check credentials")
    validate_parser.set_defaults(func=cmd_validate)

    grant_parser = subparsers.add_parser("grant", help="Grant an entitlement")
    grant_parser.add_argument("--entitlement", "-e", required=True, help="kind:id:slug")
    grant_parser.add_argument("--principal", "-p", required=True, help="kind:id")
    grant_parser.set_defaults(func=cmd_grant)

    revoke_parser = subparsers.add_parser("revoke", help="Revoke a grant")
    revoke_parser.add_argument(
        "--grant", "-g", required=True, help="kind:id:slug:principalKind:principalId"
    )
    revoke_parser.set_defaults(func=cmd_revoke)

    schemas_parser = subparsers.add_parser("ticket-schemas", help="List ticket schemas")
    schemas_parser.set_defaults(func=cmd_ticket_schemas)

    ticket_parser = subparsers.add_parser("ticket", help="Show one ticket")
    ticket_parser.add_argument("ticket_id")
    ticket_parser.set_defaults(func=cmd_ticket)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    args = build_parser().parse_args(argv)

    try:
        connector = new_connector(load_config())
        args.func(args, connector)
    except (FreshServiceError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0
