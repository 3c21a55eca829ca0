"""Opaque page tokens handed to and returned from the orchestrator.

A token records which resource type it belongs to, which phase of a
multi-collection walk it is in, and the Freshservice page number to fetch
next. Page numbers are positional: if the collection changes between calls,
records can be skipped or repeated.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from freshservice_connector.errors import InvalidPageToken


class SyncPhase(str, Enum):
    USERS = "awaiting_users"
    GROUPS = "awaiting_groups"
    DONE = "done"


@dataclass(frozen=True)
class PageToken:
    resource_type: str
    page: int = 1
    phase: SyncPhase = SyncPhase.USERS

    def encode(self) -> str:
        """Serialise; a DONE token is the empty string, which ends the loop."""
        if self.phase is SyncPhase.DONE:
            return ""
        raw = json.dumps(
            {"rt": self.resource_type, "page": self.page, "phase": self.phase.value},
            separators=(",", ":"),
            sort_keys=True,
        )
        return base64.urlsafe_b64encode(raw.encode()).decode()

    @classmethod
    def decode(
        cls,
        token: Optional[str],
        resource_type: str,
        phase: SyncPhase = SyncPhase.USERS,
    ) -> "PageToken":
        """Parse a token, or start at page 1 of ``phase`` when there is none."""
        if not token:
            return cls(resource_type=resource_type, page=1, phase=phase)
        try:
            data = json.loads(base64.urlsafe_b64decode(token.encode()))
            parsed = cls(
                resource_type=str(data["rt"]),
                page=int(data["page"]),
                phase=SyncPhase(data["phase"]),
            )
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as exc:
            raise InvalidPageToken(f"malformed page token {token!r}") from exc
        if parsed.resource_type != resource_type:
            raise InvalidPageToken(
                f"page token belongs to {parsed.resource_type!r}, not {resource_type!r}"
            )
        if parsed.page < 1:
            raise InvalidPageToken(f"page token has invalid page {parsed.page}")
        return parsed

    def next_page(self, page: Optional[int]) -> "PageToken":
        """Token for ``page`` in the same phase, or DONE when there is none."""
        if page is None:
            return PageToken(self.resource_type, 1, SyncPhase.DONE)
        return PageToken(self.resource_type, page, self.phase)

    def advance_phase(self, phase: SyncPhase) -> "PageToken":
        return PageToken(self.resource_type, 1, phase)
