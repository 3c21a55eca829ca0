"""Abstract base class for all resource sync builders."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from freshservice_connector.client import ApiPage, FreshServiceClient
from freshservice_connector.errors import PrincipalTypeError, RequestTimeout, UnsupportedOperation
from freshservice_connector.pagination import PageToken
from freshservice_connector.resources import Entitlement, Grant, Resource, ResourceId, ResourceType

logger = logging.getLogger("freshservice.builders")

T = TypeVar("T")


@dataclass
class SyncPage(Generic[T]):
    """One page of results plus the token for the next call ("" = finished)."""

    items: list[T] = field(default_factory=list)
    next_token: str = ""
    annotations: list[Any] = field(default_factory=list)


class BaseBuilder(ABC):
    """Each builder declares RESOURCE_TYPE and overrides list().

    Builders hold no state between calls: everything needed to resume lives
    in the page token the orchestrator passes back.
    """

    RESOURCE_TYPE: ResourceType

    def __init__(self, client: FreshServiceClient, page_size: int = 100) -> None:
        self.client = client
        self.page_size = page_size

    @property
    def resource_type(self) -> ResourceType:
        return self.RESOURCE_TYPE

    @abstractmethod
    def list(self, parent_id: Optional[ResourceId], page_token: str = "") -> SyncPage[Resource]:
        """Return one page of resources of this type."""

    def entitlements(self, resource: Resource) -> list[Entitlement]:
        return []

    def grants(self, resource: Resource, page_token: str = "") -> SyncPage[Grant]:
        return SyncPage()

    def grant(self, principal: Resource, entitlement: Entitlement) -> list[Any]:
        raise UnsupportedOperation(f"{self.RESOURCE_TYPE.id} has no grantable entitlements")

    def revoke(self, grant: Grant) -> list[Any]:
        raise UnsupportedOperation(f"{self.RESOURCE_TYPE.id} has no revocable entitlements")

    # ------------------------------------------------------------------
    # Pagination helpers
    # ------------------------------------------------------------------

    def _fetch_page(
        self,
        token: PageToken,
        fetch: Callable[[int, int], ApiPage],
    ) -> Optional[ApiPage]:
        """Fetch the page ``token`` points at. None means HTTP 408: stop here."""
        try:
            return fetch(token.page, self.page_size)
        except RequestTimeout:
            logger.warning(
                "Request timed out, treating as end of data",
                extra={"resource_type": self.RESOURCE_TYPE.id, "page": token.page},
            )
            return None

    def _list_resources(
        self,
        page_token: str,
        fetch: Callable[[int, int], ApiPage],
        to_resource: Callable[[Any], Resource],
    ) -> SyncPage[Resource]:
        """Shared List: one vendor page, every record mapped, token advanced."""
        token = PageToken.decode(page_token, self.RESOURCE_TYPE.id)
        page = self._fetch_page(token, fetch)
        if page is None:
            return SyncPage()
        resources = [to_resource(record) for record in page.records]
        annotations = [page.rate_limit] if page.rate_limit else []
        return SyncPage(resources, token.next_page(page.next_page).encode(), annotations)

    def _check_principal(self, principal: ResourceId, expected: ResourceType, action: str) -> None:
        """Reject principals of the wrong kind before touching the API."""
        if principal.resource_type == expected.id:
            return
        message = (
            f"freshservice-connector: only {expected.id} principals can {action} "
            f"{self.RESOURCE_TYPE.display_name.lower()} entitlements"
        )
        logger.warning(
            message,
            extra={
                "resource_type": principal.resource_type,
                "principal_id": principal.resource,
            },
        )
        raise PrincipalTypeError(message)

    @staticmethod
    def _numeric_id(value: str, what: str) -> int:
        try:
            return int(value)
        except ValueError as exc:
            raise ValueError(f"{what} {value!r} is not a numeric Freshservice id") from exc


def rate_limit_annotations(*rate_limits: Any) -> list[Any]:
    return [rl for rl in rate_limits if rl is not None]
