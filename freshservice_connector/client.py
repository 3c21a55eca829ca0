"""Freshservice REST API v2 client: one logical call per method, one page per list."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

import requests

from freshservice_connector.config import SUBDOMAIN_RE, ConnectorConfig
from freshservice_connector.errors import (
    ConfigurationError,
    DecodeError,
    HTTPStatusError,
    RateLimitExceeded,
    RequestTimeout,
    TransportError,
)
from freshservice_connector.models import (
    Agent,
    AgentGroup,
    AgentRole,
    Requester,
    RequesterGroup,
    Role,
    ServiceItem,
    TicketRecord,
)

logger = logging.getLogger("freshservice.client")

# Freshservice defaults to 30 records per page and caps it at 100.
MAX_PAGE_SIZE = 100

T = TypeVar("T")


def clamp_page_size(per_page: Optional[int]) -> int:
    """Out-of-range page sizes (including 0) fall back to the maximum."""
    if per_page is None or per_page <= 0 or per_page > MAX_PAGE_SIZE:
        return MAX_PAGE_SIZE
    return per_page


def normalize_page(page: Optional[int]) -> int:
    """Pages start at 1; 0 or None means the first page."""
    if page is None or page <= 0:
        return 1
    return page


def next_page_from_link(link: str) -> Optional[int]:
    """Extract the ``page`` query parameter of the rel="next" Link entry."""
    for part in link.split(","):
        if 'rel="next"' not in part:
            continue
        url = part.split(";")[0].strip().strip("<>")
        pages = parse_qs(urlparse(url).query).get("page")
        if not pages:
            return None
        try:
            return int(pages[0])
        except ValueError:
            return None
    return None


def _header_int(headers: Mapping[str, str], name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimit:
    """Quota snapshot from the last response, for the caller to throttle on."""

    remaining: Optional[int] = None
    total: Optional[int] = None
    used: Optional[int] = None
    retry_after: Optional[int] = None  # seconds

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["RateLimit"]:
        rl = cls(
            remaining=_header_int(headers, "X-RateLimit-Remaining"),
            total=_header_int(headers, "X-RateLimit-Total"),
            used=_header_int(headers, "X-RateLimit-Used-CurrentRequest"),
            retry_after=_header_int(headers, "Retry-After"),
        )
        if rl == cls():
            return None
        return rl


@dataclass
class ApiPage:
    records: list[Any] = field(default_factory=list)
    next_page: Optional[int] = None
    rate_limit: Optional[RateLimit] = None


@dataclass
class ApiResult:
    data: Any
    rate_limit: Optional[RateLimit] = None


class FreshServiceClient:
    """Authenticated client bound to one Freshservice account.

    Nothing here retries: 429 surfaces as ``RateLimitExceeded`` and 408 as
    ``RequestTimeout``; callers decide what to do with them.
    """

    def __init__(
        self,
        api_key: str,
        domain: str,
        host: str = "freshservice.com",
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        base_url = f"https://{domain}.{host}/api/v2"
        # Parsed authority must be exactly {domain}.{host}: "acme?x" parses as
        # host "acme", "x@evil.io" as host "evil.io".
        parsed = urlparse(base_url)
        if (
            not SUBDOMAIN_RE.fullmatch(domain or "")
            or parsed.scheme != "https"
            or parsed.username is not None
            or parsed.netloc.lower() != f"{domain}.{host}".lower()
        ):
            raise ConfigurationError(f"the url {base_url} is not valid")
        self.domain = domain
        self.host = host
        self._base = base_url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.auth = (api_key, "X")
        self._session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(
        cls, config: ConnectorConfig, session: Optional[requests.Session] = None
    ) -> "FreshServiceClient":
        return cls(
            api_key=config.api_key,
            domain=config.domain,
            host=config.host,
            timeout_seconds=config.timeout_seconds,
            session=session,
        )

    @property
    def base_url(self) -> str:
        return self._base

    def ticket_url(self, ticket_id: int) -> str:
        return f"https://{self.domain}.{self.host}/a/tickets/{ticket_id}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        payload: Optional[dict] = None,
    ) -> tuple[Any, Optional[RateLimit], requests.Response]:
        url = f"{self._base}/{path.lstrip('/')}"
        started = time.monotonic()
        try:
            resp = self._session.request(
                method, url, params=params, json=payload, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        rate_limit = RateLimit.from_headers(resp.headers)
        logger.debug(
            "%s %s -> %d",
            method,
            path,
            resp.status_code,
            extra={
                "status_code": resp.status_code,
                "page": (params or {}).get("page"),
                "rate_limit_remaining": rate_limit.remaining if rate_limit else None,
                "duration_s": round(time.monotonic() - started, 3),
            },
        )

        if resp.status_code == 408:
            raise RequestTimeout(408, method, url, resp.text, rate_limit)
        if resp.status_code == 429:
            raise RateLimitExceeded(429, method, url, resp.text, rate_limit)
        if not 200 <= resp.status_code < 300:
            raise HTTPStatusError(resp.status_code, method, url, resp.text, rate_limit)

        if resp.status_code == 204 or not resp.content:
            return None, rate_limit, resp
        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodeError(f"{method} {url}: response is not valid JSON") from exc
        return data, rate_limit, resp

    @staticmethod
    def _envelope(data: Any, key: str, path: str) -> Any:
        if not isinstance(data, dict) or key not in data:
            raise DecodeError(f"{path}: response has no {key!r} envelope", data)
        return data[key]

    def list_page(
        self,
        path: str,
        envelope: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        params: Optional[dict] = None,
    ) -> ApiPage:
        """Fetch one page of a collection.

        There is no total count; the last page is the one whose Link header
        carries no rel="next".
        """
        query = dict(params or {})
        query["page"] = normalize_page(page)
        query["per_page"] = clamp_page_size(per_page)
        data, rate_limit, resp = self._request("GET", path, params=query)
        records = self._envelope(data, envelope, path)
        if not isinstance(records, list):
            raise DecodeError(f"{path}: {envelope!r} is not a list", data)
        return ApiPage(
            records=records,
            next_page=next_page_from_link(resp.headers.get("Link", "")),
            rate_limit=rate_limit,
        )

    def get(self, path: str, envelope: str) -> ApiResult:
        data, rate_limit, _ = self._request("GET", path)
        return ApiResult(self._envelope(data, envelope, path), rate_limit)

    def mutate(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        envelope: Optional[str] = None,
    ) -> ApiResult:
        """PUT/POST/DELETE. Membership and role payloads are always full lists."""
        data, rate_limit, _ = self._request(method, path, payload=payload)
        if envelope is None or data is None:
            return ApiResult(data, rate_limit)
        return ApiResult(self._envelope(data, envelope, path), rate_limit)

    @staticmethod
    def _decode_page(page: ApiPage, decode: Callable[[dict], T]) -> ApiPage:
        page.records = [decode(r) for r in page.records]
        return page

    # ------------------------------------------------------------------
    # Agents
    # https://api.freshservice.com/v2/#agents
    # ------------------------------------------------------------------

    def list_agents(self, page: Optional[int] = None, per_page: Optional[int] = None) -> ApiPage:
        return self._decode_page(
            self.list_page("agents", "agents", page, per_page), Agent.from_dict
        )

    def get_agent(self, agent_id: int | str) -> tuple[Agent, Optional[RateLimit]]:
        """``agent_id`` may be "me" for the agent owning the API key."""
        result = self.get(f"agents/{agent_id}", "agent")
        return Agent.from_dict(result.data), result.rate_limit

    def update_agent_roles(
        self, agent_id: int | str, roles: list[AgentRole]
    ) -> tuple[Agent, Optional[RateLimit]]:
        result = self.mutate(
            "PUT",
            f"agents/{agent_id}",
            {"roles": [r.to_payload() for r in roles]},
            envelope="agent",
        )
        return Agent.from_dict(result.data), result.rate_limit

    # ------------------------------------------------------------------
    # Requesters
    # ------------------------------------------------------------------

    def list_requesters(self, page: Optional[int] = None, per_page: Optional[int] = None) -> ApiPage:
        return self._decode_page(
            self.list_page("requesters", "requesters", page, per_page), Requester.from_dict
        )

    def get_requester(self, requester_id: int | str) -> tuple[Requester, Optional[RateLimit]]:
        result = self.get(f"requesters/{requester_id}", "requester")
        return Requester.from_dict(result.data), result.rate_limit

    # ------------------------------------------------------------------
    # Agent groups
    # ------------------------------------------------------------------

    def list_agent_groups(self, page: Optional[int] = None, per_page: Optional[int] = None) -> ApiPage:
        return self._decode_page(
            self.list_page("groups", "groups", page, per_page), AgentGroup.from_dict
        )

    def get_agent_group(self, group_id: int | str) -> tuple[AgentGroup, Optional[RateLimit]]:
        result = self.get(f"groups/{group_id}", "group")
        return AgentGroup.from_dict(result.data), result.rate_limit

    def update_agent_group(
        self,
        group_id: int | str,
        members: Optional[list[int]] = None,
        leaders: Optional[list[int]] = None,
    ) -> tuple[AgentGroup, Optional[RateLimit]]:
        """Replace the group's member and/or leader list wholesale."""
        payload: dict[str, Any] = {}
        if members is not None:
            payload["members"] = list(members)
        if leaders is not None:
            payload["leaders"] = list(leaders)
        result = self.mutate("PUT", f"groups/{group_id}", payload, envelope="group")
        return AgentGroup.from_dict(result.data), result.rate_limit

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def list_roles(self, page: Optional[int] = None, per_page: Optional[int] = None) -> ApiPage:
        return self._decode_page(
            self.list_page("roles", "roles", page, per_page), Role.from_dict
        )

    def get_role(self, role_id: int | str) -> tuple[Role, Optional[RateLimit]]:
        result = self.get(f"roles/{role_id}", "role")
        return Role.from_dict(result.data), result.rate_limit

    # ------------------------------------------------------------------
    # Requester groups
    # ------------------------------------------------------------------

    def list_requester_groups(self, page: Optional[int] = None, per_page: Optional[int] = None) -> ApiPage:
        return self._decode_page(
            self.list_page("requester_groups", "requester_groups", page, per_page),
            RequesterGroup.from_dict,
        )

    def list_requester_group_members(
        self, group_id: int | str, page: Optional[int] = None, per_page: Optional[int] = None
    ) -> ApiPage:
        return self._decode_page(
            self.list_page(f"requester_groups/{group_id}/members", "requesters", page, per_page),
            Requester.from_dict,
        )

    def add_requester_group_member(
        self, group_id: int | str, requester_id: int | str
    ) -> Optional[RateLimit]:
        return self.mutate("POST", f"requester_groups/{group_id}/members/{requester_id}").rate_limit

    def remove_requester_group_member(
        self, group_id: int | str, requester_id: int | str
    ) -> Optional[RateLimit]:
        return self.mutate("DELETE", f"requester_groups/{group_id}/members/{requester_id}").rate_limit

    # ------------------------------------------------------------------
    # Service catalog and tickets
    # ------------------------------------------------------------------

    def list_service_catalog_items(
        self,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        category_id: Optional[str] = None,
    ) -> ApiPage:
        params = {"category_id": category_id} if category_id else None
        return self._decode_page(
            self.list_page("service_catalog/items", "service_items", page, per_page, params),
            ServiceItem.from_dict,
        )

    def get_service_item(self, display_id: int | str) -> tuple[ServiceItem, Optional[RateLimit]]:
        result = self.get(f"service_catalog/items/{display_id}", "service_item")
        return ServiceItem.from_dict(result.data), result.rate_limit

    def create_service_request(
        self, display_id: int | str, payload: dict
    ) -> tuple[TicketRecord, Optional[RateLimit]]:
        result = self.mutate(
            "POST",
            f"service_catalog/items/{display_id}/place_request",
            payload,
            envelope="service_request",
        )
        return TicketRecord.from_dict(result.data), result.rate_limit

    def get_ticket(self, ticket_id: int | str) -> tuple[TicketRecord, Optional[RateLimit]]:
        result = self.get(f"tickets/{ticket_id}", "ticket")
        return TicketRecord.from_dict(result.data), result.rate_limit

    def update_ticket(
        self, ticket_id: int | str, payload: dict
    ) -> tuple[TicketRecord, Optional[RateLimit]]:
        result = self.mutate("PUT", f"tickets/{ticket_id}", payload, envelope="ticket")
        return TicketRecord.from_dict(result.data), result.rate_limit
