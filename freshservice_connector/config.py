"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev, optionally from a .env file)
  - AWS Secrets Manager (aws-secret://name#key) for the API key
  - GCP Secret Manager (gcp-secret://name) for the API key
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from freshservice_connector.errors import ConfigurationError
from freshservice_connector.secrets import resolve_secret

DEFAULT_HOST = "freshservice.com"
MAX_PAGE_SIZE = 100

# One DNS label: the account part of {subdomain}.freshservice.com.
SUBDOMAIN_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")


@dataclass(frozen=True)
class ConnectorConfig:
    api_key: str
    domain: str  # bare subdomain: "acme", not "acme.freshservice.com"
    category_id: Optional[str] = None  # restricts ticket schemas to one catalog category
    ticketing: bool = False
    page_size: int = MAX_PAGE_SIZE
    timeout_seconds: float = 30.0
    host: str = DEFAULT_HOST


def extract_subdomain(value: str) -> str:
    """Return the subdomain portion of a bare name, host or URL.

    "acme", "acme.freshservice.com" and "https://acme.freshservice.com/"
    all yield "acme".
    """
    value = value.strip()
    if value.startswith(("http://", "https://")):
        value = urlparse(value).hostname or ""
    return value.split(".", 1)[0]


def validate_subdomain(subdomain: str) -> str:
    if not SUBDOMAIN_RE.fullmatch(subdomain or ""):
        raise ConfigurationError(
            f"invalid subdomain format: {subdomain!r} - should be just the subdomain "
            "portion (e.g. 'company' not 'company.freshservice.com')"
        )
    return subdomain


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def load_config() -> ConnectorConfig:
    """Load configuration from environment variables.

    The API key may be a secret reference; it is resolved through AWS or GCP
    Secret Manager. Locally, plain env vars or .env files are used.
    """
    load_dotenv()

    api_key_raw = os.environ.get("FRESHSERVICE_API_KEY", "")
    if not api_key_raw:
        raise ConfigurationError("FRESHSERVICE_API_KEY environment variable is required")
    api_key = resolve_secret(api_key_raw)

    domain_raw = os.environ.get("FRESHSERVICE_DOMAIN", "")
    if not domain_raw:
        raise ConfigurationError("FRESHSERVICE_DOMAIN environment variable is required")
    domain = validate_subdomain(extract_subdomain(domain_raw))

    try:
        page_size = int(os.environ.get("FRESHSERVICE_PAGE_SIZE", str(MAX_PAGE_SIZE)))
        timeout = float(os.environ.get("FRESHSERVICE_TIMEOUT", "30"))
    except ValueError as exc:
        raise ConfigurationError(f"invalid numeric setting: {exc}") from exc

    return ConnectorConfig(
        api_key=api_key,
        domain=domain,
        category_id=os.environ.get("FRESHSERVICE_CATEGORY_ID") or None,
        ticketing=_env_flag("FRESHSERVICE_TICKETING"),
        page_size=page_size,
        timeout_seconds=timeout,
        host=os.environ.get("FRESHSERVICE_HOST", DEFAULT_HOST),
    )
