"""Tests for config.py and secrets.py."""

from __future__ import annotations

import json
import sys
import types

import pytest

from freshservice_connector import config as config_module
from freshservice_connector.config import extract_subdomain, load_config, validate_subdomain
from freshservice_connector.errors import ConfigurationError
from freshservice_connector.secrets import resolve_secret

ENV_VARS = (
    "FRESHSERVICE_API_KEY",
    "FRESHSERVICE_DOMAIN",
    "FRESHSERVICE_CATEGORY_ID",
    "FRESHSERVICE_TICKETING",
    "FRESHSERVICE_PAGE_SIZE",
    "FRESHSERVICE_TIMEOUT",
    "FRESHSERVICE_HOST",
)


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FRESHSERVICE_API_KEY", "secret-key")
    monkeypatch.setenv("FRESHSERVICE_DOMAIN", "acme")
    return monkeypatch


class TestSubdomain:
    @pytest.mark.parametrize("value", [
        "acme",
        "acme.freshservice.com",
        "https://acme.freshservice.com/",
        " acme ",
    ])
    def test_extract(self, value):
        assert extract_subdomain(value) == "acme"

    @pytest.mark.parametrize("value", [
        "", "acme.freshservice.com", "a/b", "acme?x", "acme#x", "ac me", "evil@acme", "acme-",
    ])
    def test_validate_rejects(self, value):
        with pytest.raises(ConfigurationError):
            validate_subdomain(value)

    @pytest.mark.parametrize("value", ["acme?x", "acme#x", "ac me", "evil@acme"])
    def test_extracted_value_still_validated(self, value):
        with pytest.raises(ConfigurationError):
            validate_subdomain(extract_subdomain(value))


class TestLoadConfig:
    def test_defaults(self, env):
        cfg = load_config()
        assert cfg.api_key == "secret-key"
        assert cfg.domain == "acme"
        assert cfg.ticketing is False
        assert cfg.category_id is None
        assert cfg.page_size == 100
        assert cfg.host == "freshservice.com"

    def test_domain_given_as_url(self, env):
        env.setenv("FRESHSERVICE_DOMAIN", "https://acme.freshservice.com")
        assert load_config().domain == "acme"

    def test_ticketing_and_category(self, env):
        env.setenv("FRESHSERVICE_TICKETING", "true")
        env.setenv("FRESHSERVICE_CATEGORY_ID", "42")
        cfg = load_config()
        assert cfg.ticketing is True
        assert cfg.category_id == "42"

    def test_missing_api_key(self, env):
        env.delenv("FRESHSERVICE_API_KEY")
        with pytest.raises(ConfigurationError, match="FRESHSERVICE_API_KEY"):
            load_config()

    def test_missing_domain(self, env):
        env.delenv("FRESHSERVICE_DOMAIN")
        with pytest.raises(ConfigurationError, match="FRESHSERVICE_DOMAIN"):
            load_config()

    def test_bad_page_size(self, env):
        env.setenv("FRESHSERVICE_PAGE_SIZE", "lots")
        with pytest.raises(ConfigurationError):
            load_config()


class TestSecrets:
    def test_plain_value(self):
        assert resolve_secret("abc123") == "abc123"

    def test_aws_reference_with_json_key(self, monkeypatch):
        requested = {}

        class SecretsManager:
            def get_secret_value(self, SecretId):
                requested["id"] = SecretId
                return {"SecretString": json.dumps({"api_key": "from-aws"})}

        fake_boto3 = types.ModuleType("boto3")
        fake_boto3.client = lambda service, region_name=None: SecretsManager()
        monkeypatch.setitem(sys.modules, "boto3", fake_boto3)

        assert resolve_secret("aws-secret://freshservice#api_key") == "from-aws"
        assert requested["id"] == "freshservice"

    def test_api_key_resolved_through_secret(self, env, monkeypatch):
        monkeypatch.setattr(config_module, "resolve_secret", lambda value: "resolved")
        env.setenv("FRESHSERVICE_API_KEY", "aws-secret://freshservice")
        assert load_config().api_key == "resolved"
