"""
Unit tests for API clients, API keys, scopes and key generation

Author: TM3
Date: 2025-12-03
"""
from datetime import timedelta
from uuid import uuid4

import pytest

from app.core.api_keys import KEY_PREFIX, ApiKeyGenerator
from app.core.errors import DomainException
from app.domain.base import utcnow
from app.domain.integration import (
    ApiClient,
    ApiKey,
    IntegrationScopes,
    is_ip_in_range,
    is_valid_ip_or_cidr,
)


def make_key(**kwargs) -> ApiKey:
    generated = ApiKeyGenerator.generate_key()
    return ApiKey.create(uuid4(), generated.key_hash, generated.key_prefix, "ERP key", **kwargs)


class TestApiKeyGenerator:

    def test_generated_key_shape(self):
        generated = ApiKeyGenerator.generate_key()

        assert generated.plain_key.startswith(KEY_PREFIX)
        assert generated.key_prefix == generated.plain_key[len(KEY_PREFIX):len(KEY_PREFIX) + 8]
        assert len(generated.key_hash) == 64
        assert ApiKeyGenerator.validate_key_format(generated.plain_key)

    def test_keys_are_unique(self):
        assert ApiKeyGenerator.generate_key().plain_key != ApiKeyGenerator.generate_key().plain_key

    def test_verify_key(self):
        generated = ApiKeyGenerator.generate_key()

        assert ApiKeyGenerator.verify_key(generated.plain_key, generated.key_hash)
        assert not ApiKeyGenerator.verify_key(generated.plain_key + "x", generated.key_hash)

    @pytest.mark.parametrize("value", ["", "abc_12345678", "b2b_short", "b2b_has spaces in it", "b2b_bad!chars123"])
    def test_invalid_formats(self, value):
        assert not ApiKeyGenerator.validate_key_format(value)


class TestScopes:

    def test_known_and_wildcard_scopes(self):
        assert IntegrationScopes.is_valid_scope("products:read")
        assert IntegrationScopes.is_valid_scope("PRODUCTS:*")
        assert IntegrationScopes.is_valid_scope("*")
        assert not IntegrationScopes.is_valid_scope("products:delete")
        assert not IntegrationScopes.is_valid_scope(None)

    def test_grants_exact_and_wildcards(self):
        assert IntegrationScopes.grants(["Products:Read"], "products:read")
        assert IntegrationScopes.grants(["stock:*"], "stock:write")
        assert IntegrationScopes.grants(["*"], "orders:write")
        assert not IntegrationScopes.grants(["products:read"], "products:write")
        assert not IntegrationScopes.grants(["products:read"], "")


class TestIpHelpers:

    def test_ip_and_cidr_validation(self):
        assert is_valid_ip_or_cidr("10.0.0.1")
        assert is_valid_ip_or_cidr("10.0.0.0/24")
        assert is_valid_ip_or_cidr("2001:db8::/32")
        assert not is_valid_ip_or_cidr("10.0.0.256")
        assert not is_valid_ip_or_cidr("")

    def test_range_matching(self):
        assert is_ip_in_range("10.0.0.42", "10.0.0.0/24")
        assert not is_ip_in_range("10.0.1.1", "10.0.0.0/24")
        assert is_ip_in_range("192.168.1.5", "192.168.1.5")
        assert not is_ip_in_range("not-an-ip", "10.0.0.0/8")


class TestApiClient:

    def test_name_is_required(self):
        with pytest.raises(DomainException):
            ApiClient.create("  ")

    def test_to_dict_includes_key_count_when_given(self):
        client = ApiClient.create("SAP", contact_email="erp@example.com")

        assert client.to_dict(2)["active_key_count"] == 2
        assert "active_key_count" not in client.to_dict()


class TestApiKey:

    def test_rate_limit_must_be_positive(self):
        with pytest.raises(DomainException, match="Rate limit"):
            make_key(rate_limit_per_minute=0)

    def test_expiry_must_be_in_future(self):
        with pytest.raises(DomainException, match="future"):
            make_key(expires_at=utcnow() - timedelta(minutes=1))

    def test_revoke(self):
        key = make_key()

        key.revoke("leaked", "admin@example.com")

        assert key.is_revoked()
        assert not key.is_active
        assert not key.is_valid()
        with pytest.raises(DomainException, match="already revoked"):
            key.revoke()
        with pytest.raises(DomainException, match="Cannot activate a revoked"):
            key.activate()

    def test_expired_key_is_not_valid(self):
        key = make_key(expires_at=utcnow() + timedelta(minutes=5))

        assert key.is_valid()
        assert not key.is_valid(utcnow() + timedelta(minutes=10))

    def test_permissions(self):
        key = make_key()
        key.add_permission("Products:Read")
        key.add_permission("stock:*")

        assert key.has_permission("products:read")
        assert key.has_permission("stock:write")
        assert not key.has_permission("products:write")
        with pytest.raises(DomainException, match="already granted"):
            key.add_permission("products:read")
        with pytest.raises(DomainException, match="Invalid permission scope"):
            key.add_permission("everything")

    def test_global_wildcard(self):
        key = make_key()
        key.add_permission("*")

        assert key.has_permission("orders:write")

    def test_ip_whitelist(self):
        key = make_key()

        assert key.is_ip_allowed("1.2.3.4")

        key.add_ip_to_whitelist("10.0.0.0/24")

        assert key.is_ip_allowed("10.0.0.7")
        assert not key.is_ip_allowed("1.2.3.4")
        assert not key.is_ip_allowed(None)
        with pytest.raises(DomainException, match="Invalid IP"):
            key.add_ip_to_whitelist("10.0.0")

    def test_to_dict_never_exposes_hash(self):
        assert "key_hash" not in make_key().to_dict()
