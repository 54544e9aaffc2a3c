"""
Unit tests for ApiKeyService (clients, keys, validation)

Author: TM3
Date: 2025-12-04
"""
from datetime import timedelta
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest

from app.core.errors import ErrorCodes
from app.domain.base import utcnow
from app.domain.integration import ApiClientRequest, ApiKeyCreateRequest, ApiKeyUpdateRequest
from app.services.api_key_service import ApiKeyService


@pytest.fixture
def service(api_client_repo, api_key_repo):
    return ApiKeyService(api_client_repo, api_key_repo)


@pytest.fixture
def client(service):
    return service.create_client(ApiClientRequest(name="SAP ERP", contact_email="erp@example.com"), "admin").data


@pytest.fixture
def issued(service, client):
    """(key dict including plain_text_key) for a products:read key"""
    request = ApiKeyCreateRequest(name="Production", permissions=["products:read"], rate_limit_per_minute=30)
    return service.create_key(UUID(client["id"]), request, "admin").data


class TestClients:

    def test_duplicate_name_case_insensitive(self, service, client):
        result = service.create_client(ApiClientRequest(name="sap erp"))

        assert result.error_code == ErrorCodes.NAME_EXISTS

    def test_active_key_count(self, service, client, issued):
        result = service.get_client(UUID(client["id"]))

        assert result.data["active_key_count"] == 1

    def test_rename_to_taken_name(self, service, client):
        other = service.create_client(ApiClientRequest(name="Logo")).data

        result = service.update_client(UUID(other["id"]), ApiClientRequest(name="SAP ERP"))

        assert result.error_code == ErrorCodes.NAME_EXISTS

    def test_unknown_client(self, service):
        assert service.get_client(uuid4()).error_code == ErrorCodes.CLIENT_NOT_FOUND


class TestCreateKey:

    def test_plain_key_returned_once(self, service, issued):
        assert issued["plain_text_key"].startswith("b2b_")
        assert "plain_text_key" not in service.get_key(UUID(issued["id"])).data

    def test_inactive_client_cannot_get_keys(self, service, client):
        service.set_client_active(UUID(client["id"]), False)

        result = service.create_key(UUID(client["id"]), ApiKeyCreateRequest(name="Test"))

        assert result.error_code == ErrorCodes.CLIENT_INACTIVE

    def test_invalid_scope(self, service, client):
        result = service.create_key(UUID(client["id"]), ApiKeyCreateRequest(name="Test", permissions=["root"]))

        assert result.error_code == ErrorCodes.VALIDATION_ERROR


class TestValidateKey:

    def test_valid_key_records_usage(self, service, api_key_repo, issued):
        result = service.validate_key(issued["plain_text_key"], "10.0.0.1")

        assert result.is_valid
        assert result.client_name == "SAP ERP"
        assert result.permissions == ["products:read"]
        assert result.rate_limit_per_minute == 30
        assert api_key_repo.last_used[UUID(issued["id"])][1] == "10.0.0.1"

    def test_bad_format(self, service):
        assert service.validate_key("not-a-key").error_code == ErrorCodes.INVALID_FORMAT

    def test_unknown_key(self, service):
        assert service.validate_key("b2b_" + "a" * 43).error_code == ErrorCodes.KEY_NOT_FOUND

    def test_revoked_key(self, service, issued):
        service.revoke_key(UUID(issued["id"]), "leaked", "admin")

        assert service.validate_key(issued["plain_text_key"]).error_code == ErrorCodes.KEY_REVOKED

    def test_expired_key(self, service, api_key_repo, issued):
        api_key_repo.find_by_id(UUID(issued["id"])).expires_at = utcnow() - timedelta(seconds=1)

        assert service.validate_key(issued["plain_text_key"]).error_code == ErrorCodes.KEY_EXPIRED

    def test_inactive_key(self, service, issued):
        service.set_key_active(UUID(issued["id"]), False)

        assert service.validate_key(issued["plain_text_key"]).error_code == ErrorCodes.KEY_INACTIVE

    def test_inactive_client(self, service, client, issued):
        service.set_client_active(UUID(client["id"]), False)

        assert service.validate_key(issued["plain_text_key"]).error_code == ErrorCodes.CLIENT_INACTIVE

    def test_ip_whitelist(self, service, issued):
        service.add_ip_to_whitelist(UUID(issued["id"]), "192.168.1.0/24")

        assert service.validate_key(issued["plain_text_key"], "192.168.1.20").is_valid
        assert service.validate_key(issued["plain_text_key"], "10.0.0.1").error_code == ErrorCodes.IP_NOT_ALLOWED

    def test_last_used_failure_does_not_reject(self, service, api_key_repo, issued):
        api_key_repo.update_last_used = Mock(side_effect=RuntimeError("connection lost"))

        assert service.validate_key(issued["plain_text_key"]).is_valid


class TestKeyManagement:

    def test_rotate_revokes_old_and_copies_settings(self, service, api_key_repo, issued):
        service.add_ip_to_whitelist(UUID(issued["id"]), "10.0.0.0/8")

        result = service.rotate_key(UUID(issued["id"]), "admin")

        new = result.data
        old = api_key_repo.find_by_id(UUID(issued["id"]))
        assert old.is_revoked()
        assert old.revocation_reason == "Key rotated"
        assert new["name"] == "Production (rotated)"
        assert new["permissions"] == ["products:read"]
        assert new["ip_whitelist"] == ["10.0.0.0/8"]
        assert new["plain_text_key"] != issued["plain_text_key"]

    def test_revoked_key_cannot_be_rotated_or_changed(self, service, issued):
        key_id = UUID(issued["id"])
        service.revoke_key(key_id)

        assert service.rotate_key(key_id).error_code == ErrorCodes.KEY_REVOKED
        assert service.add_permission(key_id, "stock:read").error_code == ErrorCodes.KEY_REVOKED
        assert service.revoke_key(key_id).error_code == ErrorCodes.KEY_REVOKED
        assert service.set_key_active(key_id, True).error_code == ErrorCodes.KEY_REVOKED

    def test_update_key(self, service, issued):
        result = service.update_key(UUID(issued["id"]), ApiKeyUpdateRequest(name="Prod", rate_limit_per_minute=120))

        assert result.data["rate_limit_per_minute"] == 120

    def test_update_rejects_zero_rate_limit(self, service, issued):
        result = service.update_key(UUID(issued["id"]), ApiKeyUpdateRequest(name="Prod", rate_limit_per_minute=0))

        assert result.error_code == ErrorCodes.VALIDATION_ERROR

    def test_permission_round_trip(self, service, issued):
        key_id = UUID(issued["id"])

        service.add_permission(key_id, "stock:*")
        result = service.remove_permission(key_id, "products:read")

        assert result.data["permissions"] == ["stock:*"]

    def test_list_keys_excluding_revoked(self, service, client, issued):
        client_id = UUID(client["id"])
        service.create_key(client_id, ApiKeyCreateRequest(name="Staging"))
        service.revoke_key(UUID(issued["id"]))

        keys = service.list_keys(client_id, include_revoked=False).data

        assert [k["name"] for k in keys] == ["Staging"]
