"""
API Key Service - integration client and key management, key validation

Author: TM3
Date: 2025-12-03
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from uuid import UUID

from app.core.api_keys import ApiKeyGenerator
from app.core.errors import DomainException, ErrorCodes
from app.core.result import Result
from app.domain.base import utcnow
from app.domain.integration import (
    ApiClient,
    ApiClientRequest,
    ApiKey,
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
)
from app.repositories.api_key_repository import ApiClientRepository, ApiKeyRepository

logger = logging.getLogger(__name__)


@dataclass
class ApiKeyValidationResult:
    is_valid: bool
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    api_key_id: Optional[UUID] = None
    api_client_id: Optional[UUID] = None
    client_name: Optional[str] = None
    key_prefix: Optional[str] = None
    permissions: List[str] = field(default_factory=list)
    rate_limit_per_minute: Optional[int] = None

    @classmethod
    def invalid(cls, code: str, message: str) -> "ApiKeyValidationResult":
        return cls(is_valid=False, error_code=code, error_message=message)


class ApiKeyService:

    def __init__(
        self,
        client_repository: Optional[ApiClientRepository] = None,
        key_repository: Optional[ApiKeyRepository] = None,
    ):
        self.clients = client_repository or ApiClientRepository()
        self.keys = key_repository or ApiKeyRepository()

    # ========================================================================
    # Validation
    # ========================================================================

    def validate_key(self, plain_key: str, ip_address: Optional[str] = None) -> ApiKeyValidationResult:
        """Check a presented key; on success records last-used time and IP"""
        if not ApiKeyGenerator.validate_key_format(plain_key):
            return self._reject(ErrorCodes.INVALID_FORMAT, "Invalid API key format", ip_address)

        key = self.keys.find_by_hash(ApiKeyGenerator.hash_key(plain_key))
        if key is None:
            return self._reject(ErrorCodes.KEY_NOT_FOUND, "API key not found", ip_address)

        if not key.is_valid():
            if key.is_revoked():
                return self._reject(ErrorCodes.KEY_REVOKED, "API key has been revoked", ip_address, key)
            if key.is_expired():
                return self._reject(ErrorCodes.KEY_EXPIRED, "API key has expired", ip_address, key)
            return self._reject(ErrorCodes.KEY_INACTIVE, "API key is not active", ip_address, key)

        client = self.clients.find_by_id(key.api_client_id)
        if client is None or not client.is_active:
            return self._reject(ErrorCodes.CLIENT_INACTIVE, "API client is not active", ip_address, key)

        if not key.is_ip_allowed(ip_address):
            return self._reject(ErrorCodes.IP_NOT_ALLOWED, "IP address not allowed", ip_address, key)

        key.record_usage(ip_address)
        try:
            self.keys.update_last_used(key.id, key.last_used_at, ip_address)
        except Exception as e:
            # last-used tracking never blocks an otherwise valid request
            logger.error(f"Failed to record last use of API key {key.key_prefix}: {e}")

        return ApiKeyValidationResult(
            is_valid=True,
            api_key_id=key.id,
            api_client_id=key.api_client_id,
            client_name=client.name,
            key_prefix=key.key_prefix,
            permissions=list(key.permissions),
            rate_limit_per_minute=key.rate_limit_per_minute,
        )

    @staticmethod
    def _reject(code: str, message: str, ip_address: Optional[str],
                key: Optional[ApiKey] = None) -> ApiKeyValidationResult:
        prefix = key.key_prefix if key else "-"
        logger.warning(f"API key rejected ({code}) for key {prefix} from IP {ip_address}")
        return ApiKeyValidationResult.invalid(code, message)

    # ========================================================================
    # Clients
    # ========================================================================

    def list_clients(self, search: Optional[str] = None, is_active: Optional[bool] = None,
                     page: int = 1, page_size: int = 50) -> Result:
        clients, total = self.clients.find_all(search=search, is_active=is_active, page=page, page_size=page_size)
        return Result.ok((
            [c.to_dict(self.clients.count_active_keys(c.id)) for c in clients],
            total,
        ))

    def get_client(self, client_id: UUID) -> Result:
        client = self.clients.find_by_id(client_id)
        if client is None:
            return Result.fail(f"API client not found: {client_id}", ErrorCodes.CLIENT_NOT_FOUND)
        return Result.ok(client.to_dict(self.clients.count_active_keys(client.id)))

    def create_client(self, request: ApiClientRequest, created_by: Optional[str] = None) -> Result:
        if self.clients.find_by_name(request.name):
            return Result.fail(f"An API client named '{request.name}' already exists", ErrorCodes.NAME_EXISTS)

        try:
            client = ApiClient.create(
                request.name,
                contact_email=request.contact_email,
                description=request.description,
                contact_phone=request.contact_phone,
                created_by=created_by,
            )
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.clients.save(client)
        logger.info(f"API client created: {client.name} (Id: {client.id})")
        return Result.ok(client.to_dict(0))

    def update_client(self, client_id: UUID, request: ApiClientRequest, updated_by: Optional[str] = None) -> Result:
        client = self.clients.find_by_id(client_id)
        if client is None:
            return Result.fail(f"API client not found: {client_id}", ErrorCodes.CLIENT_NOT_FOUND)

        existing = self.clients.find_by_name(request.name)
        if existing and existing.id != client.id:
            return Result.fail(f"An API client named '{request.name}' already exists", ErrorCodes.NAME_EXISTS)

        try:
            client.update(request.name, request.contact_email, request.description, request.contact_phone, updated_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.clients.save(client)
        return Result.ok(client.to_dict(self.clients.count_active_keys(client.id)))

    def set_client_active(self, client_id: UUID, active: bool, updated_by: Optional[str] = None) -> Result:
        client = self.clients.find_by_id(client_id)
        if client is None:
            return Result.fail(f"API client not found: {client_id}", ErrorCodes.CLIENT_NOT_FOUND)

        if active:
            client.activate()
        else:
            client.deactivate()
        client.touch(updated_by)
        self.clients.save(client)

        logger.info(f"API client {'activated' if active else 'deactivated'}: {client.name}")
        return Result.ok(client.to_dict())

    # ========================================================================
    # Keys
    # ========================================================================

    def list_keys(self, client_id: UUID, include_revoked: bool = True) -> Result:
        if self.clients.find_by_id(client_id) is None:
            return Result.fail(f"API client not found: {client_id}", ErrorCodes.CLIENT_NOT_FOUND)
        return Result.ok([k.to_dict() for k in self.keys.find_by_client(client_id, include_revoked)])

    def get_key(self, key_id: UUID) -> Result:
        key = self.keys.find_by_id(key_id)
        if key is None:
            return Result.fail(f"API key not found: {key_id}", ErrorCodes.API_KEY_NOT_FOUND)
        return Result.ok(key.to_dict())

    def create_key(self, client_id: UUID, request: ApiKeyCreateRequest, created_by: Optional[str] = None) -> Result:
        """Create a key; the plaintext is only ever returned here"""
        client = self.clients.find_by_id(client_id)
        if client is None:
            return Result.fail(f"API client not found: {client_id}", ErrorCodes.CLIENT_NOT_FOUND)
        if not client.is_active:
            return Result.fail("Cannot create key for inactive client", ErrorCodes.CLIENT_INACTIVE)

        generated = ApiKeyGenerator.generate_key()
        try:
            key = ApiKey.create(
                client.id,
                generated.key_hash,
                generated.key_prefix,
                request.name,
                rate_limit_per_minute=request.rate_limit_per_minute,
                expires_at=request.expires_at,
                created_by=created_by,
            )
            for scope in request.permissions:
                key.add_permission(scope)
            for ip_address in request.ip_whitelist:
                key.add_ip_to_whitelist(ip_address)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.keys.save(key)
        logger.info(f"API key created for client {client.name}: {key.key_prefix} (Id: {key.id})")
        return Result.ok(self._created_response(key, generated.plain_key))

    def update_key(self, key_id: UUID, request: ApiKeyUpdateRequest, updated_by: Optional[str] = None) -> Result:
        return self._change_key(
            key_id,
            lambda key: key.update(request.name, request.rate_limit_per_minute, request.expires_at, updated_by),
        )

    def revoke_key(self, key_id: UUID, reason: Optional[str] = None, revoked_by: Optional[str] = None) -> Result:
        key = self.keys.find_by_id(key_id)
        if key is None:
            return Result.fail(f"API key not found: {key_id}", ErrorCodes.API_KEY_NOT_FOUND)

        try:
            key.revoke(reason, revoked_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.KEY_REVOKED)

        self.keys.save(key)
        logger.info(f"API key revoked: {key.key_prefix} by {revoked_by} ({reason})")
        return Result.ok(key.to_dict())

    def rotate_key(self, key_id: UUID, rotated_by: Optional[str] = None) -> Result:
        """Revoke a key and issue a replacement with the same settings"""
        old_key = self.keys.find_by_id(key_id)
        if old_key is None:
            return Result.fail(f"API key not found: {key_id}", ErrorCodes.API_KEY_NOT_FOUND)
        if old_key.is_revoked():
            return Result.fail("Cannot rotate revoked key", ErrorCodes.KEY_REVOKED)

        expires_at = old_key.expires_at
        if expires_at is not None and expires_at <= utcnow():
            expires_at = None

        generated = ApiKeyGenerator.generate_key()
        try:
            new_key = ApiKey.create(
                old_key.api_client_id,
                generated.key_hash,
                generated.key_prefix,
                f"{old_key.name} (rotated)",
                rate_limit_per_minute=old_key.rate_limit_per_minute,
                expires_at=expires_at,
                created_by=rotated_by,
            )
            for scope in old_key.permissions:
                new_key.add_permission(scope)
            for ip_address in old_key.ip_whitelist:
                new_key.add_ip_to_whitelist(ip_address)
            old_key.revoke("Key rotated", rotated_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.keys.save(new_key)
        self.keys.save(old_key)
        logger.info(f"API key rotated: {old_key.key_prefix} -> {new_key.key_prefix}")
        return Result.ok(self._created_response(new_key, generated.plain_key))

    def set_key_active(self, key_id: UUID, active: bool, updated_by: Optional[str] = None) -> Result:
        def change(key: ApiKey):
            if active:
                key.activate()
            else:
                key.deactivate()
            key.touch(updated_by)

        return self._change_key(key_id, change, allow_revoked=not active)

    def add_permission(self, key_id: UUID, scope: str) -> Result:
        return self._change_key(key_id, lambda key: key.add_permission(scope))

    def remove_permission(self, key_id: UUID, scope: str) -> Result:
        return self._change_key(key_id, lambda key: key.remove_permission(scope))

    def add_ip_to_whitelist(self, key_id: UUID, ip_address: str) -> Result:
        return self._change_key(key_id, lambda key: key.add_ip_to_whitelist(ip_address))

    def remove_ip_from_whitelist(self, key_id: UUID, ip_address: str) -> Result:
        return self._change_key(key_id, lambda key: key.remove_ip_from_whitelist(ip_address))

    # ========================================================================
    # Helpers
    # ========================================================================

    def _change_key(self, key_id: UUID, change: Callable[[ApiKey], None], allow_revoked: bool = False) -> Result:
        key = self.keys.find_by_id(key_id)
        if key is None:
            return Result.fail(f"API key not found: {key_id}", ErrorCodes.API_KEY_NOT_FOUND)
        if key.is_revoked() and not allow_revoked:
            return Result.fail("Cannot update revoked key", ErrorCodes.KEY_REVOKED)

        try:
            change(key)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.keys.save(key)
        return Result.ok(key.to_dict())

    @staticmethod
    def _created_response(key: ApiKey, plain_key: str) -> dict:
        data = key.to_dict()
        data["plain_text_key"] = plain_key
        return data
