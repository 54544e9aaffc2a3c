"""
Integration API Domain Models

API clients (ERP systems) authenticate with API keys. Each key has its
own scopes, rate limit, optional expiry and optional IP whitelist.

Author: TM3
Date: 2025-12-02
"""
import ipaddress
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.errors import DomainException
from app.domain.base import Entity, as_utc, clean, utcnow

DEFAULT_RATE_LIMIT_PER_MINUTE = 500


# ============================================================================
# Scopes
# ============================================================================

class IntegrationScopes:
    """Permission scopes an API key can be granted"""

    ALL = "*"

    PRODUCTS_READ = "products:read"
    PRODUCTS_WRITE = "products:write"
    STOCK_READ = "stock:read"
    STOCK_WRITE = "stock:write"
    PRICES_READ = "prices:read"
    PRICES_WRITE = "prices:write"
    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_WRITE = "customers:write"
    ORDERS_READ = "orders:read"
    ORDERS_WRITE = "orders:write"
    INVOICES_READ = "invoices:read"
    INVOICES_WRITE = "invoices:write"
    WEBHOOKS_MANAGE = "webhooks:manage"

    RESOURCES = ("products", "stock", "prices", "customers", "orders", "invoices", "webhooks")

    @classmethod
    def all_scopes(cls) -> List[str]:
        return [
            cls.PRODUCTS_READ, cls.PRODUCTS_WRITE,
            cls.STOCK_READ, cls.STOCK_WRITE,
            cls.PRICES_READ, cls.PRICES_WRITE,
            cls.CUSTOMERS_READ, cls.CUSTOMERS_WRITE,
            cls.ORDERS_READ, cls.ORDERS_WRITE,
            cls.INVOICES_READ, cls.INVOICES_WRITE,
            cls.WEBHOOKS_MANAGE,
        ]

    @classmethod
    def wildcard_scopes(cls) -> List[str]:
        return [cls.ALL] + [f"{resource}:*" for resource in cls.RESOURCES]

    @classmethod
    def is_valid_scope(cls, scope: Optional[str]) -> bool:
        if not scope:
            return False
        scope = scope.strip().lower()
        return scope in cls.all_scopes() or scope in cls.wildcard_scopes()

    @classmethod
    def grants(cls, permissions: Iterable[str], scope: Optional[str]) -> bool:
        """Exact scope, global wildcard, or resource wildcard (e.g. products:*)"""
        if not scope:
            return False
        scope = scope.strip().lower()
        granted = {p.strip().lower() for p in permissions}
        if cls.ALL in granted or scope in granted:
            return True
        resource = scope.split(":", 1)[0]
        return f"{resource}:*" in granted


# ============================================================================
# IP helpers
# ============================================================================

def is_valid_ip_or_cidr(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        if "/" in value:
            ipaddress.ip_network(value.strip(), strict=False)
        else:
            ipaddress.ip_address(value.strip())
        return True
    except ValueError:
        return False


def is_ip_in_range(ip: str, allowed: str) -> bool:
    """Exact match for plain addresses, containment for CIDR ranges"""
    try:
        address = ipaddress.ip_address(ip.strip())
        if "/" in allowed:
            return address in ipaddress.ip_network(allowed.strip(), strict=False)
        return address == ipaddress.ip_address(allowed.strip())
    except ValueError:
        return False


# ============================================================================
# API Client
# ============================================================================

class ApiClient(Entity):
    name: str
    description: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    is_active: bool = True

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("API client name is required")
        return name

    @classmethod
    def create(cls, name: str, contact_email: Optional[str] = None, description: Optional[str] = None,
               contact_phone: Optional[str] = None, created_by: Optional[str] = None) -> "ApiClient":
        return cls(
            name=cls._validate_name(name),
            description=clean(description),
            contact_email=clean(contact_email),
            contact_phone=clean(contact_phone),
            created_by=created_by,
        )

    def update(self, name: str, contact_email: Optional[str], description: Optional[str],
               contact_phone: Optional[str], updated_by: Optional[str] = None):
        self.name = self._validate_name(name)
        self.description = clean(description)
        self.contact_email = clean(contact_email)
        self.contact_phone = clean(contact_phone)
        self.touch(updated_by)

    def activate(self):
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    def to_dict(self, active_key_count: Optional[int] = None) -> dict:
        data = {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "is_active": self.is_active,
        }
        if active_key_count is not None:
            data["active_key_count"] = active_key_count
        data.update(self.audit_dict())
        return data


# ============================================================================
# API Key
# ============================================================================

class ApiKey(Entity):
    api_client_id: UUID
    key_hash: str
    key_prefix: str
    name: str
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    last_used_ip: Optional[str] = None
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    is_active: bool = True
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    revocation_reason: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    ip_whitelist: List[str] = Field(default_factory=list)

    @staticmethod
    def _validate_settings(rate_limit_per_minute: int, expires_at: Optional[datetime]):
        expires_at = as_utc(expires_at)
        if rate_limit_per_minute <= 0:
            raise DomainException("Rate limit must be greater than zero")
        if expires_at is not None and expires_at <= utcnow():
            raise DomainException("Expiration date must be in the future")

    @classmethod
    def create(
        cls,
        api_client_id: UUID,
        key_hash: str,
        key_prefix: str,
        name: str,
        rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE,
        expires_at: Optional[datetime] = None,
        created_by: Optional[str] = None,
    ) -> "ApiKey":
        name = clean(name)
        if not name:
            raise DomainException("API key name is required")
        if not key_hash:
            raise DomainException("Key hash is required")
        if not key_prefix:
            raise DomainException("Key prefix is required")
        cls._validate_settings(rate_limit_per_minute, expires_at)

        return cls(
            api_client_id=api_client_id,
            key_hash=key_hash,
            key_prefix=key_prefix,
            name=name,
            rate_limit_per_minute=rate_limit_per_minute,
            expires_at=as_utc(expires_at),
            created_by=created_by,
        )

    def update(self, name: str, rate_limit_per_minute: int, expires_at: Optional[datetime],
               updated_by: Optional[str] = None):
        name = clean(name)
        if not name:
            raise DomainException("API key name is required")
        self._validate_settings(rate_limit_per_minute, expires_at)
        self.name = name
        self.rate_limit_per_minute = rate_limit_per_minute
        self.expires_at = as_utc(expires_at)
        self.touch(updated_by)

    # ------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or utcnow())

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return self.is_active and not self.is_revoked() and not self.is_expired(now)

    def revoke(self, reason: Optional[str] = None, revoked_by: Optional[str] = None):
        if self.is_revoked():
            raise DomainException("API key is already revoked")
        self.revoked_at = utcnow()
        self.revoked_by = revoked_by
        self.revocation_reason = clean(reason)
        self.is_active = False

    def activate(self):
        if self.is_revoked():
            raise DomainException("Cannot activate a revoked API key")
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    def record_usage(self, ip_address: Optional[str]):
        self.last_used_at = utcnow()
        self.last_used_ip = ip_address

    # ------------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------------

    def add_permission(self, scope: str):
        scope = (clean(scope) or "").lower()
        if not IntegrationScopes.is_valid_scope(scope):
            raise DomainException(f"Invalid permission scope: {scope}")
        if scope in self.permissions:
            raise DomainException(f"Permission {scope} already granted")
        self.permissions.append(scope)

    def remove_permission(self, scope: str):
        scope = (clean(scope) or "").lower()
        if scope not in self.permissions:
            raise DomainException(f"Permission {scope} not granted")
        self.permissions.remove(scope)

    def has_permission(self, scope: str) -> bool:
        return IntegrationScopes.grants(self.permissions, scope)

    # ------------------------------------------------------------------------
    # IP whitelist
    # ------------------------------------------------------------------------

    def add_ip_to_whitelist(self, ip_address: str):
        ip_address = clean(ip_address)
        if not is_valid_ip_or_cidr(ip_address):
            raise DomainException(f"Invalid IP address or CIDR range: {ip_address}")
        if ip_address in self.ip_whitelist:
            raise DomainException(f"IP {ip_address} is already whitelisted")
        self.ip_whitelist.append(ip_address)

    def remove_ip_from_whitelist(self, ip_address: str):
        ip_address = clean(ip_address)
        if ip_address not in self.ip_whitelist:
            raise DomainException(f"IP {ip_address} is not whitelisted")
        self.ip_whitelist.remove(ip_address)

    def is_ip_allowed(self, ip_address: Optional[str]) -> bool:
        if not self.ip_whitelist:
            return True
        if not ip_address:
            return False
        return any(is_ip_in_range(ip_address, allowed) for allowed in self.ip_whitelist)

    def to_dict(self) -> dict:
        def iso(value: Optional[datetime]):
            return value.isoformat() if value else None

        data = {
            "id": str(self.id),
            "api_client_id": str(self.api_client_id),
            "name": self.name,
            "key_prefix": self.key_prefix,
            "expires_at": iso(self.expires_at),
            "last_used_at": iso(self.last_used_at),
            "last_used_ip": self.last_used_ip,
            "rate_limit_per_minute": self.rate_limit_per_minute,
            "is_active": self.is_active,
            "is_valid": self.is_valid(),
            "revoked_at": iso(self.revoked_at),
            "revoked_by": self.revoked_by,
            "revocation_reason": self.revocation_reason,
            "permissions": list(self.permissions),
            "ip_whitelist": list(self.ip_whitelist),
        }
        data.update(self.audit_dict())
        return data


# ============================================================================
# Request models (admin API)
# ============================================================================

class ApiClientRequest(BaseModel):
    name: str
    description: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None


class ApiKeyCreateRequest(BaseModel):
    name: str
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    expires_at: Optional[datetime] = None
    permissions: List[str] = Field(default_factory=list)
    ip_whitelist: List[str] = Field(default_factory=list)


class ApiKeyUpdateRequest(BaseModel):
    name: str
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    expires_at: Optional[datetime] = None


class RevokeApiKeyRequest(BaseModel):
    reason: Optional[str] = None
