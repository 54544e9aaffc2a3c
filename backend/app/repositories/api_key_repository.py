"""
Integration Repositories - API clients and API keys

Author: TM3
Date: 2025-12-02
"""
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from app.domain.integration import ApiClient, ApiKey
from app.repositories.base import BaseRepository, AUDIT_COLUMNS

CLIENT_COLUMNS = ", ".join([
    "id", "name", "description", "contact_email", "contact_phone", "is_active",
] + AUDIT_COLUMNS)

KEY_COLUMNS = ", ".join([
    "id", "api_client_id", "key_hash", "key_prefix", "name", "expires_at", "last_used_at",
    "last_used_ip", "rate_limit_per_minute", "is_active", "revoked_at", "revoked_by",
    "revocation_reason", "permissions", "ip_whitelist",
] + AUDIT_COLUMNS)


class ApiClientRepository(BaseRepository):

    def find_by_id(self, client_id: UUID) -> Optional[ApiClient]:
        row = self._fetch_one(f"""
            SELECT {CLIENT_COLUMNS}
            FROM api_clients
            WHERE id = %s AND is_deleted = FALSE
        """, (client_id,))
        return ApiClient.model_validate(dict(row)) if row else None

    def find_by_name(self, name: str) -> Optional[ApiClient]:
        row = self._fetch_one(f"""
            SELECT {CLIENT_COLUMNS}
            FROM api_clients
            WHERE LOWER(name) = LOWER(%s) AND is_deleted = FALSE
        """, (name.strip(),))
        return ApiClient.model_validate(dict(row)) if row else None

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[ApiClient], int]:
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("(name ILIKE %s OR contact_email ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        rows, total = self._fetch_page("api_clients", CLIENT_COLUMNS, conditions, params, "name", page, page_size)
        return [ApiClient.model_validate(dict(row)) for row in rows], total

    def count_active_keys(self, client_id: UUID) -> int:
        row = self._fetch_one("""
            SELECT COUNT(*) AS total
            FROM api_keys
            WHERE api_client_id = %s AND is_active = TRUE AND revoked_at IS NULL AND is_deleted = FALSE
        """, (client_id,))
        return int(row["total"])

    def save(self, client: ApiClient) -> ApiClient:
        row = {
            "id": client.id,
            "name": client.name,
            "description": client.description,
            "contact_email": client.contact_email,
            "contact_phone": client.contact_phone,
            "is_active": client.is_active,
        }
        row.update(self._audit_row(client))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "api_clients", row)
        return client


class ApiKeyRepository(BaseRepository):

    @staticmethod
    def _map_row_to_key(row: dict) -> ApiKey:
        data = dict(row)
        data["permissions"] = list(data.get("permissions") or [])
        data["ip_whitelist"] = list(data.get("ip_whitelist") or [])
        return ApiKey.model_validate(data)

    def find_by_id(self, key_id: UUID) -> Optional[ApiKey]:
        row = self._fetch_one(f"""
            SELECT {KEY_COLUMNS}
            FROM api_keys
            WHERE id = %s AND is_deleted = FALSE
        """, (key_id,))
        return self._map_row_to_key(row) if row else None

    def find_by_hash(self, key_hash: str) -> Optional[ApiKey]:
        row = self._fetch_one(f"""
            SELECT {KEY_COLUMNS}
            FROM api_keys
            WHERE key_hash = %s AND is_deleted = FALSE
        """, (key_hash,))
        return self._map_row_to_key(row) if row else None

    def find_by_client(self, client_id: UUID, include_revoked: bool = True) -> List[ApiKey]:
        condition = "" if include_revoked else "AND revoked_at IS NULL"
        rows = self._fetch_all(f"""
            SELECT {KEY_COLUMNS}
            FROM api_keys
            WHERE api_client_id = %s AND is_deleted = FALSE {condition}
            ORDER BY created_at DESC
        """, (client_id,))
        return [self._map_row_to_key(row) for row in rows]

    def update_last_used(self, key_id: UUID, used_at: datetime, ip_address: Optional[str]):
        self._execute("""
            UPDATE api_keys
            SET last_used_at = %s, last_used_ip = %s
            WHERE id = %s
        """, (used_at, ip_address, key_id))

    def save(self, api_key: ApiKey) -> ApiKey:
        row = {
            "id": api_key.id,
            "api_client_id": api_key.api_client_id,
            "key_hash": api_key.key_hash,
            "key_prefix": api_key.key_prefix,
            "name": api_key.name,
            "expires_at": api_key.expires_at,
            "last_used_at": api_key.last_used_at,
            "last_used_ip": api_key.last_used_ip,
            "rate_limit_per_minute": api_key.rate_limit_per_minute,
            "is_active": api_key.is_active,
            "revoked_at": api_key.revoked_at,
            "revoked_by": api_key.revoked_by,
            "revocation_reason": api_key.revocation_reason,
            "permissions": list(api_key.permissions),
            "ip_whitelist": list(api_key.ip_whitelist),
        }
        row.update(self._audit_row(api_key))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "api_keys", row)
        return api_key
