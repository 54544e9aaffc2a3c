"""
Admin API - Integration clients and API keys

Author: TM3
Date: 2025-12-04
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.dependencies import get_api_key_service
from app.api.responses import paged_result_to_response, result_to_response
from app.core.auth import TokenUser, require_admin
from app.domain.integration import (
    ApiClientRequest,
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
    RevokeApiKeyRequest,
)
from app.services.api_key_service import ApiKeyService

router = APIRouter()


class ScopeRequest(BaseModel):
    scope: str


class IpAddressRequest(BaseModel):
    ip_address: str


# ============================================================================
# Clients
# ============================================================================

@router.get("/api-clients")
async def list_api_clients(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    result = service.list_clients(search=search, is_active=is_active, page=page, page_size=page_size)
    return paged_result_to_response(result, page, page_size)


@router.post("/api-clients")
async def create_api_client(
    request: ApiClientRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.create_client(request, user.email), "API client created", success_status=201)


@router.get("/api-clients/{client_id}")
async def get_api_client(
    client_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.get_client(client_id))


@router.put("/api-clients/{client_id}")
async def update_api_client(
    client_id: UUID,
    request: ApiClientRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.update_client(client_id, request, user.email), "API client updated")


@router.post("/api-clients/{client_id}/activate")
async def activate_api_client(
    client_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.set_client_active(client_id, True, user.email), "API client activated")


@router.post("/api-clients/{client_id}/deactivate")
async def deactivate_api_client(
    client_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Keys of an inactive client are rejected with CLIENT_INACTIVE"""
    return result_to_response(service.set_client_active(client_id, False, user.email), "API client deactivated")


@router.get("/api-clients/{client_id}/keys")
async def list_api_keys(
    client_id: UUID,
    include_revoked: bool = Query(True),
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.list_keys(client_id, include_revoked))


@router.post("/api-clients/{client_id}/keys")
async def create_api_key(
    client_id: UUID,
    request: ApiKeyCreateRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """
    Issue a new key. The plain text key is part of this response only and
    cannot be retrieved again.
    """
    return result_to_response(
        service.create_key(client_id, request, user.email),
        "API key created. Store it now, it will not be shown again.",
        success_status=201,
    )


# ============================================================================
# Keys
# ============================================================================

@router.get("/api-keys/{key_id}")
async def get_api_key(
    key_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.get_key(key_id))


@router.put("/api-keys/{key_id}")
async def update_api_key(
    key_id: UUID,
    request: ApiKeyUpdateRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.update_key(key_id, request, user.email), "API key updated")


@router.post("/api-keys/{key_id}/revoke")
async def revoke_api_key(
    key_id: UUID,
    request: Optional[RevokeApiKeyRequest] = None,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    reason = request.reason if request else None
    return result_to_response(service.revoke_key(key_id, reason, user.email), "API key revoked")


@router.post("/api-keys/{key_id}/rotate")
async def rotate_api_key(
    key_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Revoke the key and issue a replacement with the same scopes, IPs and limit"""
    return result_to_response(
        service.rotate_key(key_id, user.email),
        "API key rotated. Store the new key now, it will not be shown again.",
        success_status=201,
    )


@router.post("/api-keys/{key_id}/activate")
async def activate_api_key(
    key_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.set_key_active(key_id, True, user.email), "API key activated")


@router.post("/api-keys/{key_id}/deactivate")
async def deactivate_api_key(
    key_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.set_key_active(key_id, False, user.email), "API key deactivated")


@router.post("/api-keys/{key_id}/permissions")
async def add_api_key_permission(
    key_id: UUID,
    request: ScopeRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.add_permission(key_id, request.scope), "Permission added")


@router.delete("/api-keys/{key_id}/permissions/{scope}")
async def remove_api_key_permission(
    key_id: UUID,
    scope: str,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.remove_permission(key_id, scope), "Permission removed")


@router.post("/api-keys/{key_id}/ip-whitelist")
async def add_api_key_ip(
    key_id: UUID,
    request: IpAddressRequest,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Accepts a single address or a CIDR range"""
    return result_to_response(service.add_ip_to_whitelist(key_id, request.ip_address), "IP address added")


@router.delete("/api-keys/{key_id}/ip-whitelist/{ip_address:path}")
async def remove_api_key_ip(
    key_id: UUID,
    ip_address: str,
    user: TokenUser = Depends(require_admin),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return result_to_response(service.remove_ip_from_whitelist(key_id, ip_address), "IP address removed")
