"""
Integration API - Brands

Author: TM3
Date: 2025-12-03
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from app.api.dependencies import get_catalog_sync_service
from app.api.responses import error, ok, paged_result_to_response, result_to_response, upsert_to_response
from app.core.api_key_auth import require_scope
from app.domain.brand import UpsertBrandRequest
from app.domain.integration import IntegrationScopes
from app.services.api_key_service import ApiKeyValidationResult
from app.services.catalog_sync_service import CatalogSyncService

router = APIRouter()

MAX_BULK_ITEMS = 500

read_scope = require_scope(IntegrationScopes.PRODUCTS_READ)
write_scope = require_scope(IntegrationScopes.PRODUCTS_WRITE)


@router.get("")
async def list_brands(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    result = service.list_brands(search=search, is_active=is_active, page=page, page_size=page_size)
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def upsert_brand(
    request: UpsertBrandRequest,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Create or update a brand. Matching: ExternalId, then Name"""
    return upsert_to_response(service.upsert_brand(request, client.client_name), "Brand")


@router.post("/bulk")
async def bulk_upsert_brands(
    items: List[UpsertBrandRequest] = Body(...),
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    if len(items) > MAX_BULK_ITEMS:
        return error(f"A bulk request can contain at most {MAX_BULK_ITEMS} items", "VALIDATION_ERROR")
    summary = service.sync_brands(items, client.client_name)
    return ok(summary.to_dict(), f"{summary.created} created, {summary.updated} updated, {summary.failed} failed")


@router.get("/ext/{external_id}")
async def get_brand_by_external_id(
    external_id: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_brand(external_id=external_id))


@router.delete("/ext/{external_id}")
async def delete_brand(
    external_id: str,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.delete_brand(external_id, client.client_name), "Brand deleted")


@router.get("/{brand_id}")
async def get_brand(
    brand_id: UUID,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_brand(brand_id=brand_id))
