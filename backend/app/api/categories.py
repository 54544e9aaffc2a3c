"""
Integration API - Categories

Author: TM3
Date: 2025-12-03
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from app.api.dependencies import get_catalog_sync_service
from app.api.responses import error, ok, paged_result_to_response, result_to_response, upsert_to_response
from app.core.api_key_auth import require_scope
from app.domain.category import UpsertCategoryRequest
from app.domain.integration import IntegrationScopes
from app.services.api_key_service import ApiKeyValidationResult
from app.services.catalog_sync_service import CatalogSyncService

router = APIRouter()

MAX_BULK_ITEMS = 500

read_scope = require_scope(IntegrationScopes.PRODUCTS_READ)
write_scope = require_scope(IntegrationScopes.PRODUCTS_WRITE)


@router.get("")
async def list_categories(
    search: Optional[str] = Query(None),
    parent_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    result = service.list_categories(
        search=search, parent_id=parent_id, is_active=is_active, page=page, page_size=page_size,
    )
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def upsert_category(
    request: UpsertCategoryRequest,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Create or update a category. Matching: ExternalId, then ExternalCode, then Id"""
    return upsert_to_response(service.upsert_category(request, client.client_name), "Category")


@router.post("/bulk")
async def bulk_upsert_categories(
    items: List[UpsertCategoryRequest] = Body(...),
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Parents in the batch are synced before their children"""
    if len(items) > MAX_BULK_ITEMS:
        return error(f"A bulk request can contain at most {MAX_BULK_ITEMS} items", "VALIDATION_ERROR")
    summary = service.sync_categories(items, client.client_name)
    return ok(summary.to_dict(), f"{summary.created} created, {summary.updated} updated, {summary.failed} failed")


@router.get("/ext/{external_id}")
async def get_category_by_external_id(
    external_id: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_category(external_id=external_id))


@router.delete("/ext/{external_id}")
async def delete_category(
    external_id: str,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.delete_category(external_id, client.client_name), "Category deleted")


@router.get("/{category_id}")
async def get_category(
    category_id: UUID,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_category(category_id=category_id))
