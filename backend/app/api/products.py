"""
Integration API - Products
ERP product sync: upsert, bulk upsert, reads and soft delete

Author: TM3
Date: 2025-10-03
Updated: 2025-12-03 (ERP integration endpoints behind API key scopes)
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from app.api.dependencies import get_catalog_sync_service
from app.api.responses import (
    error,
    ok,
    paged_result_to_response,
    result_to_response,
    upsert_to_response,
)
from app.core.api_key_auth import require_scope
from app.domain.integration import IntegrationScopes
from app.domain.product import ProductStatus, UpsertProductRequest
from app.services.api_key_service import ApiKeyValidationResult
from app.services.catalog_sync_service import CatalogSyncService

router = APIRouter()

MAX_BULK_ITEMS = 500

read_scope = require_scope(IntegrationScopes.PRODUCTS_READ)
write_scope = require_scope(IntegrationScopes.PRODUCTS_WRITE)


@router.get("")
async def list_products(
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    category_id: Optional[UUID] = Query(None),
    category_ext_id: Optional[str] = Query(None, description="Category by ERP external id"),
    brand_id: Optional[UUID] = Query(None),
    product_type_id: Optional[UUID] = Query(None),
    status: Optional[ProductStatus] = Query(None),
    is_active: Optional[bool] = Query(None),
    min_stock: Optional[int] = Query(None, ge=0),
    max_stock: Optional[int] = Query(None, ge=0),
    sort_by: str = Query("name", description="name, sku, list_price, stock_quantity, created_at, updated_at"),
    sort_desc: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Paged product list with filters"""
    result = service.list_products(
        category_ext_id=category_ext_id,
        search=search,
        category_id=category_id,
        brand_id=brand_id,
        product_type_id=product_type_id,
        status=status,
        is_active=is_active,
        min_stock=min_stock,
        max_stock=max_stock,
        sort_by=sort_by,
        sort_desc=sort_desc,
        page=page,
        page_size=page_size,
    )
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def upsert_product(
    request: UpsertProductRequest,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """
    Create or update a product from the ERP

    Matching: Id, then ExternalId, then SKU. Returns 201 on create, 200 on update.
    """
    return upsert_to_response(service.upsert_product(request, client.client_name), "Product")


@router.post("/bulk")
async def bulk_upsert_products(
    items: List[UpsertProductRequest] = Body(...),
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Upsert many products; failures are reported per item and do not stop the batch"""
    if len(items) > MAX_BULK_ITEMS:
        return error(f"A bulk request can contain at most {MAX_BULK_ITEMS} items", "VALIDATION_ERROR")
    summary = service.sync_products(items, client.client_name)
    return ok(summary.to_dict(), f"{summary.created} created, {summary.updated} updated, {summary.failed} failed")


@router.get("/ext/{external_id}")
async def get_product_by_external_id(
    external_id: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_product(external_id=external_id))


@router.get("/sku/{sku}")
async def get_product_by_sku(
    sku: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_product(sku=sku))


@router.delete("/ext/{external_id}")
async def delete_product(
    external_id: str,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    """Soft delete a product by its ERP external id"""
    return result_to_response(service.delete_product(external_id, client.client_name), "Product deleted")


@router.get("/{product_id}")
async def get_product(
    product_id: UUID,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: CatalogSyncService = Depends(get_catalog_sync_service),
):
    return result_to_response(service.get_product(product_id=product_id))
