"""
Integration API - Product types

Author: TM3
Date: 2025-12-03
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_attribute_sync_service
from app.api.responses import paged_result_to_response, result_to_response, upsert_to_response
from app.core.api_key_auth import require_scope
from app.domain.integration import IntegrationScopes
from app.domain.product_type import UpsertProductTypeRequest
from app.services.api_key_service import ApiKeyValidationResult
from app.services.attribute_sync_service import AttributeSyncService

router = APIRouter()

read_scope = require_scope(IntegrationScopes.PRODUCTS_READ)
write_scope = require_scope(IntegrationScopes.PRODUCTS_WRITE)


@router.get("")
async def list_product_types(
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    result = service.list_product_types(search=search, is_active=is_active, page=page, page_size=page_size)
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def upsert_product_type(
    request: UpsertProductTypeRequest,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    """
    Create or update a product type. Matching: Id, then ExternalId, then Code.

    When `attributes` is given on update it replaces the assigned attributes.
    """
    return upsert_to_response(service.upsert_product_type(request, client.client_name), "Product type")


@router.get("/ext/{external_id}")
async def get_product_type_by_external_id(
    external_id: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    return result_to_response(service.get_product_type(external_id=external_id))


@router.get("/code/{code}")
async def get_product_type_by_code(
    code: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    return result_to_response(service.get_product_type(code=code))


@router.get("/{product_type_id}")
async def get_product_type(
    product_type_id: UUID,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    return result_to_response(service.get_product_type(product_type_id=product_type_id))
