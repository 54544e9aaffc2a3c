"""
Integration API - Attribute definitions and predefined values

Author: TM3
Date: 2025-12-03
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_attribute_sync_service
from app.api.responses import paged_result_to_response, result_to_response, upsert_to_response
from app.core.api_key_auth import require_scope
from app.domain.attribute import (
    AttributeType,
    PredefinedValueInput,
    UpsertAttributeDefinitionRequest,
    UpsertAttributeValueRequest,
)
from app.domain.integration import IntegrationScopes
from app.services.api_key_service import ApiKeyValidationResult
from app.services.attribute_sync_service import AttributeSyncService

router = APIRouter()

read_scope = require_scope(IntegrationScopes.PRODUCTS_READ)
write_scope = require_scope(IntegrationScopes.PRODUCTS_WRITE)


@router.get("")
async def list_attributes(
    search: Optional[str] = Query(None),
    attribute_type: Optional[AttributeType] = Query(None, alias="type"),
    is_filterable: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    result = service.list_attribute_definitions(
        search=search, attribute_type=attribute_type, is_filterable=is_filterable, page=page, page_size=page_size,
    )
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def upsert_attribute(
    request: UpsertAttributeDefinitionRequest,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    """
    Create or update an attribute definition. Matching: ExternalId, then Code.

    For select / multi-select attributes an update replaces the predefined
    values with the given list.
    """
    return upsert_to_response(service.upsert_attribute_definition(request, client.client_name), "Attribute")


@router.get("/ext/{external_id}")
async def get_attribute_by_external_id(
    external_id: str,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    return result_to_response(service.get_attribute_definition(external_id=external_id))


@router.post("/{external_id}/values")
async def upsert_attribute_value(
    external_id: str,
    value: PredefinedValueInput,
    client: ApiKeyValidationResult = Depends(write_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    """Add or update one predefined value of a select attribute"""
    request = UpsertAttributeValueRequest(
        attribute_external_id=external_id,
        value=value.value,
        display_text=value.display_text,
        display_order=value.display_order,
    )
    return upsert_to_response(service.upsert_attribute_value(request, client.client_name), "Attribute value")


@router.get("/{definition_id}")
async def get_attribute(
    definition_id: UUID,
    client: ApiKeyValidationResult = Depends(read_scope),
    service: AttributeSyncService = Depends(get_attribute_sync_service),
):
    return result_to_response(service.get_attribute_definition(definition_id=definition_id))
