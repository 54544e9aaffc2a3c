"""
Attribute Sync Service - ERP upserts for attribute definitions and product types

Author: TM3
Date: 2025-12-03
"""
import logging
from typing import List, Optional
from uuid import UUID

from app.core.errors import DomainException, ErrorCodes
from app.core.result import Result
from app.domain.attribute import (
    AttributeDefinition,
    UpsertAttributeDefinitionRequest,
    UpsertAttributeValueRequest,
)
from app.domain.product_type import (
    ProductType,
    ProductTypeAttributeInput,
    ResolvedProductTypeAttribute,
    UpsertProductTypeRequest,
)
from app.repositories.attribute_repository import AttributeRepository
from app.repositories.product_type_repository import ProductTypeRepository
from app.services.catalog_sync_service import UpsertOutcome
from app.services.external_sync import (
    lookup_external_entity,
    resolve_external_id,
    should_create_with_specific_id,
)

logger = logging.getLogger(__name__)


class AttributeSyncService:
    """Attribute definitions, their predefined values and product types"""

    def __init__(
        self,
        attribute_repository: Optional[AttributeRepository] = None,
        product_type_repository: Optional[ProductTypeRepository] = None,
    ):
        self.attributes = attribute_repository or AttributeRepository()
        self.product_types = product_type_repository or ProductTypeRepository()

    # ========================================================================
    # Attribute definitions
    # ========================================================================

    def upsert_attribute_definition(
        self,
        request: UpsertAttributeDefinitionRequest,
        synced_by: Optional[str] = None,
    ) -> Result:
        lookup = lookup_external_entity(
            request.external_id,
            request.code,
            self.attributes.find_by_external_id,
            self.attributes.find_by_code,
        )
        definition = lookup.entity
        created = definition is None

        try:
            if created:
                if self.attributes.exists_by_code(request.code):
                    return Result.fail(
                        f"An attribute definition with code '{request.code}' already exists",
                        ErrorCodes.CODE_EXISTS,
                    )

                kwargs = dict(
                    name_en=request.name_en,
                    unit=request.unit,
                    is_filterable=request.is_filterable,
                    is_required=request.is_required,
                    is_visible_on_product_page=request.is_visible_on_product_page,
                    display_order=request.display_order,
                    created_by=synced_by,
                )
                if lookup.effective_external_id:
                    definition = AttributeDefinition.create_from_external(
                        lookup.effective_external_id,
                        request.code,
                        request.name,
                        request.type,
                        external_code=request.external_code,
                        specific_id=request.id,
                        **kwargs,
                    )
                else:
                    definition = AttributeDefinition.create(request.code, request.name, request.type, **kwargs)
                    definition.external_id = str(definition.id)

                if request.predefined_values and definition.requires_predefined_values():
                    for item in request.predefined_values:
                        definition.add_predefined_value(item.value, item.display_text, item.display_order)
            else:
                definition.update_from_external(
                    request.name,
                    request.name_en,
                    request.unit,
                    request.is_filterable,
                    request.is_required,
                    request.is_visible_on_product_page,
                    request.display_order,
                    external_code=request.external_code,
                    updated_by=synced_by,
                )
                if definition.requires_predefined_values():
                    definition.sync_predefined_values(request.predefined_values)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.attributes.save(definition)

        if created:
            logger.info(
                f"Created attribute definition from external sync: {definition.external_id} - {definition.code} (Id: {definition.id})"
            )
        else:
            logger.info(
                f"Updated attribute definition from external sync: {definition.external_id} - {definition.code} (Id: {definition.id})"
            )

        return Result.ok(UpsertOutcome(definition.to_dict(), created))

    def upsert_attribute_value(self, request: UpsertAttributeValueRequest, synced_by: Optional[str] = None) -> Result:
        definition = None
        if request.attribute_definition_id:
            definition = self.attributes.find_by_id(request.attribute_definition_id)
        elif request.attribute_external_id:
            definition = self.attributes.find_by_external_id(request.attribute_external_id)

        if definition is None:
            return Result.fail("Attribute definition not found", ErrorCodes.NOT_FOUND)

        if not definition.requires_predefined_values():
            return Result.fail(
                f"Attribute '{definition.code}' is of type '{definition.attribute_type.value}' "
                f"which does not support predefined values",
                ErrorCodes.INVALID_TYPE,
            )

        try:
            value = definition.find_predefined_value_by_value(request.value)
            created = value is None
            if created:
                value = definition.add_predefined_value(request.value, request.display_text, request.display_order)
            else:
                definition.update_predefined_value(value.id, request.display_text, request.display_order)
            definition.touch(synced_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.attributes.save(definition)

        action = "Added" if created else "Updated"
        logger.info(f"{action} attribute value '{value.value}' for attribute {definition.code}")
        return Result.ok(UpsertOutcome(value.to_dict(), created))

    def get_attribute_definition(
        self,
        definition_id: Optional[UUID] = None,
        external_id: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Result:
        if definition_id:
            definition = self.attributes.find_by_id(definition_id)
        elif external_id:
            definition = self.attributes.find_by_external_id(external_id)
        else:
            definition = self.attributes.find_by_code(code or "")

        if definition is None:
            return Result.fail(
                f"Attribute definition not found: {definition_id or external_id or code}",
                ErrorCodes.ATTRIBUTE_NOT_FOUND,
            )
        return Result.ok(definition.to_dict())

    def list_attribute_definitions(self, **filters) -> Result:
        definitions, total = self.attributes.find_all(**filters)
        return Result.ok(([d.to_dict() for d in definitions], total))

    # ========================================================================
    # Product types
    # ========================================================================

    def _resolve_attribute_definition_id(self, item: ProductTypeAttributeInput) -> Optional[UUID]:
        """Id, then external id, then code"""
        if item.attribute_definition_id:
            definition = self.attributes.find_by_id(item.attribute_definition_id)
            if definition:
                return definition.id
        if item.attribute_external_id:
            definition = self.attributes.find_by_external_id(item.attribute_external_id)
            if definition:
                return definition.id
        if item.attribute_code:
            definition = self.attributes.find_by_code(item.attribute_code)
            if definition:
                return definition.id
        return None

    def _resolve_attributes(self, items: List[ProductTypeAttributeInput]) -> Result:
        resolved = []
        for item in items:
            definition_id = self._resolve_attribute_definition_id(item)
            if definition_id is None:
                return Result.fail(
                    f"Attribute definition not found: Id={item.attribute_definition_id}, "
                    f"ExternalId={item.attribute_external_id}, Code={item.attribute_code}",
                    ErrorCodes.ATTRIBUTE_NOT_FOUND,
                )
            resolved.append(ResolvedProductTypeAttribute(
                attribute_definition_id=definition_id,
                is_required=item.is_required,
                display_order=item.display_order,
            ))
        return Result.ok(resolved)

    def upsert_product_type(self, request: UpsertProductTypeRequest, synced_by: Optional[str] = None) -> Result:
        # Id, then ExternalId, then Code
        product_type = None
        create_with_specific_id = False
        if request.id:
            product_type = self.product_types.find_by_id(request.id)
            create_with_specific_id = should_create_with_specific_id(request.id, product_type)

        if product_type is None and not create_with_specific_id:
            lookup = lookup_external_entity(
                request.external_id,
                request.code,
                self.product_types.find_by_external_id,
                self.product_types.find_by_code,
            )
            product_type = lookup.entity

        resolved = None
        if request.attributes is not None:
            attributes = self._resolve_attributes(request.attributes)
            if attributes.is_failure:
                return attributes
            resolved = attributes.data

        created = product_type is None
        try:
            if created:
                external_id = resolve_external_id(request.external_id, request.id)
                if not external_id:
                    return Result.fail(
                        "ExternalId or Id is required for creating new product type",
                        ErrorCodes.EXTERNAL_ID_REQUIRED,
                    )
                if self.product_types.exists_by_code(request.code):
                    return Result.fail(
                        f"A product type with code '{request.code}' already exists",
                        ErrorCodes.CODE_EXISTS,
                    )

                product_type = ProductType.create_from_external(
                    external_id,
                    request.code,
                    request.name,
                    request.description,
                    external_code=request.external_code,
                    specific_id=request.id if create_with_specific_id else None,
                    created_by=synced_by,
                )
                for item in resolved or []:
                    product_type.add_attribute(item.attribute_definition_id, item.is_required, item.display_order)
            else:
                product_type.update_from_external(
                    request.name,
                    request.description,
                    external_code=request.external_code,
                    updated_by=synced_by,
                )
                if resolved is not None:
                    product_type.sync_attributes(resolved)

            if request.is_active:
                product_type.activate()
            else:
                product_type.deactivate()
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.product_types.save(product_type)

        if created:
            logger.info(
                f"Created product type from external sync: {product_type.external_id} - {product_type.code} (Id: {product_type.id})"
            )
        else:
            logger.info(
                f"Updated product type from external sync: {product_type.external_id} - {product_type.code} (Id: {product_type.id})"
            )

        return Result.ok(UpsertOutcome(product_type.to_dict(), created))

    def get_product_type(
        self,
        product_type_id: Optional[UUID] = None,
        external_id: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Result:
        if product_type_id:
            product_type = self.product_types.find_by_id(product_type_id)
        elif external_id:
            product_type = self.product_types.find_by_external_id(external_id)
        else:
            product_type = self.product_types.find_by_code(code or "")

        if product_type is None:
            return Result.fail(
                f"Product type not found: {product_type_id or external_id or code}",
                ErrorCodes.PRODUCT_TYPE_NOT_FOUND,
            )
        return Result.ok(product_type.to_dict())

    def list_product_types(self, **filters) -> Result:
        product_types, total = self.product_types.find_all(**filters)
        return Result.ok(([p.to_dict() for p in product_types], total))
