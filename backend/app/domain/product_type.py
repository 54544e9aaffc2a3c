"""
Product Type Domain Model

A product type groups the attribute definitions a product of that type
carries (e.g. "laptop" -> cpu, ram, screen size).

Author: TM3
Date: 2025-12-02
"""
from typing import Iterable, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from app.core.errors import DomainException
from app.domain.base import ExternalEntity, clean


class ProductTypeAttribute(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    product_type_id: UUID
    attribute_definition_id: UUID
    is_required: bool = False
    display_order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "attribute_definition_id": str(self.attribute_definition_id),
            "is_required": self.is_required,
            "display_order": self.display_order,
        }


class ResolvedProductTypeAttribute(BaseModel):
    """Attribute reference after lookup, ready to be attached"""
    attribute_definition_id: UUID
    is_required: bool = False
    display_order: int = 0


class ProductType(ExternalEntity):
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    attributes: List[ProductTypeAttribute] = Field(default_factory=list)

    @staticmethod
    def normalize_code(code: Optional[str]) -> str:
        code = clean(code)
        if not code:
            raise DomainException("Product type code is required")
        return code.lower()

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("Product type name is required")
        return name

    @classmethod
    def create(cls, code: str, name: str, description: Optional[str] = None,
               created_by: Optional[str] = None) -> "ProductType":
        return cls(
            code=cls.normalize_code(code),
            name=cls._validate_name(name),
            description=clean(description),
            created_by=created_by,
        )

    @classmethod
    def create_from_external(
        cls,
        external_id: str,
        code: str,
        name: str,
        description: Optional[str] = None,
        external_code: Optional[str] = None,
        specific_id: Optional[UUID] = None,
        created_by: Optional[str] = None,
    ) -> "ProductType":
        product_type = cls.create(code, name, description, created_by)
        if specific_id:
            product_type.id = specific_id
        product_type.initialize_from_external(external_id, external_code)
        return product_type

    def update(self, name: str, description: Optional[str], updated_by: Optional[str] = None):
        self.name = self._validate_name(name)
        self.description = clean(description)
        self.touch(updated_by)

    def update_from_external(self, name: str, description: Optional[str],
                             external_code: Optional[str] = None, updated_by: Optional[str] = None):
        self.update(name, description, updated_by)
        if external_code is not None:
            self.update_external_code(external_code)
        self.mark_as_synced()

    def activate(self):
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    # ========================================================================
    # Attributes
    # ========================================================================

    def find_attribute_by_definition_id(self, attribute_definition_id: UUID) -> Optional[ProductTypeAttribute]:
        for attribute in self.attributes:
            if attribute.attribute_definition_id == attribute_definition_id:
                return attribute
        return None

    def add_attribute(self, attribute_definition_id: UUID, is_required: bool = False,
                      display_order: int = 0) -> ProductTypeAttribute:
        if self.find_attribute_by_definition_id(attribute_definition_id):
            raise DomainException(f"Attribute {attribute_definition_id} is already assigned to product type {self.code}")
        attribute = ProductTypeAttribute(
            product_type_id=self.id,
            attribute_definition_id=attribute_definition_id,
            is_required=is_required,
            display_order=display_order,
        )
        self.attributes.append(attribute)
        return attribute

    def update_attribute(self, attribute_definition_id: UUID, is_required: bool, display_order: int):
        attribute = self.find_attribute_by_definition_id(attribute_definition_id)
        if not attribute:
            raise DomainException(f"Attribute {attribute_definition_id} is not assigned to product type {self.code}")
        attribute.is_required = is_required
        attribute.display_order = display_order

    def remove_attribute(self, attribute_definition_id: UUID):
        if not self.find_attribute_by_definition_id(attribute_definition_id):
            raise DomainException(f"Attribute {attribute_definition_id} is not assigned to product type {self.code}")
        self.attributes = [
            a for a in self.attributes if a.attribute_definition_id != attribute_definition_id
        ]

    def clear_attributes(self):
        self.attributes = []

    def sync_attributes(self, resolved: Iterable[ResolvedProductTypeAttribute]):
        """Replace assigned attributes with the resolved list, keyed by definition id"""
        wanted = {}
        for item in resolved:
            wanted[item.attribute_definition_id] = item

        self.attributes = [a for a in self.attributes if a.attribute_definition_id in wanted]
        for definition_id, item in wanted.items():
            if self.find_attribute_by_definition_id(definition_id):
                self.update_attribute(definition_id, item.is_required, item.display_order)
            else:
                self.add_attribute(definition_id, item.is_required, item.display_order)

    def to_dict(self) -> dict:
        data = {
            "id": str(self.id),
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "attributes": [a.to_dict() for a in sorted(self.attributes, key=lambda a: a.display_order)],
        }
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


class ProductTypeAttributeInput(BaseModel):
    """Attribute reference in a sync payload: by id, external id or code"""
    attribute_definition_id: Optional[UUID] = None
    attribute_external_id: Optional[str] = None
    attribute_code: Optional[str] = None
    is_required: bool = False
    display_order: int = 0


class UpsertProductTypeRequest(BaseModel):
    id: Optional[UUID] = None
    external_id: Optional[str] = None
    external_code: Optional[str] = None
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    attributes: Optional[List[ProductTypeAttributeInput]] = None
