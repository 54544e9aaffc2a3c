"""
Attribute Definition Domain Model

Defines product attributes (color, size, voltage...). Select and
multi-select attributes carry a list of predefined values.

Author: TM3
Date: 2025-12-02
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from app.core.errors import DomainException
from app.domain.base import ExternalEntity, clean


class AttributeType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    BOOLEAN = "boolean"
    DATE = "date"


SELECT_TYPES = {AttributeType.SELECT, AttributeType.MULTI_SELECT}


class AttributeValue(BaseModel):
    """A predefined value of a select / multi-select attribute"""
    id: UUID = Field(default_factory=uuid4)
    attribute_definition_id: UUID
    value: str
    display_text: Optional[str] = None
    display_order: int = 0

    def update(self, display_text: Optional[str], display_order: int):
        self.display_text = clean(display_text)
        self.display_order = display_order

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "attribute_definition_id": str(self.attribute_definition_id),
            "value": self.value,
            "display_text": self.display_text,
            "display_order": self.display_order,
        }


class PredefinedValueInput(BaseModel):
    value: str
    display_text: Optional[str] = None
    display_order: int = 0


class AttributeDefinition(ExternalEntity):
    code: str
    name: str
    name_en: Optional[str] = None
    attribute_type: AttributeType = AttributeType.TEXT
    unit: Optional[str] = None
    is_filterable: bool = False
    is_required: bool = False
    is_visible_on_product_page: bool = True
    display_order: int = 0
    predefined_values: List[AttributeValue] = Field(default_factory=list)

    @staticmethod
    def normalize_code(code: Optional[str]) -> str:
        code = clean(code)
        if not code:
            raise DomainException("Attribute code is required")
        return code.lower()

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("Attribute name is required")
        return name

    @classmethod
    def create(
        cls,
        code: str,
        name: str,
        attribute_type: AttributeType,
        name_en: Optional[str] = None,
        unit: Optional[str] = None,
        is_filterable: bool = False,
        is_required: bool = False,
        is_visible_on_product_page: bool = True,
        display_order: int = 0,
        created_by: Optional[str] = None,
    ) -> "AttributeDefinition":
        return cls(
            code=cls.normalize_code(code),
            name=cls._validate_name(name),
            name_en=clean(name_en),
            attribute_type=attribute_type,
            unit=clean(unit),
            is_filterable=is_filterable,
            is_required=is_required,
            is_visible_on_product_page=is_visible_on_product_page,
            display_order=display_order,
            created_by=created_by,
        )

    @classmethod
    def create_from_external(
        cls,
        external_id: str,
        code: str,
        name: str,
        attribute_type: AttributeType,
        external_code: Optional[str] = None,
        specific_id: Optional[UUID] = None,
        **kwargs,
    ) -> "AttributeDefinition":
        definition = cls.create(code, name, attribute_type, **kwargs)
        if specific_id:
            definition.id = specific_id
        definition.initialize_from_external(external_id, external_code)
        return definition

    def update(
        self,
        name: str,
        name_en: Optional[str],
        unit: Optional[str],
        is_filterable: bool,
        is_required: bool,
        is_visible_on_product_page: bool,
        display_order: int,
        updated_by: Optional[str] = None,
    ):
        # code and type are immutable once created
        self.name = self._validate_name(name)
        self.name_en = clean(name_en)
        self.unit = clean(unit)
        self.is_filterable = is_filterable
        self.is_required = is_required
        self.is_visible_on_product_page = is_visible_on_product_page
        self.display_order = display_order
        self.touch(updated_by)

    def update_from_external(self, *args, external_code: Optional[str] = None, **kwargs):
        self.update(*args, **kwargs)
        if external_code is not None:
            self.update_external_code(external_code)
        self.mark_as_synced()

    # ========================================================================
    # Predefined values
    # ========================================================================

    def requires_predefined_values(self) -> bool:
        return self.attribute_type in SELECT_TYPES

    def find_predefined_value_by_value(self, value: Optional[str]) -> Optional[AttributeValue]:
        value = clean(value)
        if not value:
            return None
        lowered = value.lower()
        for item in self.predefined_values:
            if item.value.lower() == lowered:
                return item
        return None

    def add_predefined_value(self, value: str, display_text: Optional[str] = None,
                             display_order: int = 0) -> AttributeValue:
        if not self.requires_predefined_values():
            raise DomainException(
                f"Predefined values are only allowed for select attributes, not {self.attribute_type.value}"
            )
        value = clean(value)
        if not value:
            raise DomainException("Predefined value cannot be empty")
        if self.find_predefined_value_by_value(value):
            raise DomainException(f"Predefined value '{value}' already exists for attribute {self.code}")

        item = AttributeValue(
            attribute_definition_id=self.id,
            value=value,
            display_text=clean(display_text),
            display_order=display_order,
        )
        self.predefined_values.append(item)
        return item

    def update_predefined_value(self, value_id: UUID, display_text: Optional[str], display_order: int):
        for item in self.predefined_values:
            if item.id == value_id:
                item.update(display_text, display_order)
                return item
        raise DomainException(f"Predefined value {value_id} not found")

    def remove_predefined_value(self, value_id: UUID):
        remaining = [item for item in self.predefined_values if item.id != value_id]
        if len(remaining) == len(self.predefined_values):
            raise DomainException(f"Predefined value {value_id} not found")
        self.predefined_values = remaining

    def clear_predefined_values(self):
        self.predefined_values = []

    def sync_predefined_values(self, values: Optional[List[PredefinedValueInput]]):
        """
        Replace the predefined values with the given list.

        Existing values are matched case-insensitively and keep their ids;
        values missing from the list are removed. An empty list clears all.
        """
        if not values:
            self.clear_predefined_values()
            return

        wanted = {}
        for item in values:
            key = (clean(item.value) or "").lower()
            if not key:
                raise DomainException("Predefined value cannot be empty")
            if key in wanted:
                raise DomainException(f"Duplicate predefined value '{item.value}'")
            wanted[key] = item

        self.predefined_values = [
            existing for existing in self.predefined_values
            if existing.value.lower() in wanted
        ]

        for key, item in wanted.items():
            existing = self.find_predefined_value_by_value(key)
            if existing:
                existing.update(item.display_text, item.display_order)
            else:
                self.add_predefined_value(item.value, item.display_text, item.display_order)

    def is_valid_value(self, value: Optional[str]) -> bool:
        """Check a raw product attribute value against this definition"""
        value = clean(value)
        if value is None:
            return not self.is_required

        if self.attribute_type == AttributeType.TEXT:
            return True
        if self.attribute_type == AttributeType.NUMBER:
            try:
                Decimal(value)
                return True
            except InvalidOperation:
                return False
        if self.attribute_type == AttributeType.BOOLEAN:
            return value.lower() in ("true", "false", "1", "0")
        if self.attribute_type == AttributeType.DATE:
            try:
                date.fromisoformat(value)
                return True
            except ValueError:
                return False
        if self.attribute_type == AttributeType.SELECT:
            return self.find_predefined_value_by_value(value) is not None
        # multi-select: comma separated
        parts = [part for part in value.split(",") if part.strip()]
        return bool(parts) and all(self.find_predefined_value_by_value(part) for part in parts)

    def to_dict(self) -> dict:
        data = {
            "id": str(self.id),
            "code": self.code,
            "name": self.name,
            "name_en": self.name_en,
            "type": self.attribute_type.value,
            "unit": self.unit,
            "is_filterable": self.is_filterable,
            "is_required": self.is_required,
            "is_visible_on_product_page": self.is_visible_on_product_page,
            "display_order": self.display_order,
            "predefined_values": [
                v.to_dict() for v in sorted(self.predefined_values, key=lambda v: (v.display_order, v.value))
            ],
        }
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


class UpsertAttributeDefinitionRequest(BaseModel):
    id: Optional[UUID] = None
    external_id: Optional[str] = None
    external_code: Optional[str] = None
    code: str
    name: str
    name_en: Optional[str] = None
    type: AttributeType = AttributeType.TEXT
    unit: Optional[str] = None
    is_filterable: bool = False
    is_required: bool = False
    is_visible_on_product_page: bool = True
    display_order: int = 0
    predefined_values: Optional[List[PredefinedValueInput]] = None


class UpsertAttributeValueRequest(BaseModel):
    attribute_definition_id: Optional[UUID] = None
    attribute_external_id: Optional[str] = None
    value: str
    display_text: Optional[str] = None
    display_order: int = 0
