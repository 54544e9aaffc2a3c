"""
Category Domain Model

Hierarchical product category. Categories are synced from the ERP and
matched by external id, then external code.

Author: TM3
Date: 2025-12-02
"""
import re
import unicodedata
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.errors import DomainException
from app.domain.base import ExternalEntity, clean


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", normalized).strip("-").lower()
    return slug or "category"


class Category(ExternalEntity):
    """Product category, optionally nested under a parent category"""

    name: str
    description: Optional[str] = None
    slug: str = ""
    parent_category_id: Optional[UUID] = None
    image_url: Optional[str] = None
    display_order: int = 0
    is_active: bool = True

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("Category name is required")
        return name

    @classmethod
    def create(
        cls,
        name: str,
        description: Optional[str] = None,
        parent_category_id: Optional[UUID] = None,
        image_url: Optional[str] = None,
        display_order: int = 0,
        created_by: Optional[str] = None,
    ) -> "Category":
        name = cls._validate_name(name)
        return cls(
            name=name,
            slug=slugify(name),
            description=clean(description),
            parent_category_id=parent_category_id,
            image_url=clean(image_url),
            display_order=display_order,
            created_by=created_by,
        )

    @classmethod
    def create_from_external(
        cls,
        external_id: str,
        name: str,
        external_code: Optional[str] = None,
        specific_id: Optional[UUID] = None,
        **kwargs,
    ) -> "Category":
        category = cls.create(name, **kwargs)
        if specific_id:
            category.id = specific_id
        category.initialize_from_external(external_id, external_code)
        return category

    def update(
        self,
        name: str,
        description: Optional[str],
        image_url: Optional[str],
        display_order: int,
        updated_by: Optional[str] = None,
    ):
        self.name = self._validate_name(name)
        self.slug = slugify(self.name)
        self.description = clean(description)
        self.image_url = clean(image_url)
        self.display_order = display_order
        self.touch(updated_by)

    def update_from_external(
        self,
        name: str,
        description: Optional[str],
        image_url: Optional[str],
        display_order: int,
        external_code: Optional[str] = None,
        updated_by: Optional[str] = None,
    ):
        self.update(name, description, image_url, display_order, updated_by)
        if external_code is not None:
            self.update_external_code(external_code)
        self.mark_as_synced()

    def set_parent(self, parent_category_id: Optional[UUID]):
        if parent_category_id is not None and parent_category_id == self.id:
            raise DomainException("A category cannot be its own parent")
        self.parent_category_id = parent_category_id

    def activate(self):
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    def to_dict(self, parent_category_name: Optional[str] = None) -> dict:
        data = {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "slug": self.slug,
            "parent_category_id": str(self.parent_category_id) if self.parent_category_id else None,
            "parent_category_name": parent_category_name,
            "image_url": self.image_url,
            "display_order": self.display_order,
            "is_active": self.is_active,
        }
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


class UpsertCategoryRequest(BaseModel):
    """Category sync payload sent by the ERP"""
    id: Optional[UUID] = None
    external_id: Optional[str] = None
    external_code: Optional[str] = None
    name: str
    description: Optional[str] = None
    parent_category_id: Optional[UUID] = None
    parent_external_id: Optional[str] = None
    parent_external_code: Optional[str] = None
    image_url: Optional[str] = None
    display_order: int = 0
    is_active: bool = True

    @property
    def has_parent_reference(self) -> bool:
        return bool(self.parent_category_id or clean(self.parent_external_id) or clean(self.parent_external_code))
