"""
Brand Domain Model

Author: TM3
Date: 2025-12-02
"""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.core.errors import DomainException
from app.domain.base import ExternalEntity, clean


class Brand(ExternalEntity):
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website_url: Optional[str] = None
    is_active: bool = True

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("Brand name is required")
        return name

    @classmethod
    def create(
        cls,
        name: str,
        description: Optional[str] = None,
        logo_url: Optional[str] = None,
        website_url: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> "Brand":
        return cls(
            name=cls._validate_name(name),
            description=clean(description),
            logo_url=clean(logo_url),
            website_url=clean(website_url),
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
    ) -> "Brand":
        brand = cls.create(name, **kwargs)
        if specific_id:
            brand.id = specific_id
        brand.initialize_from_external(external_id, external_code)
        return brand

    def update(
        self,
        name: str,
        description: Optional[str],
        logo_url: Optional[str],
        website_url: Optional[str],
        updated_by: Optional[str] = None,
    ):
        self.name = self._validate_name(name)
        self.description = clean(description)
        self.logo_url = clean(logo_url)
        self.website_url = clean(website_url)
        self.touch(updated_by)

    def update_from_external(self, name, description, logo_url, website_url,
                             external_code: Optional[str] = None, updated_by: Optional[str] = None):
        self.update(name, description, logo_url, website_url, updated_by)
        if external_code is not None:
            self.update_external_code(external_code)
        self.mark_as_synced()

    def activate(self):
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    def to_dict(self) -> dict:
        data = {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "logo_url": self.logo_url,
            "website_url": self.website_url,
            "is_active": self.is_active,
        }
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


class UpsertBrandRequest(BaseModel):
    id: Optional[UUID] = None
    external_id: Optional[str] = None
    external_code: Optional[str] = None
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    website_url: Optional[str] = None
    is_active: bool = True
