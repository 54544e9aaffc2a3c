"""
Brand Repository - Data Access Layer for Brands

Author: TM3
Date: 2025-12-02
"""
from typing import List, Optional, Tuple
from uuid import UUID

from app.domain.brand import Brand
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

BRAND_COLUMNS = ", ".join([
    "id", "name", "description", "logo_url", "website_url", "is_active",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)


class BrandRepository(BaseRepository):

    def _find_one(self, where: str, value) -> Optional[Brand]:
        row = self._fetch_one(f"""
            SELECT {BRAND_COLUMNS}
            FROM brands
            WHERE {where} AND is_deleted = FALSE
        """, (value,))
        return Brand.model_validate(dict(row)) if row else None

    def find_by_id(self, brand_id: UUID) -> Optional[Brand]:
        return self._find_one("id = %s", brand_id)

    def find_by_external_id(self, external_id: str) -> Optional[Brand]:
        return self._find_one("external_id = %s", external_id)

    def find_by_name(self, name: str) -> Optional[Brand]:
        return self._find_one("LOWER(name) = LOWER(%s)", name)

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Brand], int]:
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("name ILIKE %s")
            params.append(f"%{search}%")

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        rows, total = self._fetch_page("brands", BRAND_COLUMNS, conditions, params, "name", page, page_size)
        return [Brand.model_validate(dict(row)) for row in rows], total

    def save(self, brand: Brand) -> Brand:
        row = {
            "id": brand.id,
            "name": brand.name,
            "description": brand.description,
            "logo_url": brand.logo_url,
            "website_url": brand.website_url,
            "is_active": brand.is_active,
        }
        row.update(self._external_row(brand))
        row.update(self._audit_row(brand))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "brands", row)
        return brand
