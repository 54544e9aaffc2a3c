"""
Category Repository - Data Access Layer for Categories

Author: TM3
Date: 2025-12-02
"""
from typing import List, Optional, Tuple
from uuid import UUID

from app.domain.category import Category
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

CATEGORY_COLUMNS = ", ".join([
    "id", "name", "description", "slug", "parent_category_id", "image_url",
    "display_order", "is_active",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)


class CategoryRepository(BaseRepository):

    @staticmethod
    def _map_row_to_category(row: dict) -> Category:
        return Category.model_validate(dict(row))

    def _find_one(self, where: str, value) -> Optional[Category]:
        row = self._fetch_one(f"""
            SELECT {CATEGORY_COLUMNS}
            FROM categories
            WHERE {where} AND is_deleted = FALSE
        """, (value,))
        return self._map_row_to_category(row) if row else None

    def find_by_id(self, category_id: UUID) -> Optional[Category]:
        return self._find_one("id = %s", category_id)

    def find_by_external_id(self, external_id: str) -> Optional[Category]:
        return self._find_one("external_id = %s", external_id)

    def find_by_external_code(self, external_code: str) -> Optional[Category]:
        return self._find_one("external_code = %s", external_code)

    def find_children(self, parent_id: UUID) -> List[Category]:
        rows = self._fetch_all(f"""
            SELECT {CATEGORY_COLUMNS}
            FROM categories
            WHERE parent_category_id = %s AND is_deleted = FALSE
            ORDER BY display_order, name
        """, (parent_id,))
        return [self._map_row_to_category(row) for row in rows]

    def find_all(
        self,
        search: Optional[str] = None,
        parent_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Category], int]:
        """
        Find categories with filters

        Returns:
            Tuple of (list of categories, total count)
        """
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("(name ILIKE %s OR external_code ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if parent_id:
            conditions.append("parent_category_id = %s")
            params.append(parent_id)

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        rows, total = self._fetch_page(
            "categories", CATEGORY_COLUMNS, conditions, params,
            "display_order, name", page, page_size,
        )
        return [self._map_row_to_category(row) for row in rows], total

    def save(self, category: Category) -> Category:
        row = {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "slug": category.slug,
            "parent_category_id": category.parent_category_id,
            "image_url": category.image_url,
            "display_order": category.display_order,
            "is_active": category.is_active,
        }
        row.update(self._external_row(category))
        row.update(self._audit_row(category))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "categories", row)
        return category
