"""
Product Type Repository - product types and their attribute assignments

Author: TM3
Date: 2025-12-02
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from app.domain.product_type import ProductType, ProductTypeAttribute
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

PRODUCT_TYPE_COLUMNS = ", ".join([
    "id", "code", "name", "description", "is_active",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)


class ProductTypeRepository(BaseRepository):

    @staticmethod
    def _map_row_to_product_type(row: dict, attributes: List[dict]) -> ProductType:
        data = dict(row)
        data["attributes"] = [ProductTypeAttribute.model_validate(dict(a)) for a in attributes]
        return ProductType.model_validate(data)

    def _load_attributes(self, cursor, type_ids: List[UUID]) -> Dict[UUID, List[dict]]:
        attributes = defaultdict(list)
        if not type_ids:
            return attributes
        cursor.execute("""
            SELECT id, product_type_id, attribute_definition_id, is_required, display_order
            FROM product_type_attributes
            WHERE product_type_id = ANY(%s)
            ORDER BY display_order
        """, (type_ids,))
        for row in cursor.fetchall():
            attributes[row["product_type_id"]].append(row)
        return attributes

    def _find_one(self, where: str, value) -> Optional[ProductType]:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {PRODUCT_TYPE_COLUMNS}
                FROM product_types
                WHERE {where} AND is_deleted = FALSE
            """, (value,))
            row = cursor.fetchone()
            if not row:
                return None
            attributes = self._load_attributes(cursor, [row["id"]])
        return self._map_row_to_product_type(row, attributes[row["id"]])

    def find_by_id(self, product_type_id: UUID) -> Optional[ProductType]:
        return self._find_one("id = %s", product_type_id)

    def find_by_external_id(self, external_id: str) -> Optional[ProductType]:
        return self._find_one("external_id = %s", external_id)

    def find_by_code(self, code: str) -> Optional[ProductType]:
        return self._find_one("code = %s", code.strip().lower())

    def exists_by_code(self, code: str) -> bool:
        row = self._fetch_one("""
            SELECT 1 AS found FROM product_types WHERE code = %s AND is_deleted = FALSE
        """, (code.strip().lower(),))
        return row is not None

    def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[ProductType], int]:
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("(name ILIKE %s OR code ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        rows, total = self._fetch_page(
            "product_types", PRODUCT_TYPE_COLUMNS, conditions, params, "code", page, page_size,
        )
        with self._cursor() as cursor:
            attributes = self._load_attributes(cursor, [row["id"] for row in rows])
        return [self._map_row_to_product_type(row, attributes[row["id"]]) for row in rows], total

    def save(self, product_type: ProductType) -> ProductType:
        row = {
            "id": product_type.id,
            "code": product_type.code,
            "name": product_type.name,
            "description": product_type.description,
            "is_active": product_type.is_active,
        }
        row.update(self._external_row(product_type))
        row.update(self._audit_row(product_type))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "product_types", row)

            keep_ids = [attribute.id for attribute in product_type.attributes]
            cursor.execute("""
                DELETE FROM product_type_attributes
                WHERE product_type_id = %s AND NOT (id = ANY(%s))
            """, (product_type.id, keep_ids))

            for attribute in product_type.attributes:
                self._upsert(cursor, "product_type_attributes", {
                    "id": attribute.id,
                    "product_type_id": product_type.id,
                    "attribute_definition_id": attribute.attribute_definition_id,
                    "is_required": attribute.is_required,
                    "display_order": attribute.display_order,
                })

        return product_type
