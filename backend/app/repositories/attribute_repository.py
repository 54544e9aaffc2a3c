"""
Attribute Repository - attribute definitions and their predefined values

Definitions and values are saved together in one transaction; the
stored value list always mirrors the aggregate.

Author: TM3
Date: 2025-12-02
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from app.domain.attribute import AttributeDefinition, AttributeType, AttributeValue
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

DEFINITION_COLUMNS = ", ".join([
    "id", "code", "name", "name_en", "attribute_type", "unit", "is_filterable",
    "is_required", "is_visible_on_product_page", "display_order",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)


class AttributeRepository(BaseRepository):

    @staticmethod
    def _map_row_to_definition(row: dict, values: List[dict]) -> AttributeDefinition:
        data = dict(row)
        data["attribute_type"] = AttributeType(data["attribute_type"])
        data["predefined_values"] = [AttributeValue.model_validate(dict(v)) for v in values]
        return AttributeDefinition.model_validate(data)

    def _load_values(self, cursor, definition_ids: List[UUID]) -> Dict[UUID, List[dict]]:
        values = defaultdict(list)
        if not definition_ids:
            return values
        cursor.execute("""
            SELECT id, attribute_definition_id, value, display_text, display_order
            FROM attribute_values
            WHERE attribute_definition_id = ANY(%s)
            ORDER BY display_order, value
        """, (definition_ids,))
        for row in cursor.fetchall():
            values[row["attribute_definition_id"]].append(row)
        return values

    def _find_one(self, where: str, value) -> Optional[AttributeDefinition]:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {DEFINITION_COLUMNS}
                FROM attribute_definitions
                WHERE {where} AND is_deleted = FALSE
            """, (value,))
            row = cursor.fetchone()
            if not row:
                return None
            values = self._load_values(cursor, [row["id"]])
        return self._map_row_to_definition(row, values[row["id"]])

    def find_by_id(self, definition_id: UUID) -> Optional[AttributeDefinition]:
        return self._find_one("id = %s", definition_id)

    def find_by_external_id(self, external_id: str) -> Optional[AttributeDefinition]:
        return self._find_one("external_id = %s", external_id)

    def find_by_code(self, code: str) -> Optional[AttributeDefinition]:
        return self._find_one("code = %s", code.strip().lower())

    def exists_by_code(self, code: str) -> bool:
        row = self._fetch_one("""
            SELECT 1 AS found FROM attribute_definitions WHERE code = %s AND is_deleted = FALSE
        """, (code.strip().lower(),))
        return row is not None

    def find_all(
        self,
        search: Optional[str] = None,
        attribute_type: Optional[AttributeType] = None,
        is_filterable: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[AttributeDefinition], int]:
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("(name ILIKE %s OR code ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if attribute_type:
            conditions.append("attribute_type = %s")
            params.append(attribute_type.value)

        if is_filterable is not None:
            conditions.append("is_filterable = %s")
            params.append(is_filterable)

        rows, total = self._fetch_page(
            "attribute_definitions", DEFINITION_COLUMNS, conditions, params,
            "display_order, code", page, page_size,
        )
        with self._cursor() as cursor:
            values = self._load_values(cursor, [row["id"] for row in rows])
        return [self._map_row_to_definition(row, values[row["id"]]) for row in rows], total

    def save(self, definition: AttributeDefinition) -> AttributeDefinition:
        row = {
            "id": definition.id,
            "code": definition.code,
            "name": definition.name,
            "name_en": definition.name_en,
            "attribute_type": definition.attribute_type.value,
            "unit": definition.unit,
            "is_filterable": definition.is_filterable,
            "is_required": definition.is_required,
            "is_visible_on_product_page": definition.is_visible_on_product_page,
            "display_order": definition.display_order,
        }
        row.update(self._external_row(definition))
        row.update(self._audit_row(definition))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "attribute_definitions", row)

            keep_ids = [value.id for value in definition.predefined_values]
            cursor.execute("""
                DELETE FROM attribute_values
                WHERE attribute_definition_id = %s AND NOT (id = ANY(%s))
            """, (definition.id, keep_ids))

            for value in definition.predefined_values:
                self._upsert(cursor, "attribute_values", {
                    "id": value.id,
                    "attribute_definition_id": definition.id,
                    "value": value.value,
                    "display_text": value.display_text,
                    "display_order": value.display_order,
                })

        return definition
