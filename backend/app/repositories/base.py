"""
Base repository with the psycopg2 connection handling shared by all
repositories: one connection per call, commit on success, rollback on
error, always closed.

Author: TM3
Date: 2025-12-02
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.database import get_db_connection_dict

AUDIT_COLUMNS = ["created_at", "created_by", "updated_at", "updated_by", "is_deleted", "deleted_at"]
EXTERNAL_COLUMNS = ["external_id", "external_code", "last_synced_at"]

# columns never overwritten by an upsert
INSERT_ONLY_COLUMNS = {"id", "created_at", "created_by"}


class BaseRepository:

    @contextmanager
    def _cursor(self, commit: bool = False):
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        try:
            yield cursor
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def _fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[dict]:
        with self._cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()

    def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[dict]:
        with self._cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    def _execute(self, query: str, params: Sequence[Any] = ()) -> int:
        with self._cursor(commit=True) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def _fetch_page(
        self,
        table: str,
        columns: str,
        conditions: Iterable[str],
        params: List[Any],
        order_by: str,
        page: int,
        page_size: int,
    ) -> Tuple[List[dict], int]:
        """Run a count + a LIMIT/OFFSET query with the same WHERE clause"""
        conditions = list(conditions)
        where_clause = " AND ".join(conditions) if conditions else "1=1"
        offset = (max(page, 1) - 1) * page_size

        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM {table}
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {columns}
                FROM {table}
                WHERE {where_clause}
                ORDER BY {order_by}
                LIMIT %s OFFSET %s
            """, params + [page_size, offset])
            rows = cursor.fetchall()

        return rows, total

    @staticmethod
    def _upsert(cursor, table: str, row: Dict[str, Any], insert_only: Iterable[str] = ()):
        """INSERT ... ON CONFLICT (id) DO UPDATE with every non insert-only column"""
        skipped = INSERT_ONLY_COLUMNS | set(insert_only)
        columns = list(row.keys())
        placeholders = ", ".join(f"%({column})s" for column in columns)
        updates = ", ".join(
            f"{column} = EXCLUDED.{column}" for column in columns if column not in skipped
        )
        cursor.execute(f"""
            INSERT INTO {table} ({", ".join(columns)})
            VALUES ({placeholders})
            ON CONFLICT (id) DO UPDATE SET {updates}
        """, row)

    @staticmethod
    def _audit_row(entity) -> Dict[str, Any]:
        return {column: getattr(entity, column) for column in AUDIT_COLUMNS}

    @staticmethod
    def _external_row(entity) -> Dict[str, Any]:
        return {column: getattr(entity, column) for column in EXTERNAL_COLUMNS}
