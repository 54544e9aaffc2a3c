"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models.

Author: TM3
Date: 2025-10-17
Updated: 2025-12-02 (UUID keys, tier prices, ERP sync fields)
"""
from typing import List, Optional, Tuple
from uuid import UUID

from app.domain.money import Money
from app.domain.product import Product, ProductStatus
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

TIER_COLUMNS = ["tier1_price", "tier2_price", "tier3_price", "tier4_price", "tier5_price"]

PRODUCT_COLUMNS = ", ".join([
    "id", "sku", "name", "description", "category_id", "brand_id", "product_type_id",
    "main_product_id", "currency", "list_price",
] + TIER_COLUMNS + [
    "tax_rate", "stock_quantity", "reserved_quantity", "minimum_order_quantity",
    "status", "is_active", "main_image_url", "image_urls",
    "weight", "length", "width", "height",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)

SORTABLE_COLUMNS = {"name", "sku", "list_price", "stock_quantity", "created_at", "updated_at"}


class ProductRepository(BaseRepository):
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """Map a products row to the domain model; money columns share the row currency"""
        data = dict(row)
        currency = data.pop("currency")
        data["list_price"] = Money(data["list_price"], currency)
        for column in TIER_COLUMNS:
            if data.get(column) is not None:
                data[column] = Money(data[column], currency)
        data["status"] = ProductStatus(data["status"])
        data["image_urls"] = data.get("image_urls") or []
        return Product.model_validate(data)

    def _find_one(self, where: str, value) -> Optional[Product]:
        row = self._fetch_one(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE {where} AND is_deleted = FALSE
        """, (value,))
        return self._map_row_to_product(row) if row else None

    def find_by_id(self, product_id: UUID) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Internal product ID

        Returns:
            Product or None if not found
        """
        return self._find_one("id = %s", product_id)

    def find_by_external_id(self, external_id: str) -> Optional[Product]:
        return self._find_one("external_id = %s", external_id)

    def find_by_sku(self, sku: str) -> Optional[Product]:
        """
        Find product by SKU

        Args:
            sku: Product SKU

        Returns:
            Product or None if not found
        """
        return self._find_one("sku = %s", sku)

    def find_all(
        self,
        search: Optional[str] = None,
        category_id: Optional[UUID] = None,
        brand_id: Optional[UUID] = None,
        product_type_id: Optional[UUID] = None,
        status: Optional[ProductStatus] = None,
        is_active: Optional[bool] = None,
        min_stock: Optional[int] = None,
        max_stock: Optional[int] = None,
        sort_by: str = "name",
        sort_desc: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters

        Args:
            search: Search in name or SKU
            category_id / brand_id / product_type_id: Reference filters
            status: Filter by product status
            is_active: Filter by active status
            min_stock / max_stock: Stock quantity range
            sort_by: One of name, sku, list_price, stock_quantity, created_at, updated_at

        Returns:
            Tuple of (list of products, total count)
        """
        conditions = ["is_deleted = FALSE"]
        params = []

        if search:
            conditions.append("(name ILIKE %s OR sku ILIKE %s)")
            search_term = f"%{search}%"
            params.extend([search_term, search_term])

        if category_id:
            conditions.append("category_id = %s")
            params.append(category_id)

        if brand_id:
            conditions.append("brand_id = %s")
            params.append(brand_id)

        if product_type_id:
            conditions.append("product_type_id = %s")
            params.append(product_type_id)

        if status:
            conditions.append("status = %s")
            params.append(status.value)

        if is_active is not None:
            conditions.append("is_active = %s")
            params.append(is_active)

        if min_stock is not None:
            conditions.append("stock_quantity >= %s")
            params.append(min_stock)

        if max_stock is not None:
            conditions.append("stock_quantity <= %s")
            params.append(max_stock)

        sort_column = sort_by if sort_by in SORTABLE_COLUMNS else "name"
        order_by = f"{sort_column} {'DESC' if sort_desc else 'ASC'}, id"

        rows, total = self._fetch_page("products", PRODUCT_COLUMNS, conditions, params, order_by, page, page_size)
        return [self._map_row_to_product(row) for row in rows], total

    def save(self, product: Product) -> Product:
        row = {
            "id": product.id,
            "sku": product.sku,
            "name": product.name,
            "description": product.description,
            "category_id": product.category_id,
            "brand_id": product.brand_id,
            "product_type_id": product.product_type_id,
            "main_product_id": product.main_product_id,
            "currency": product.list_price.currency,
            "list_price": product.list_price.amount,
            "tax_rate": product.tax_rate,
            "stock_quantity": product.stock_quantity,
            "reserved_quantity": product.reserved_quantity,
            "minimum_order_quantity": product.minimum_order_quantity,
            "status": product.status.value,
            "is_active": product.is_active,
            "main_image_url": product.main_image_url,
            "image_urls": list(product.image_urls),
            "weight": product.weight,
            "length": product.length,
            "width": product.width,
            "height": product.height,
        }
        for column in TIER_COLUMNS:
            price = getattr(product, column)
            row[column] = price.amount if price is not None else None
        row.update(self._external_row(product))
        row.update(self._audit_row(product))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "products", row)
        return product
