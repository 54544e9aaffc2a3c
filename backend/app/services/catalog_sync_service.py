"""
Catalog Sync Service - ERP upserts for categories, brands and products

Each upsert resolves references, matches the existing record through the
external-id lookup chain and then either creates or updates it. Expected
failures come back as Result.fail(message, code); nothing is raised to
the caller.

Author: TM3
Date: 2025-12-02
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from app.core.errors import DomainException, ErrorCodes
from app.core.result import Result
from app.domain.brand import Brand, UpsertBrandRequest
from app.domain.category import Category, UpsertCategoryRequest
from app.domain.money import Money
from app.domain.product import Product, UpsertProductRequest
from app.repositories.brand_repository import BrandRepository
from app.repositories.category_repository import CategoryRepository
from app.repositories.product_repository import ProductRepository
from app.repositories.product_type_repository import ProductTypeRepository
from app.services.external_sync import lookup_external_entity, should_create_with_specific_id

logger = logging.getLogger(__name__)


# ============================================================================
# Result Models
# ============================================================================

@dataclass
class UpsertOutcome:
    data: Dict[str, Any]
    created: bool


@dataclass
class BulkSyncResult:
    total: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, index: int, key: Optional[str], result: Result):
        self.total += 1
        if result.success:
            if result.data.created:
                self.created += 1
            else:
                self.updated += 1
        else:
            self.failed += 1
            self.errors.append({
                "index": index,
                "key": key,
                "error_code": result.error_code,
                "message": result.error_message,
            })

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "errors": self.errors,
        }


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


# ============================================================================
# Catalog Sync Service
# ============================================================================

class CatalogSyncService:
    """Upserts and reads for the catalog entities synced from the ERP"""

    def __init__(
        self,
        category_repository: Optional[CategoryRepository] = None,
        brand_repository: Optional[BrandRepository] = None,
        product_repository: Optional[ProductRepository] = None,
        product_type_repository: Optional[ProductTypeRepository] = None,
    ):
        self.categories = category_repository or CategoryRepository()
        self.brands = brand_repository or BrandRepository()
        self.products = product_repository or ProductRepository()
        self.product_types = product_type_repository or ProductTypeRepository()

    # ========================================================================
    # Categories
    # ========================================================================

    def _resolve_parent_category(self, request: UpsertCategoryRequest) -> Optional[Category]:
        if request.parent_category_id:
            return self.categories.find_by_id(request.parent_category_id)
        if _present(request.parent_external_id):
            return self.categories.find_by_external_id(request.parent_external_id.strip())
        if _present(request.parent_external_code):
            return self.categories.find_by_external_code(request.parent_external_code.strip())
        return None

    def _creates_cycle(self, category_id: UUID, parent: Category) -> bool:
        """True when `category_id` is `parent` or one of its ancestors"""
        visited = set()
        current = parent
        while current is not None:
            if current.id == category_id:
                return True
            if current.id in visited or current.parent_category_id is None:
                return False
            visited.add(current.id)
            current = self.categories.find_by_id(current.parent_category_id)
        return False

    def upsert_category(self, request: UpsertCategoryRequest, synced_by: Optional[str] = None) -> Result:
        parent = None
        if request.has_parent_reference:
            parent = self._resolve_parent_category(request)
            if parent is None:
                reference = request.parent_category_id or request.parent_external_id or request.parent_external_code
                return Result.fail(f"Parent category not found: {reference}", ErrorCodes.PARENT_NOT_FOUND)

        lookup = lookup_external_entity(
            request.external_id,
            request.external_code,
            self.categories.find_by_external_id,
            self.categories.find_by_external_code,
        )
        category = lookup.entity
        if category is None and request.id:
            category = self.categories.find_by_id(request.id)

        created = category is None
        try:
            if created:
                kwargs = dict(
                    description=request.description,
                    parent_category_id=parent.id if parent else None,
                    image_url=request.image_url,
                    display_order=request.display_order,
                    created_by=synced_by,
                )
                if lookup.effective_external_id:
                    category = Category.create_from_external(
                        lookup.effective_external_id,
                        request.name,
                        external_code=request.external_code,
                        specific_id=request.id,
                        **kwargs,
                    )
                else:
                    category = Category.create(request.name, **kwargs)
                    if request.id:
                        category.id = request.id
                    category.external_id = str(category.id)
            else:
                if parent and self._creates_cycle(category.id, parent):
                    return Result.fail(
                        f"Category {category.name} cannot be placed under its own descendant {parent.name}",
                        ErrorCodes.CIRCULAR_PARENT,
                    )
                category.update_from_external(
                    request.name,
                    request.description,
                    request.image_url,
                    request.display_order,
                    external_code=request.external_code,
                    updated_by=synced_by,
                )
                category.set_parent(parent.id if parent else None)

            if request.is_active:
                category.activate()
            else:
                category.deactivate()
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.categories.save(category)

        if created:
            logger.info(f"Created category from external sync: {category.external_id} - {category.name} (Id: {category.id})")
        else:
            logger.info(f"Updated category from external sync: {category.external_id} - {category.name}")

        return Result.ok(UpsertOutcome(category.to_dict(parent.name if parent else None), created))

    @staticmethod
    def _order_parents_first(items: List[UpsertCategoryRequest]) -> List[int]:
        """Indexes of `items` ordered so in-batch parents come before their children"""
        by_external_id = {
            item.external_id.strip(): index
            for index, item in enumerate(items) if _present(item.external_id)
        }
        ordered: List[int] = []
        placed = set()

        def place(index: int, trail: set):
            if index in placed or index in trail:
                return
            trail.add(index)
            parent_ext = items[index].parent_external_id
            if _present(parent_ext) and parent_ext.strip() in by_external_id:
                place(by_external_id[parent_ext.strip()], trail)
            placed.add(index)
            ordered.append(index)

        for index in range(len(items)):
            place(index, set())
        return ordered

    def sync_categories(self, items: List[UpsertCategoryRequest], synced_by: Optional[str] = None) -> BulkSyncResult:
        summary = BulkSyncResult()
        for index in self._order_parents_first(items):
            item = items[index]
            summary.record(index, item.external_id or item.name, self._safe(self.upsert_category, item, synced_by))
        logger.info(f"Category bulk sync: {summary.created} created, {summary.updated} updated, {summary.failed} failed")
        return summary

    def get_category(self, category_id: Optional[UUID] = None, external_id: Optional[str] = None) -> Result:
        category = (
            self.categories.find_by_id(category_id) if category_id
            else self.categories.find_by_external_id(external_id)
        )
        if category is None:
            return Result.fail(f"Category not found: {category_id or external_id}", ErrorCodes.CATEGORY_NOT_FOUND)

        parent_name = None
        if category.parent_category_id:
            parent = self.categories.find_by_id(category.parent_category_id)
            parent_name = parent.name if parent else None
        return Result.ok(category.to_dict(parent_name))

    def list_categories(self, **filters) -> Result:
        categories, total = self.categories.find_all(**filters)
        return Result.ok(([c.to_dict() for c in categories], total))

    def delete_category(self, external_id: str, deleted_by: Optional[str] = None) -> Result:
        category = self.categories.find_by_external_id(external_id)
        if category is None:
            return Result.fail(f"Category not found by ExternalId: {external_id}", ErrorCodes.CATEGORY_NOT_FOUND)
        if self.categories.find_children(category.id):
            return Result.fail("Cannot delete a category that has subcategories", ErrorCodes.INVALID_OPERATION)
        category.soft_delete(deleted_by)
        self.categories.save(category)
        logger.info(f"Deleted category from external sync: {external_id}")
        return Result.ok({"id": str(category.id), "external_id": external_id})

    # ========================================================================
    # Brands
    # ========================================================================

    def upsert_brand(self, request: UpsertBrandRequest, synced_by: Optional[str] = None) -> Result:
        lookup = lookup_external_entity(
            request.external_id,
            request.name,
            self.brands.find_by_external_id,
            self.brands.find_by_name,
        )
        brand = lookup.entity
        created = brand is None

        try:
            if created:
                kwargs = dict(
                    description=request.description,
                    logo_url=request.logo_url,
                    website_url=request.website_url,
                    created_by=synced_by,
                )
                if lookup.effective_external_id:
                    brand = Brand.create_from_external(
                        lookup.effective_external_id,
                        request.name,
                        external_code=request.external_code,
                        specific_id=request.id,
                        **kwargs,
                    )
                else:
                    brand = Brand.create(request.name, **kwargs)
                    # no ExternalId given: the internal id doubles as the external one
                    brand.external_id = str(brand.id)
            else:
                brand.update_from_external(
                    request.name,
                    request.description,
                    request.logo_url,
                    request.website_url,
                    external_code=request.external_code,
                    updated_by=synced_by,
                )

            if request.is_active:
                brand.activate()
            else:
                brand.deactivate()
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.brands.save(brand)

        if created:
            logger.info(f"Created brand: {brand.external_id} - {brand.name} (Id: {brand.id})")
        else:
            logger.info(f"Updated brand from external sync: {brand.external_id} - {brand.name}")

        return Result.ok(UpsertOutcome(brand.to_dict(), created))

    def sync_brands(self, items: List[UpsertBrandRequest], synced_by: Optional[str] = None) -> BulkSyncResult:
        summary = BulkSyncResult()
        for index, item in enumerate(items):
            summary.record(index, item.external_id or item.name, self._safe(self.upsert_brand, item, synced_by))
        logger.info(f"Brand bulk sync: {summary.created} created, {summary.updated} updated, {summary.failed} failed")
        return summary

    def get_brand(self, brand_id: Optional[UUID] = None, external_id: Optional[str] = None) -> Result:
        brand = self.brands.find_by_id(brand_id) if brand_id else self.brands.find_by_external_id(external_id)
        if brand is None:
            return Result.fail(f"Brand not found: {brand_id or external_id}", ErrorCodes.BRAND_NOT_FOUND)
        return Result.ok(brand.to_dict())

    def list_brands(self, **filters) -> Result:
        brands, total = self.brands.find_all(**filters)
        return Result.ok(([b.to_dict() for b in brands], total))

    def delete_brand(self, external_id: str, deleted_by: Optional[str] = None) -> Result:
        brand = self.brands.find_by_external_id(external_id)
        if brand is None:
            return Result.fail(f"Brand not found by ExternalId: {external_id}", ErrorCodes.BRAND_NOT_FOUND)
        brand.soft_delete(deleted_by)
        self.brands.save(brand)
        logger.info(f"Deleted brand from external sync: {external_id}")
        return Result.ok({"id": str(brand.id), "external_id": external_id})

    # ========================================================================
    # Products
    # ========================================================================

    def _resolve_reference(
        self,
        entity_id: Optional[UUID],
        external_id: Optional[str],
        find_by_id: Callable,
        find_by_external_id: Callable,
        label: str,
        error_code: str,
    ) -> Result:
        """Resolve an optional reference given by id or external id; ok(None) when neither is given"""
        if entity_id:
            entity = find_by_id(entity_id)
            if entity is None:
                return Result.fail(f"{label} not found by Id: {entity_id}", error_code)
            return Result.ok(entity.id)
        if _present(external_id):
            entity = find_by_external_id(external_id.strip())
            if entity is None:
                return Result.fail(f"{label} not found by ExternalId: {external_id}", error_code)
            return Result.ok(entity.id)
        return Result.ok(None)

    def upsert_product(self, request: UpsertProductRequest, synced_by: Optional[str] = None) -> Result:
        # 1. Resolve references
        category = self._resolve_reference(
            request.category_id, request.category_ext_id,
            self.categories.find_by_id, self.categories.find_by_external_id,
            "Category", ErrorCodes.CATEGORY_NOT_FOUND,
        )
        if category.is_failure:
            return category
        if category.data is None:
            return Result.fail(
                "Category is required. Provide either category_id or category_ext_id.",
                ErrorCodes.CATEGORY_REQUIRED,
            )

        references = {}
        for name, entity_id, external_id, repo, label, code in (
            ("product_type_id", request.product_type_id, request.product_type_ext_id,
             self.product_types, "Product type", ErrorCodes.PRODUCT_TYPE_NOT_FOUND),
            ("brand_id", request.brand_id, request.brand_ext_id,
             self.brands, "Brand", ErrorCodes.BRAND_NOT_FOUND),
            ("main_product_id", request.main_product_id, request.main_product_ext_id,
             self.products, "Main product", ErrorCodes.MAIN_PRODUCT_NOT_FOUND),
        ):
            resolved = self._resolve_reference(
                entity_id, external_id, repo.find_by_id, repo.find_by_external_id, label, code,
            )
            if resolved.is_failure:
                return resolved
            references[name] = resolved.data

        # 2. Find existing product: Id, then ExternalId, then SKU
        product = None
        create_with_specific_id = False
        if request.id:
            product = self.products.find_by_id(request.id)
            create_with_specific_id = should_create_with_specific_id(request.id, product)

        if product is None and not create_with_specific_id:
            lookup = lookup_external_entity(
                request.external_id,
                request.sku,
                self.products.find_by_external_id,
                self.products.find_by_sku,
            )
            product = lookup.entity

        # 3. Create or update
        created = product is None
        try:
            list_price = Money(request.list_price, request.currency)
            if created:
                if not _present(request.external_id):
                    return Result.fail(
                        "ExternalId is required for creating new products via sync",
                        ErrorCodes.EXTERNAL_ID_REQUIRED,
                    )
                product = Product.create_from_external(
                    request.external_id,
                    request.sku,
                    request.name,
                    category.data,
                    list_price,
                    external_code=request.external_code,
                    specific_id=request.id if create_with_specific_id else None,
                    description=request.description,
                    stock_quantity=request.stock_quantity,
                    minimum_order_quantity=request.minimum_order_quantity,
                    tax_rate=request.tax_rate,
                    brand_id=references["brand_id"],
                    product_type_id=references["product_type_id"],
                    created_by=synced_by,
                )
                product.set_images(request.image_urls)
            else:
                product.update_from_external(
                    request.sku,
                    request.name,
                    request.description,
                    category.data,
                    list_price,
                    request.stock_quantity,
                    request.minimum_order_quantity,
                    request.tax_rate,
                    brand_id=references["brand_id"],
                    product_type_id=references["product_type_id"],
                    external_code=request.external_code,
                    updated_by=synced_by,
                )
                if request.image_urls is not None:
                    product.set_images(request.image_urls)

            product.update_pricing(list_price, request.tier_prices())
            if _present(request.main_image_url):
                product.set_main_image(request.main_image_url)
            product.update_dimensions(request.weight, request.length, request.width, request.height)
            product.set_main_product(references["main_product_id"])
            product.set_status(request.status)
            if request.is_active:
                product.activate()
            else:
                product.deactivate()
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.products.save(product)

        if created:
            logger.info(
                f"Created product from external sync: {product.external_id} - {product.sku} - {product.name} (Id: {product.id})"
            )
        else:
            logger.info(f"Updated product from external sync: {product.external_id} - {product.sku} - {product.name}")

        return Result.ok(UpsertOutcome(product.to_dict(), created))

    def sync_products(self, items: List[UpsertProductRequest], synced_by: Optional[str] = None) -> BulkSyncResult:
        summary = BulkSyncResult()
        for index, item in enumerate(items):
            summary.record(index, item.external_id or item.sku, self._safe(self.upsert_product, item, synced_by))
        logger.info(f"Product bulk sync: {summary.created} created, {summary.updated} updated, {summary.failed} failed")
        return summary

    def get_product(
        self,
        product_id: Optional[UUID] = None,
        external_id: Optional[str] = None,
        sku: Optional[str] = None,
    ) -> Result:
        if product_id:
            product = self.products.find_by_id(product_id)
        elif external_id:
            product = self.products.find_by_external_id(external_id)
        else:
            product = self.products.find_by_sku(sku)

        if product is None:
            return Result.fail(f"Product not found: {product_id or external_id or sku}", ErrorCodes.PRODUCT_NOT_FOUND)
        return Result.ok(product.to_dict())

    def list_products(self, category_ext_id: Optional[str] = None, **filters) -> Result:
        if _present(category_ext_id) and not filters.get("category_id"):
            category = self.categories.find_by_external_id(category_ext_id.strip())
            if category is None:
                return Result.fail(f"Category not found by ExternalId: {category_ext_id}", ErrorCodes.CATEGORY_NOT_FOUND)
            filters["category_id"] = category.id

        products, total = self.products.find_all(**filters)
        return Result.ok(([p.to_dict() for p in products], total))

    def delete_product(self, external_id: str, deleted_by: Optional[str] = None) -> Result:
        product = self.products.find_by_external_id(external_id)
        if product is None:
            return Result.fail(f"Product not found by ExternalId: {external_id}", ErrorCodes.PRODUCT_NOT_FOUND)
        product.soft_delete(deleted_by)
        product.deactivate()
        self.products.save(product)
        logger.info(f"Deleted product from external sync: {external_id} - {product.sku}")
        return Result.ok({"id": str(product.id), "external_id": external_id})

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _safe(upsert: Callable, item, synced_by: Optional[str]) -> Result:
        """Run one bulk item; a failure in one item never aborts the batch"""
        try:
            return upsert(item, synced_by)
        except Exception as e:
            logger.error(f"Bulk sync item failed: {e}", exc_info=True)
            return Result.fail(str(e), ErrorCodes.VALIDATION_ERROR)
