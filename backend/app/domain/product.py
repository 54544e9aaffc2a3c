"""
Product Domain Model

Represents a sellable product in the B2B catalog: list price plus up to
five customer-tier prices, stock, tax rate, images and dimensions.

Author: TM3
Date: 2025-10-17
Updated: 2025-12-02 (tier pricing, ERP sync fields, variants)
"""
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.errors import DomainException
from app.domain.base import ExternalEntity, clean
from app.domain.money import Money, DEFAULT_CURRENCY, to_decimal


class ProductStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


class PriceTier(str, Enum):
    """Customer price level. LIST means no tier discount."""
    LIST = "list"
    TIER1 = "tier1"
    TIER2 = "tier2"
    TIER3 = "tier3"
    TIER4 = "tier4"
    TIER5 = "tier5"


DEFAULT_TAX_RATE = Decimal("0.20")


class Product(ExternalEntity):
    """
    Product domain model

    Fields:
        sku: Stock Keeping Unit (unique)
        category_id: Primary category (required)
        brand_id / product_type_id: Optional references
        list_price: Base price, used when a tier price is missing
        tier1_price..tier5_price: Customer tier prices
        stock_quantity: Units on hand (never negative)
        minimum_order_quantity: Smallest orderable quantity (>= 1)
        tax_rate: e.g. 0.20 for 20% VAT
        main_product_id: Set on variants, points to the main product
    """

    sku: str
    name: str
    description: Optional[str] = None
    category_id: UUID
    brand_id: Optional[UUID] = None
    product_type_id: Optional[UUID] = None
    main_product_id: Optional[UUID] = None

    # Pricing
    list_price: Money
    tier1_price: Optional[Money] = None
    tier2_price: Optional[Money] = None
    tier3_price: Optional[Money] = None
    tier4_price: Optional[Money] = None
    tier5_price: Optional[Money] = None
    tax_rate: Decimal = DEFAULT_TAX_RATE

    # Inventory
    stock_quantity: int = 0
    reserved_quantity: int = 0
    minimum_order_quantity: int = 1

    status: ProductStatus = ProductStatus.DRAFT
    is_active: bool = True

    # Media
    main_image_url: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)

    # Dimensions
    weight: Optional[Decimal] = None
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None

    @staticmethod
    def _validate_core(sku: Optional[str], name: Optional[str]):
        sku = clean(sku)
        name = clean(name)
        if not sku:
            raise DomainException("Product SKU is required")
        if not name:
            raise DomainException("Product name is required")
        return sku, name

    @staticmethod
    def _validate_quantities(stock_quantity: int, minimum_order_quantity: int):
        if stock_quantity < 0:
            raise DomainException("Stock quantity cannot be negative")
        if minimum_order_quantity < 1:
            raise DomainException("Minimum order quantity must be at least 1")

    @staticmethod
    def _validate_tax_rate(tax_rate) -> Decimal:
        tax_rate = to_decimal(tax_rate)
        if tax_rate < 0 or tax_rate > 1:
            raise DomainException("Tax rate must be between 0 and 1")
        return tax_rate

    @classmethod
    def create(
        cls,
        sku: str,
        name: str,
        category_id: UUID,
        list_price: Money,
        description: Optional[str] = None,
        stock_quantity: int = 0,
        minimum_order_quantity: int = 1,
        tax_rate=DEFAULT_TAX_RATE,
        brand_id: Optional[UUID] = None,
        product_type_id: Optional[UUID] = None,
        created_by: Optional[str] = None,
    ) -> "Product":
        sku, name = cls._validate_core(sku, name)
        if category_id is None:
            raise DomainException("Product category is required")
        cls._validate_quantities(stock_quantity, minimum_order_quantity)
        return cls(
            sku=sku,
            name=name,
            description=clean(description),
            category_id=category_id,
            brand_id=brand_id,
            product_type_id=product_type_id,
            list_price=list_price,
            stock_quantity=stock_quantity,
            minimum_order_quantity=minimum_order_quantity,
            tax_rate=cls._validate_tax_rate(tax_rate),
            created_by=created_by,
        )

    @classmethod
    def create_from_external(
        cls,
        external_id: str,
        sku: str,
        name: str,
        category_id: UUID,
        list_price: Money,
        external_code: Optional[str] = None,
        specific_id: Optional[UUID] = None,
        **kwargs,
    ) -> "Product":
        product = cls.create(sku, name, category_id, list_price, **kwargs)
        if specific_id:
            product.id = specific_id
        product.initialize_from_external(external_id, external_code)
        return product

    def update_from_external(
        self,
        sku: str,
        name: str,
        description: Optional[str],
        category_id: UUID,
        list_price: Money,
        stock_quantity: int,
        minimum_order_quantity: int,
        tax_rate,
        brand_id: Optional[UUID] = None,
        product_type_id: Optional[UUID] = None,
        external_code: Optional[str] = None,
        updated_by: Optional[str] = None,
    ):
        self.sku, self.name = self._validate_core(sku, name)
        self._validate_quantities(stock_quantity, minimum_order_quantity)
        self.description = clean(description)
        self.category_id = category_id
        self.brand_id = brand_id
        self.product_type_id = product_type_id
        self.list_price = list_price
        self.stock_quantity = stock_quantity
        self.minimum_order_quantity = minimum_order_quantity
        self.tax_rate = self._validate_tax_rate(tax_rate)
        if external_code is not None:
            self.update_external_code(external_code)
        self.touch(updated_by)
        self.mark_as_synced()

    # ========================================================================
    # Pricing
    # ========================================================================

    def update_pricing(self, list_price: Money, tier_prices: Optional[List[Optional[Money]]] = None):
        tier_prices = list(tier_prices or [])
        tier_prices += [None] * (5 - len(tier_prices))
        for price in tier_prices:
            if price is not None and price.currency != list_price.currency:
                raise DomainException("Tier prices must use the list price currency")

        self.list_price = list_price
        (self.tier1_price, self.tier2_price, self.tier3_price,
         self.tier4_price, self.tier5_price) = tier_prices[:5]

    def get_price_for_tier(self, tier: PriceTier) -> Money:
        """Tier price, falling back to the list price when the tier has none"""
        if tier == PriceTier.LIST:
            return self.list_price
        price = getattr(self, f"{tier.value}_price", None)
        return price if price is not None else self.list_price

    # ========================================================================
    # Stock
    # ========================================================================

    @property
    def available_quantity(self) -> int:
        return max(self.stock_quantity - self.reserved_quantity, 0)

    @property
    def is_in_stock(self) -> bool:
        return self.available_quantity > 0

    def update_stock(self, quantity: int):
        if quantity < 0:
            raise DomainException("Stock quantity cannot be negative")
        self.stock_quantity = quantity

    def reserve_stock(self, quantity: int):
        if quantity <= 0:
            raise DomainException("Reserved quantity must be positive")
        if quantity > self.available_quantity:
            raise DomainException(f"Insufficient stock for {self.sku}: requested {quantity}, available {self.available_quantity}")
        self.reserved_quantity += quantity

    def release_stock(self, quantity: int):
        if quantity <= 0:
            raise DomainException("Released quantity must be positive")
        self.reserved_quantity = max(self.reserved_quantity - quantity, 0)

    # ========================================================================
    # Status, media, dimensions
    # ========================================================================

    def is_ready_to_publish(self) -> bool:
        return (
            self.category_id is not None
            and self.product_type_id is not None
            and self.list_price.amount > 0
            and self.tax_rate is not None
        )

    def set_status(self, status: Optional[ProductStatus]):
        if status is None:
            status = ProductStatus.ACTIVE if self.is_ready_to_publish() else ProductStatus.DRAFT
        self.status = status

    def activate(self):
        self.is_active = True

    def deactivate(self):
        self.is_active = False

    def set_main_image(self, url: Optional[str]):
        self.main_image_url = clean(url)

    def add_image(self, url: str):
        url = clean(url)
        if not url:
            raise DomainException("Image URL cannot be empty")
        if url not in self.image_urls:
            self.image_urls.append(url)

    def set_images(self, urls: Optional[List[str]]):
        self.image_urls = []
        for url in urls or []:
            if clean(url):
                self.add_image(url)

    def update_dimensions(self, weight=None, length=None, width=None, height=None):
        values = {"weight": weight, "length": length, "width": width, "height": height}
        for field, value in values.items():
            if value is not None and to_decimal(value) < 0:
                raise DomainException(f"{field.capitalize()} cannot be negative")
            setattr(self, field, to_decimal(value) if value is not None else None)

    def set_main_product(self, main_product_id: Optional[UUID]):
        if main_product_id is not None and main_product_id == self.id:
            raise DomainException("A product cannot be a variant of itself")
        self.main_product_id = main_product_id

    @property
    def is_variant(self) -> bool:
        return self.main_product_id is not None

    def to_dict(self) -> dict:
        def money(value: Optional[Money]):
            return float(value.amount) if value is not None else None

        def decimal(value: Optional[Decimal]):
            return float(value) if value is not None else None

        data = {
            "id": str(self.id),
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category_id": str(self.category_id),
            "brand_id": str(self.brand_id) if self.brand_id else None,
            "product_type_id": str(self.product_type_id) if self.product_type_id else None,
            "main_product_id": str(self.main_product_id) if self.main_product_id else None,
            "list_price": money(self.list_price),
            "currency": self.list_price.currency,
            "tier1_price": money(self.tier1_price),
            "tier2_price": money(self.tier2_price),
            "tier3_price": money(self.tier3_price),
            "tier4_price": money(self.tier4_price),
            "tier5_price": money(self.tier5_price),
            "tax_rate": float(self.tax_rate),
            "stock_quantity": self.stock_quantity,
            "available_quantity": self.available_quantity,
            "minimum_order_quantity": self.minimum_order_quantity,
            "status": self.status.value,
            "is_active": self.is_active,
            "main_image_url": self.main_image_url,
            "image_urls": list(self.image_urls),
            "weight": decimal(self.weight),
            "length": decimal(self.length),
            "width": decimal(self.width),
            "height": decimal(self.height),
        }
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


class UpsertProductRequest(BaseModel):
    """Product sync payload sent by the ERP"""
    id: Optional[UUID] = None
    external_id: Optional[str] = None
    external_code: Optional[str] = None
    sku: str
    name: str
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    category_ext_id: Optional[str] = None
    brand_id: Optional[UUID] = None
    brand_ext_id: Optional[str] = None
    product_type_id: Optional[UUID] = None
    product_type_ext_id: Optional[str] = None
    list_price: Decimal = Field(..., ge=0)
    currency: str = DEFAULT_CURRENCY
    tier1_price: Optional[Decimal] = Field(None, ge=0)
    tier2_price: Optional[Decimal] = Field(None, ge=0)
    tier3_price: Optional[Decimal] = Field(None, ge=0)
    tier4_price: Optional[Decimal] = Field(None, ge=0)
    tier5_price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: int = 0
    minimum_order_quantity: int = 1
    tax_rate: Decimal = DEFAULT_TAX_RATE
    status: Optional[ProductStatus] = None
    is_active: bool = True
    main_image_url: Optional[str] = None
    image_urls: Optional[List[str]] = None
    weight: Optional[Decimal] = None
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None
    main_product_id: Optional[UUID] = None
    main_product_ext_id: Optional[str] = None

    def tier_prices(self) -> List[Optional[Money]]:
        return [
            Money(price, self.currency) if price is not None else None
            for price in (self.tier1_price, self.tier2_price, self.tier3_price,
                          self.tier4_price, self.tier5_price)
        ]
