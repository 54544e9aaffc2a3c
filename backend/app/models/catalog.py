"""
Catalog tables: categories, brands, attributes, product types, products
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.sql import func
from app.core.database import Base


def unique_among_live_rows(table: str, column: str) -> Index:
    """Unique index that ignores soft-deleted rows, so a deleted SKU or code can be synced again"""
    return Index(f"ux_{table}_{column}_live", column, unique=True, postgresql_where=text("is_deleted = false"))


class AuditMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by = Column(String(255))
    updated_at = Column(DateTime(timezone=True))
    updated_by = Column(String(255))
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True))


class ExternalSyncMixin:
    external_id = Column(String(255), index=True)
    external_code = Column(String(255), index=True)
    last_synced_at = Column(DateTime(timezone=True))


class Category(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    slug = Column(String(250), nullable=False, index=True)
    parent_category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), index=True)
    image_url = Column(String(500))
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Brand(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "brands"

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text)
    logo_url = Column(String(500))
    website_url = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)


class AttributeDefinition(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "attribute_definitions"
    __table_args__ = (unique_among_live_rows("attribute_definitions", "code"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    code = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    name_en = Column(String(200))
    attribute_type = Column(String(20), nullable=False)
    unit = Column(String(50))
    is_filterable = Column(Boolean, default=False, nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    is_visible_on_product_page = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


class AttributeValue(Base):
    __tablename__ = "attribute_values"
    __table_args__ = (UniqueConstraint("attribute_definition_id", "value"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    attribute_definition_id = Column(
        UUID(as_uuid=True), ForeignKey("attribute_definitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value = Column(String(255), nullable=False)
    display_text = Column(String(255))
    display_order = Column(Integer, default=0, nullable=False)


class ProductType(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "product_types"
    __table_args__ = (unique_among_live_rows("product_types", "code"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    code = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, default=True, nullable=False)


class ProductTypeAttribute(Base):
    __tablename__ = "product_type_attributes"
    __table_args__ = (UniqueConstraint("product_type_id", "attribute_definition_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    product_type_id = Column(
        UUID(as_uuid=True), ForeignKey("product_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attribute_definition_id = Column(UUID(as_uuid=True), ForeignKey("attribute_definitions.id"), nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


class Product(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "products"
    __table_args__ = (unique_among_live_rows("products", "sku"),)

    id = Column(UUID(as_uuid=True), primary_key=True)
    sku = Column(String(100), nullable=False)
    name = Column(String(300), nullable=False)
    description = Column(Text)

    # References
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), nullable=False, index=True)
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"), index=True)
    product_type_id = Column(UUID(as_uuid=True), ForeignKey("product_types.id"), index=True)
    main_product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), index=True)

    # Pricing
    currency = Column(String(3), nullable=False, default="TRY")
    list_price = Column(DECIMAL(18, 2), nullable=False)
    tier1_price = Column(DECIMAL(18, 2))
    tier2_price = Column(DECIMAL(18, 2))
    tier3_price = Column(DECIMAL(18, 2))
    tier4_price = Column(DECIMAL(18, 2))
    tier5_price = Column(DECIMAL(18, 2))
    tax_rate = Column(DECIMAL(5, 4), nullable=False, default=0.20)

    # Stock
    stock_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    minimum_order_quantity = Column(Integer, nullable=False, default=1)

    status = Column(String(20), nullable=False, default="draft", index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    main_image_url = Column(String(500))
    image_urls = Column(ARRAY(Text), nullable=False, server_default="{}")

    weight = Column(DECIMAL(10, 3))
    length = Column(DECIMAL(10, 2))
    width = Column(DECIMAL(10, 2))
    height = Column(DECIMAL(10, 2))
