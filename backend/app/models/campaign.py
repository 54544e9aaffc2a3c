"""
Campaign tables: campaigns, discount_rules, campaign_usages
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.catalog import AuditMixin, ExternalSyncMixin


class Campaign(AuditMixin, ExternalSyncMixin, Base):
    __tablename__ = "campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    priority = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="TRY")

    # Limites
    total_budget_limit = Column(DECIMAL(18, 2))
    total_usage_limit = Column(Integer)
    per_customer_budget_limit = Column(DECIMAL(18, 2))
    per_customer_usage_limit = Column(Integer)

    # Contadores
    total_discount_used = Column(DECIMAL(18, 2), nullable=False, default=0)
    total_usage_count = Column(Integer, nullable=False, default=0)


class DiscountRule(Base):
    __tablename__ = "discount_rules"

    id = Column(UUID(as_uuid=True), primary_key=True)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(18, 2), nullable=False)
    max_discount_amount = Column(DECIMAL(18, 2))
    product_target_type = Column(String(30), nullable=False)
    customer_target_type = Column(String(30), nullable=False)
    min_order_amount = Column(DECIMAL(18, 2))
    min_quantity = Column(Integer)

    # Targets
    product_ids = Column(ARRAY(UUID(as_uuid=True)), nullable=False, server_default="{}")
    category_ids = Column(ARRAY(UUID(as_uuid=True)), nullable=False, server_default="{}")
    brand_ids = Column(ARRAY(UUID(as_uuid=True)), nullable=False, server_default="{}")
    customer_ids = Column(ARRAY(UUID(as_uuid=True)), nullable=False, server_default="{}")
    customer_tiers = Column(ARRAY(String(10)), nullable=False, server_default="{}")


class CampaignUsage(Base):
    __tablename__ = "campaign_usages"

    id = Column(UUID(as_uuid=True), primary_key=True)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)
    customer_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    order_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    order_item_id = Column(UUID(as_uuid=True))
    discount_amount = Column(DECIMAL(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_reversed = Column(Boolean, nullable=False, default=False)
    reversed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
