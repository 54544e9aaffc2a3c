"""
Campaign Domain Model

A campaign is a time-boxed promotion with one or more discount rules,
optional budget / usage limits (overall and per customer) and a
lifecycle: draft -> scheduled -> active <-> paused -> ended, or cancelled.

Author: TM3
Date: 2025-12-02
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Set
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from app.core.errors import DomainException, InvalidOperationDomainException
from app.domain.base import Entity, ExternalEntity, as_utc, clean, utcnow
from app.domain.money import Money, DEFAULT_CURRENCY, min_money, to_decimal
from app.domain.product import PriceTier


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"
    CANCELLED = "cancelled"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class ProductTargetType(str, Enum):
    ALL_PRODUCTS = "all_products"
    SPECIFIC_PRODUCTS = "specific_products"
    CATEGORIES = "categories"
    BRANDS = "brands"


class CustomerTargetType(str, Enum):
    ALL_CUSTOMERS = "all_customers"
    SPECIFIC_CUSTOMERS = "specific_customers"
    CUSTOMER_TIERS = "customer_tiers"


# ============================================================================
# Discount Rule
# ============================================================================

class DiscountRule(BaseModel):
    """One discount definition inside a campaign, with its targeting"""

    id: UUID = Field(default_factory=uuid4)
    campaign_id: UUID
    discount_type: DiscountType
    discount_value: Decimal
    max_discount_amount: Optional[Money] = None
    product_target_type: ProductTargetType = ProductTargetType.ALL_PRODUCTS
    customer_target_type: CustomerTargetType = CustomerTargetType.ALL_CUSTOMERS
    min_order_amount: Optional[Money] = None
    min_quantity: Optional[int] = None

    product_ids: Set[UUID] = Field(default_factory=set)
    category_ids: Set[UUID] = Field(default_factory=set)
    brand_ids: Set[UUID] = Field(default_factory=set)
    customer_ids: Set[UUID] = Field(default_factory=set)
    customer_tiers: Set[PriceTier] = Field(default_factory=set)

    @classmethod
    def create(
        cls,
        campaign_id: UUID,
        discount_type: DiscountType,
        discount_value,
        product_target_type: ProductTargetType = ProductTargetType.ALL_PRODUCTS,
        customer_target_type: CustomerTargetType = CustomerTargetType.ALL_CUSTOMERS,
        max_discount_amount: Optional[Money] = None,
        min_order_amount: Optional[Money] = None,
        min_quantity: Optional[int] = None,
    ) -> "DiscountRule":
        discount_value = to_decimal(discount_value)
        if discount_value <= 0:
            raise DomainException("Discount value must be greater than zero")
        if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
            raise DomainException("Percentage discount cannot exceed 100")
        if min_quantity is not None and min_quantity < 1:
            raise DomainException("Minimum quantity must be at least 1")

        return cls(
            campaign_id=campaign_id,
            discount_type=discount_type,
            discount_value=discount_value,
            product_target_type=product_target_type,
            customer_target_type=customer_target_type,
            max_discount_amount=max_discount_amount,
            min_order_amount=min_order_amount,
            min_quantity=min_quantity,
        )

    def calculate_discount(self, unit_price: Money, quantity: int) -> Money:
        """Discount for `quantity` units at `unit_price`, zero when thresholds are not met"""
        if self.min_quantity and quantity < self.min_quantity:
            return Money.zero(unit_price.currency)

        total = unit_price * quantity
        if self.min_order_amount is not None and total < self.min_order_amount:
            return Money.zero(unit_price.currency)

        if self.discount_type == DiscountType.PERCENTAGE:
            discount = Money(total.amount * self.discount_value / Decimal(100), total.currency)
            if self.max_discount_amount is not None and discount > self.max_discount_amount:
                discount = self.max_discount_amount
        else:
            discount = Money(self.discount_value * quantity, total.currency)

        # never more than the line total
        return min_money(discount, total)

    # ------------------------------------------------------------------------
    # Targeting
    # ------------------------------------------------------------------------

    def applies_to_product(
        self,
        product_id: UUID,
        category_id: Optional[UUID],
        ancestor_category_ids: Optional[Iterable[UUID]] = None,
        brand_id: Optional[UUID] = None,
    ) -> bool:
        if self.product_target_type == ProductTargetType.ALL_PRODUCTS:
            return True
        if self.product_target_type == ProductTargetType.SPECIFIC_PRODUCTS:
            return product_id in self.product_ids
        if self.product_target_type == ProductTargetType.CATEGORIES:
            if category_id in self.category_ids:
                return True
            return any(ancestor in self.category_ids for ancestor in ancestor_category_ids or [])
        if self.product_target_type == ProductTargetType.BRANDS:
            return brand_id is not None and brand_id in self.brand_ids
        return False

    def applies_to_customer(self, customer_id: UUID, tier: PriceTier) -> bool:
        if self.customer_target_type == CustomerTargetType.ALL_CUSTOMERS:
            return True
        if self.customer_target_type == CustomerTargetType.SPECIFIC_CUSTOMERS:
            return customer_id in self.customer_ids
        if self.customer_target_type == CustomerTargetType.CUSTOMER_TIERS:
            return tier in self.customer_tiers
        return False

    def _require_product_target(self, target: ProductTargetType):
        if self.product_target_type != target:
            raise DomainException(
                f"Cannot add {target.value} targets to a rule targeting {self.product_target_type.value}"
            )

    def _require_customer_target(self, target: CustomerTargetType):
        if self.customer_target_type != target:
            raise DomainException(
                f"Cannot add {target.value} targets to a rule targeting {self.customer_target_type.value}"
            )

    def add_product(self, product_id: UUID):
        self._require_product_target(ProductTargetType.SPECIFIC_PRODUCTS)
        self.product_ids.add(product_id)

    def add_category(self, category_id: UUID):
        self._require_product_target(ProductTargetType.CATEGORIES)
        self.category_ids.add(category_id)

    def add_brand(self, brand_id: UUID):
        self._require_product_target(ProductTargetType.BRANDS)
        self.brand_ids.add(brand_id)

    def add_customer(self, customer_id: UUID):
        self._require_customer_target(CustomerTargetType.SPECIFIC_CUSTOMERS)
        self.customer_ids.add(customer_id)

    def add_customer_tier(self, tier: PriceTier):
        self._require_customer_target(CustomerTargetType.CUSTOMER_TIERS)
        self.customer_tiers.add(tier)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "campaign_id": str(self.campaign_id),
            "discount_type": self.discount_type.value,
            "discount_value": float(self.discount_value),
            "max_discount_amount": float(self.max_discount_amount.amount) if self.max_discount_amount else None,
            "product_target_type": self.product_target_type.value,
            "customer_target_type": self.customer_target_type.value,
            "min_order_amount": float(self.min_order_amount.amount) if self.min_order_amount else None,
            "min_quantity": self.min_quantity,
            "product_ids": sorted(str(i) for i in self.product_ids),
            "category_ids": sorted(str(i) for i in self.category_ids),
            "brand_ids": sorted(str(i) for i in self.brand_ids),
            "customer_ids": sorted(str(i) for i in self.customer_ids),
            "customer_tiers": sorted(t.value for t in self.customer_tiers),
        }


# ============================================================================
# Campaign
# ============================================================================

class Campaign(ExternalEntity):
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: CampaignStatus = CampaignStatus.DRAFT
    priority: int = 0
    currency: str = DEFAULT_CURRENCY

    total_budget_limit: Optional[Money] = None
    total_usage_limit: Optional[int] = None
    per_customer_budget_limit: Optional[Money] = None
    per_customer_usage_limit: Optional[int] = None

    total_discount_used: Optional[Money] = None
    total_usage_count: int = 0

    discount_rules: List[DiscountRule] = Field(default_factory=list)

    def model_post_init(self, __context):
        if self.total_discount_used is None:
            self.total_discount_used = Money.zero(self.currency)

    @staticmethod
    def _validate(name: Optional[str], start_date: datetime, end_date: datetime,
                  total_usage_limit: Optional[int], per_customer_usage_limit: Optional[int]) -> str:
        name = clean(name)
        if not name:
            raise DomainException("Campaign name is required")
        if end_date <= start_date:
            raise DomainException("End date must be after start date")
        if total_usage_limit is not None and total_usage_limit < 0:
            raise DomainException("Total usage limit cannot be negative")
        if per_customer_usage_limit is not None and per_customer_usage_limit < 0:
            raise DomainException("Per customer usage limit cannot be negative")
        return name

    @classmethod
    def create(
        cls,
        name: str,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
        priority: int = 0,
        total_budget_limit: Optional[Money] = None,
        total_usage_limit: Optional[int] = None,
        per_customer_budget_limit: Optional[Money] = None,
        per_customer_usage_limit: Optional[int] = None,
        currency: str = DEFAULT_CURRENCY,
        created_by: Optional[str] = None,
    ) -> "Campaign":
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        name = cls._validate(name, start_date, end_date, total_usage_limit, per_customer_usage_limit)
        currency = Money.zero(currency).currency
        return cls(
            name=name,
            description=clean(description),
            start_date=start_date,
            end_date=end_date,
            priority=priority,
            currency=currency,
            total_budget_limit=total_budget_limit,
            total_usage_limit=total_usage_limit,
            per_customer_budget_limit=per_customer_budget_limit,
            per_customer_usage_limit=per_customer_usage_limit,
            total_discount_used=Money.zero(currency),
            created_by=created_by,
        )

    @classmethod
    def create_from_external(
        cls,
        external_id: str,
        name: str,
        start_date: datetime,
        end_date: datetime,
        external_code: Optional[str] = None,
        specific_id: Optional[UUID] = None,
        **kwargs,
    ) -> "Campaign":
        campaign = cls.create(name, start_date, end_date, **kwargs)
        if specific_id:
            campaign.id = specific_id
        campaign.initialize_from_external(external_id, external_code)
        return campaign

    def update(
        self,
        name: str,
        start_date: datetime,
        end_date: datetime,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        total_budget_limit: Optional[Money] = None,
        total_usage_limit: Optional[int] = None,
        per_customer_budget_limit: Optional[Money] = None,
        per_customer_usage_limit: Optional[int] = None,
        updated_by: Optional[str] = None,
    ):
        if self.status not in (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED):
            raise InvalidOperationDomainException(f"Cannot update campaign in {self.status.value} status")

        start_date, end_date = as_utc(start_date), as_utc(end_date)
        self.name = self._validate(name, start_date, end_date, total_usage_limit, per_customer_usage_limit)
        self.description = clean(description)
        self.start_date = start_date
        self.end_date = end_date
        if priority is not None:
            self.priority = priority
        self.total_budget_limit = total_budget_limit
        self.total_usage_limit = total_usage_limit
        self.per_customer_budget_limit = per_customer_budget_limit
        self.per_customer_usage_limit = per_customer_usage_limit
        self.touch(updated_by)

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    def schedule(self):
        if self.status != CampaignStatus.DRAFT:
            raise InvalidOperationDomainException(
                f"Cannot schedule campaign in {self.status.value} status. Campaign must be in draft status."
            )
        if not self.discount_rules:
            raise InvalidOperationDomainException("Cannot schedule campaign without discount rules")
        self.status = CampaignStatus.SCHEDULED

    def activate(self):
        if self.status not in (CampaignStatus.SCHEDULED, CampaignStatus.PAUSED):
            raise InvalidOperationDomainException(
                f"Cannot activate campaign in {self.status.value} status. Campaign must be scheduled or paused."
            )
        self.status = CampaignStatus.ACTIVE

    def pause(self):
        if self.status not in (CampaignStatus.SCHEDULED, CampaignStatus.ACTIVE):
            raise InvalidOperationDomainException(
                f"Cannot pause campaign in {self.status.value} status. Campaign must be scheduled or active."
            )
        self.status = CampaignStatus.PAUSED

    def end(self):
        if self.status != CampaignStatus.ACTIVE:
            raise InvalidOperationDomainException(
                f"Cannot end campaign in {self.status.value} status. Campaign must be active."
            )
        self.status = CampaignStatus.ENDED

    def cancel(self):
        if self.status == CampaignStatus.ENDED:
            raise InvalidOperationDomainException("Cannot cancel a campaign that has already ended")
        if self.status == CampaignStatus.CANCELLED:
            raise InvalidOperationDomainException("Campaign is already cancelled")
        self.status = CampaignStatus.CANCELLED

    def is_applicable(self, current_time: Optional[datetime] = None) -> bool:
        current_time = as_utc(current_time) or utcnow()
        return (
            self.status == CampaignStatus.ACTIVE
            and self.start_date <= current_time <= self.end_date
        )

    # ------------------------------------------------------------------------
    # Budget / usage
    # ------------------------------------------------------------------------

    def has_budget_for(self, discount_amount: Money) -> bool:
        if self.total_budget_limit is not None:
            if self.total_discount_used + discount_amount > self.total_budget_limit:
                return False
        if self.total_usage_limit is not None and self.total_usage_count >= self.total_usage_limit:
            return False
        return True

    def has_customer_budget_for(self, discount_amount: Money, customer_usage_count: int,
                                customer_total_discount: Money) -> bool:
        if self.per_customer_budget_limit is not None:
            if customer_total_discount + discount_amount > self.per_customer_budget_limit:
                return False
        if self.per_customer_usage_limit is not None and customer_usage_count >= self.per_customer_usage_limit:
            return False
        return True

    def record_usage(self, discount_amount: Money):
        self.total_discount_used = self.total_discount_used + discount_amount
        self.total_usage_count += 1

    def reverse_usage(self, discount_amount: Money):
        if self.total_usage_count > 0:
            self.total_usage_count -= 1
        self.total_discount_used = self.total_discount_used.subtract_floor_zero(discount_amount)

    def get_remaining_budget(self) -> Optional[Money]:
        if self.total_budget_limit is None:
            return None
        return self.total_budget_limit.subtract_floor_zero(self.total_discount_used)

    def get_remaining_usages(self) -> Optional[int]:
        if self.total_usage_limit is None:
            return None
        return max(self.total_usage_limit - self.total_usage_count, 0)

    # ------------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------------

    def add_discount_rule(self, rule: DiscountRule):
        if self.status != CampaignStatus.DRAFT:
            raise InvalidOperationDomainException(
                f"Cannot add rules to campaign in {self.status.value} status. Campaign must be in draft status."
            )
        rule.campaign_id = self.id
        self.discount_rules.append(rule)

    def remove_discount_rule(self, rule_id: UUID):
        if self.status != CampaignStatus.DRAFT:
            raise InvalidOperationDomainException(
                f"Cannot remove rules from campaign in {self.status.value} status. Campaign must be in draft status."
            )
        remaining = [rule for rule in self.discount_rules if rule.id != rule_id]
        if len(remaining) == len(self.discount_rules):
            raise DomainException(f"Discount rule {rule_id} not found in campaign")
        self.discount_rules = remaining

    def find_rule(self, rule_id: UUID) -> Optional[DiscountRule]:
        for rule in self.discount_rules:
            if rule.id == rule_id:
                return rule
        return None

    def to_dict(self, include_rules: bool = True) -> dict:
        def money(value: Optional[Money]):
            return float(value.amount) if value is not None else None

        remaining = self.get_remaining_budget()
        data = {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "priority": self.priority,
            "currency": self.currency,
            "total_budget_limit": money(self.total_budget_limit),
            "total_usage_limit": self.total_usage_limit,
            "per_customer_budget_limit": money(self.per_customer_budget_limit),
            "per_customer_usage_limit": self.per_customer_usage_limit,
            "total_discount_used": money(self.total_discount_used),
            "total_usage_count": self.total_usage_count,
            "remaining_budget": money(remaining),
        }
        if include_rules:
            data["discount_rules"] = [rule.to_dict() for rule in self.discount_rules]
        data.update(self.external_dict())
        data.update(self.audit_dict())
        return data


# ============================================================================
# Campaign Usage
# ============================================================================

class CampaignUsage(Entity):
    """One applied discount, tied to an order (and optionally an order line)"""

    campaign_id: UUID
    customer_id: UUID
    order_id: UUID
    order_item_id: Optional[UUID] = None
    discount_amount: Money
    used_at: datetime = Field(default_factory=utcnow)
    is_reversed: bool = False
    reversed_at: Optional[datetime] = None

    @classmethod
    def create(cls, campaign_id: UUID, customer_id: UUID, order_id: UUID,
               discount_amount: Money, order_item_id: Optional[UUID] = None) -> "CampaignUsage":
        if discount_amount.amount <= 0:
            raise DomainException("Discount amount must be greater than zero")
        return cls(
            campaign_id=campaign_id,
            customer_id=customer_id,
            order_id=order_id,
            order_item_id=order_item_id,
            discount_amount=discount_amount,
        )

    def reverse(self):
        if self.is_reversed:
            return
        self.is_reversed = True
        self.reversed_at = utcnow()

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "campaign_id": str(self.campaign_id),
            "customer_id": str(self.customer_id),
            "order_id": str(self.order_id),
            "order_item_id": str(self.order_item_id) if self.order_item_id else None,
            "discount_amount": float(self.discount_amount.amount),
            "currency": self.discount_amount.currency,
            "used_at": self.used_at.isoformat(),
            "is_reversed": self.is_reversed,
            "reversed_at": self.reversed_at.isoformat() if self.reversed_at else None,
        }


# ============================================================================
# Request models (admin API)
# ============================================================================

class CampaignRequest(BaseModel):
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    priority: int = 0
    currency: str = DEFAULT_CURRENCY
    total_budget_limit: Optional[Decimal] = Field(None, ge=0)
    total_usage_limit: Optional[int] = Field(None, ge=0)
    per_customer_budget_limit: Optional[Decimal] = Field(None, ge=0)
    per_customer_usage_limit: Optional[int] = Field(None, ge=0)
    external_id: Optional[str] = None
    external_code: Optional[str] = None


class DiscountRuleRequest(BaseModel):
    discount_type: DiscountType
    discount_value: Decimal
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    product_target_type: ProductTargetType = ProductTargetType.ALL_PRODUCTS
    customer_target_type: CustomerTargetType = CustomerTargetType.ALL_CUSTOMERS
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    min_quantity: Optional[int] = None
    product_ids: List[UUID] = Field(default_factory=list)
    category_ids: List[UUID] = Field(default_factory=list)
    brand_ids: List[UUID] = Field(default_factory=list)
    customer_ids: List[UUID] = Field(default_factory=list)
    customer_tiers: List[PriceTier] = Field(default_factory=list)
