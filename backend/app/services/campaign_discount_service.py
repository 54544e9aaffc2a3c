"""
Campaign Discount Service

Finds the best applicable campaign discount for a product line and keeps
campaign usage (and the campaign counters) in sync with orders.

Author: TM3
Date: 2025-12-03
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from app.core.errors import DomainException, ErrorCodes
from app.core.result import Result
from app.domain.base import utcnow
from app.domain.campaign import Campaign, CampaignUsage, DiscountType
from app.domain.money import CENT, DEFAULT_CURRENCY, Money
from app.domain.product import PriceTier
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.category_repository import CategoryRepository
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class DiscountCalculationResult:
    campaign_id: UUID
    campaign_name: str
    campaign_priority: int
    discount_rule_id: UUID
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    currency: str
    original_unit_price: Decimal
    discounted_unit_price: Decimal
    original_total_price: Decimal
    discounted_total_price: Decimal
    quantity: int

    @property
    def discount_percentage(self) -> Decimal:
        if not self.original_total_price:
            return Decimal("0.00")
        return _round(self.discount_amount / self.original_total_price * 100)

    def to_dict(self) -> dict:
        return {
            "campaign_id": str(self.campaign_id),
            "campaign_name": self.campaign_name,
            "discount_rule_id": str(self.discount_rule_id),
            "discount_type": self.discount_type.value,
            "discount_value": float(self.discount_value),
            "discount_amount": float(self.discount_amount),
            "currency": self.currency,
            "original_unit_price": float(self.original_unit_price),
            "discounted_unit_price": float(self.discounted_unit_price),
            "original_total_price": float(self.original_total_price),
            "discounted_total_price": float(self.discounted_total_price),
            "quantity": self.quantity,
            "discount_percentage": float(self.discount_percentage),
        }


@dataclass
class DiscountCalculationItem:
    product_id: UUID
    unit_price: Decimal
    quantity: int
    currency: str = DEFAULT_CURRENCY


class CampaignDiscountService:
    """Best-discount selection and campaign usage bookkeeping"""

    def __init__(
        self,
        campaign_repository: Optional[CampaignRepository] = None,
        product_repository: Optional[ProductRepository] = None,
        category_repository: Optional[CategoryRepository] = None,
    ):
        self.campaigns = campaign_repository or CampaignRepository()
        self.products = product_repository or ProductRepository()
        self.categories = category_repository or CategoryRepository()

    def _category_ancestor_ids(self, category_id: UUID) -> List[UUID]:
        """Parent chain of a category, stopping if the chain loops back on itself"""
        ancestors: List[UUID] = []
        visited = {category_id}
        current = self.categories.find_by_id(category_id)

        while current is not None and current.parent_category_id is not None:
            parent_id = current.parent_category_id
            if parent_id in visited:
                logger.warning(f"Category cycle detected at {parent_id} while walking ancestors of {category_id}")
                break
            visited.add(parent_id)
            ancestors.append(parent_id)
            current = self.categories.find_by_id(parent_id)

        return ancestors

    @staticmethod
    def _clamp(discount: Money, campaign: Campaign, customer_total: Decimal) -> Money:
        remaining = campaign.get_remaining_budget()
        if remaining is not None and discount > remaining:
            discount = remaining

        if campaign.per_customer_budget_limit is not None:
            remaining_customer = campaign.per_customer_budget_limit.amount - customer_total
            if discount.amount > remaining_customer:
                discount = Money(max(remaining_customer, Decimal(0)), discount.currency)

        return discount

    def calculate_best_discount(
        self,
        product_id: UUID,
        customer_id: UUID,
        customer_tier: PriceTier,
        unit_price: Money,
        quantity: int,
        now: Optional[datetime] = None,
    ) -> Result:
        """
        Best discount for `quantity` units of a product for a customer.

        Returns:
            Result.ok(DiscountCalculationResult), Result.ok(None) when no
            campaign applies, or Result.fail(..., PRODUCT_NOT_FOUND)
        """
        if quantity < 1:
            return Result.fail("Quantity must be at least 1", ErrorCodes.VALIDATION_ERROR)

        now = now or utcnow()
        campaigns = [c for c in self.campaigns.find_active(now) if c.is_applicable(now)]
        if not campaigns:
            return Result.ok(None)

        product = self.products.find_by_id(product_id)
        if product is None:
            return Result.fail(f"Product not found: {product_id}", ErrorCodes.PRODUCT_NOT_FOUND)

        ancestor_ids = self._category_ancestor_ids(product.category_id) if product.category_id else []
        zero = Money.zero(unit_price.currency)

        best: Optional[DiscountCalculationResult] = None
        for campaign in campaigns:
            if campaign.currency != unit_price.currency:
                continue
            if not campaign.has_budget_for(zero):
                continue

            usage_count, customer_total = self.campaigns.get_customer_usage(campaign.id, customer_id)
            if not campaign.has_customer_budget_for(zero, usage_count, Money(customer_total, unit_price.currency)):
                continue

            for rule in campaign.discount_rules:
                if not rule.applies_to_product(product_id, product.category_id, ancestor_ids, product.brand_id):
                    continue
                if not rule.applies_to_customer(customer_id, customer_tier):
                    continue

                try:
                    discount = rule.calculate_discount(unit_price, quantity)
                except DomainException as e:
                    logger.warning(f"Skipping rule {rule.id} of campaign {campaign.name}: {e.message}")
                    continue
                if discount.is_zero:
                    continue

                discount = self._clamp(discount, campaign, customer_total).rounded()
                if discount.is_zero:
                    continue

                total = unit_price.amount * quantity
                discounted_total = total - discount.amount
                candidate = DiscountCalculationResult(
                    campaign_id=campaign.id,
                    campaign_name=campaign.name,
                    campaign_priority=campaign.priority,
                    discount_rule_id=rule.id,
                    discount_type=rule.discount_type,
                    discount_value=rule.discount_value,
                    discount_amount=discount.amount,
                    currency=discount.currency,
                    original_unit_price=unit_price.amount,
                    discounted_unit_price=_round(discounted_total / quantity),
                    original_total_price=_round(total),
                    discounted_total_price=_round(discounted_total),
                    quantity=quantity,
                )

                # highest amount wins, ties go to the higher priority campaign
                if (
                    best is None
                    or candidate.discount_amount > best.discount_amount
                    or (candidate.discount_amount == best.discount_amount
                        and candidate.campaign_priority > best.campaign_priority)
                ):
                    best = candidate

        return Result.ok(best)

    def calculate_discounts_for_items(
        self,
        customer_id: UUID,
        customer_tier: PriceTier,
        items: Iterable[DiscountCalculationItem],
        now: Optional[datetime] = None,
    ) -> Result:
        results: Dict[UUID, DiscountCalculationResult] = {}
        for item in items:
            outcome = self.calculate_best_discount(
                item.product_id,
                customer_id,
                customer_tier,
                Money(item.unit_price, item.currency),
                item.quantity,
                now,
            )
            if outcome.success and outcome.data is not None:
                results[item.product_id] = outcome.data
        return Result.ok(results)

    # ========================================================================
    # Usage
    # ========================================================================

    def record_usage(
        self,
        campaign_id: UUID,
        customer_id: UUID,
        order_id: UUID,
        discount_amount: Money,
        order_item_id: Optional[UUID] = None,
    ) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)

        try:
            if discount_amount.currency != campaign.currency:
                raise DomainException(
                    f"Discount currency {discount_amount.currency} does not match campaign currency {campaign.currency}"
                )
            usage = CampaignUsage.create(campaign_id, customer_id, order_id, discount_amount, order_item_id)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.VALIDATION_ERROR)

        self.campaigns.add_usage(usage)
        campaign.record_usage(discount_amount)

        logger.info(f"Campaign usage recorded: Campaign {campaign_id}, Order {order_id}, Amount {discount_amount.amount}")
        return Result.ok(usage.to_dict())

    def reverse_usage(self, order_id: UUID) -> Result:
        usages = self.campaigns.find_usages_by_order(order_id)
        for usage in usages:
            usage.reverse()
            self.campaigns.reverse_usage(usage)

        logger.info(f"Campaign usages reversed for order: {order_id}, Count: {len(usages)}")
        return Result.ok({"order_id": str(order_id), "reversed_count": len(usages)})

    def get_usage_stats(self, campaign_id: UUID) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)

        remaining = campaign.get_remaining_budget()
        return Result.ok({
            "campaign_id": str(campaign.id),
            "campaign_name": campaign.name,
            "currency": campaign.currency,
            "total_discount_used": float(campaign.total_discount_used.amount),
            "total_usage_count": campaign.total_usage_count,
            "unique_customers": self.campaigns.get_unique_customer_count(campaign.id),
            "remaining_budget": float(remaining.amount) if remaining is not None else None,
            "remaining_usages": campaign.get_remaining_usages(),
        })
