"""
Unit tests for Campaign, DiscountRule and CampaignUsage

Author: TM3
Date: 2025-12-02
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import DomainException, InvalidOperationDomainException
from app.domain.campaign import (
    Campaign,
    CampaignStatus,
    CampaignUsage,
    CustomerTargetType,
    DiscountRule,
    DiscountType,
    ProductTargetType,
)
from app.domain.money import Money
from app.domain.product import PriceTier


def try_(amount) -> Money:
    return Money(Decimal(str(amount)), "TRY")


def draft_campaign(**kwargs) -> Campaign:
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return Campaign.create("Winter Sale", start, start + timedelta(days=30), **kwargs)


def percentage_rule(campaign: Campaign, value="10", **kwargs) -> DiscountRule:
    return DiscountRule.create(campaign.id, DiscountType.PERCENTAGE, Decimal(value), **kwargs)


class TestDiscountRuleCreation:

    def test_zero_value_is_rejected(self):
        with pytest.raises(DomainException, match="greater than zero"):
            DiscountRule.create(uuid4(), DiscountType.FIXED_AMOUNT, Decimal("0"))

    def test_percentage_over_100_is_rejected(self):
        with pytest.raises(DomainException, match="cannot exceed 100"):
            DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("100.01"))

    def test_min_quantity_below_one_is_rejected(self):
        with pytest.raises(DomainException):
            DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("5"), min_quantity=0)


class TestDiscountRuleCalculation:

    def test_percentage_discount(self):
        rule = DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("10"))

        discount = rule.calculate_discount(try_(100), 3)

        assert discount.amount == Decimal("30")

    def test_percentage_discount_is_capped_by_max_amount(self):
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("50"), max_discount_amount=try_(20)
        )

        assert rule.calculate_discount(try_(100), 1).amount == Decimal("20")

    def test_fixed_amount_is_per_unit(self):
        rule = DiscountRule.create(uuid4(), DiscountType.FIXED_AMOUNT, Decimal("5"))

        assert rule.calculate_discount(try_(40), 4).amount == Decimal("20")

    def test_fixed_amount_never_exceeds_line_total(self):
        rule = DiscountRule.create(uuid4(), DiscountType.FIXED_AMOUNT, Decimal("50"))

        assert rule.calculate_discount(try_(30), 2).amount == Decimal("60")

    def test_min_quantity_not_met_gives_zero(self):
        rule = DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("10"), min_quantity=5)

        assert rule.calculate_discount(try_(100), 4).is_zero

    def test_min_order_amount_not_met_gives_zero(self):
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("10"), min_order_amount=try_(500)
        )

        assert rule.calculate_discount(try_(100), 4).is_zero
        assert rule.calculate_discount(try_(100), 5).amount == Decimal("50")


class TestDiscountRuleTargeting:

    def test_all_products_and_customers(self):
        rule = DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("10"))

        assert rule.applies_to_product(uuid4(), uuid4())
        assert rule.applies_to_customer(uuid4(), PriceTier.LIST)

    def test_specific_products(self):
        product_id = uuid4()
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("10"),
            product_target_type=ProductTargetType.SPECIFIC_PRODUCTS,
        )
        rule.add_product(product_id)

        assert rule.applies_to_product(product_id, None)
        assert not rule.applies_to_product(uuid4(), None)

    def test_category_target_matches_ancestor(self):
        parent_id = uuid4()
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("10"),
            product_target_type=ProductTargetType.CATEGORIES,
        )
        rule.add_category(parent_id)

        assert rule.applies_to_product(uuid4(), uuid4(), [parent_id])
        assert not rule.applies_to_product(uuid4(), uuid4(), [uuid4()])

    def test_brand_target_requires_brand(self):
        brand_id = uuid4()
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("10"),
            product_target_type=ProductTargetType.BRANDS,
        )
        rule.add_brand(brand_id)

        assert rule.applies_to_product(uuid4(), None, brand_id=brand_id)
        assert not rule.applies_to_product(uuid4(), None, brand_id=None)

    def test_customer_tier_target(self):
        rule = DiscountRule.create(
            uuid4(), DiscountType.PERCENTAGE, Decimal("10"),
            customer_target_type=CustomerTargetType.CUSTOMER_TIERS,
        )
        rule.add_customer_tier(PriceTier.TIER2)

        assert rule.applies_to_customer(uuid4(), PriceTier.TIER2)
        assert not rule.applies_to_customer(uuid4(), PriceTier.TIER1)

    def test_adding_target_of_wrong_kind_raises(self):
        rule = DiscountRule.create(uuid4(), DiscountType.PERCENTAGE, Decimal("10"))

        with pytest.raises(DomainException, match="Cannot add"):
            rule.add_product(uuid4())


class TestCampaignLifecycle:

    def test_end_date_must_follow_start_date(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)

        with pytest.raises(DomainException, match="End date must be after start date"):
            Campaign.create("Bad", start, start)

    def test_naive_dates_are_taken_as_utc(self):
        campaign = Campaign.create("Naive", datetime(2025, 1, 1), datetime(2025, 2, 1))

        assert campaign.start_date.tzinfo is not None

    def test_cannot_schedule_without_rules(self):
        campaign = draft_campaign()

        with pytest.raises(InvalidOperationDomainException, match="without discount rules"):
            campaign.schedule()

    def test_full_lifecycle(self):
        campaign = draft_campaign()
        campaign.add_discount_rule(percentage_rule(campaign))

        campaign.schedule()
        campaign.activate()
        campaign.pause()
        campaign.activate()
        campaign.end()

        assert campaign.status == CampaignStatus.ENDED

    def test_cannot_cancel_ended_campaign(self):
        campaign = draft_campaign()
        campaign.add_discount_rule(percentage_rule(campaign))
        campaign.schedule()
        campaign.activate()
        campaign.end()

        with pytest.raises(InvalidOperationDomainException):
            campaign.cancel()

    def test_cancel_twice_raises(self):
        campaign = draft_campaign()
        campaign.cancel()

        with pytest.raises(InvalidOperationDomainException, match="already cancelled"):
            campaign.cancel()

    def test_rules_can_only_change_in_draft(self):
        campaign = draft_campaign()
        rule = percentage_rule(campaign)
        campaign.add_discount_rule(rule)
        campaign.schedule()

        with pytest.raises(InvalidOperationDomainException):
            campaign.add_discount_rule(percentage_rule(campaign))
        with pytest.raises(InvalidOperationDomainException):
            campaign.remove_discount_rule(rule.id)

    def test_update_only_in_draft_or_scheduled(self):
        campaign = draft_campaign()
        campaign.add_discount_rule(percentage_rule(campaign))
        campaign.schedule()
        campaign.activate()

        with pytest.raises(InvalidOperationDomainException):
            campaign.update("New name", campaign.start_date, campaign.end_date)

    def test_is_applicable_only_when_active_and_in_window(self):
        campaign = draft_campaign()
        campaign.add_discount_rule(percentage_rule(campaign))
        inside = campaign.start_date + timedelta(days=1)

        assert not campaign.is_applicable(inside)

        campaign.schedule()
        campaign.activate()

        assert campaign.is_applicable(inside)
        assert not campaign.is_applicable(campaign.end_date + timedelta(seconds=1))


class TestCampaignBudget:

    def test_total_budget(self):
        campaign = draft_campaign(total_budget_limit=try_(100))
        campaign.record_usage(try_(80))

        assert campaign.has_budget_for(try_(20))
        assert not campaign.has_budget_for(try_(20.01))
        assert campaign.get_remaining_budget().amount == Decimal("20")

    def test_usage_limit(self):
        campaign = draft_campaign(total_usage_limit=1)
        campaign.record_usage(try_(1))

        assert not campaign.has_budget_for(Money.zero("TRY"))
        assert campaign.get_remaining_usages() == 0

    def test_per_customer_limits(self):
        campaign = draft_campaign(per_customer_budget_limit=try_(50), per_customer_usage_limit=2)

        assert campaign.has_customer_budget_for(try_(10), 1, try_(40))
        assert not campaign.has_customer_budget_for(try_(10.01), 1, try_(40))
        assert not campaign.has_customer_budget_for(try_(1), 2, try_(0))

    def test_reverse_usage_floors_at_zero(self):
        campaign = draft_campaign()
        campaign.record_usage(try_(5))

        campaign.reverse_usage(try_(10))
        campaign.reverse_usage(try_(10))

        assert campaign.total_discount_used.is_zero
        assert campaign.total_usage_count == 0


class TestCampaignUsage:

    def test_discount_must_be_positive(self):
        with pytest.raises(DomainException):
            CampaignUsage.create(uuid4(), uuid4(), uuid4(), Money.zero("TRY"))

    def test_reverse_is_idempotent(self):
        usage = CampaignUsage.create(uuid4(), uuid4(), uuid4(), try_(5))

        usage.reverse()
        reversed_at = usage.reversed_at
        usage.reverse()

        assert usage.is_reversed
        assert usage.reversed_at == reversed_at
