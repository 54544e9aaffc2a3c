"""
Unit tests for CampaignDiscountService (best discount selection, usage bookkeeping)

Author: TM3
Date: 2025-12-04
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import ErrorCodes
from app.domain.campaign import CampaignUsage, CustomerTargetType, DiscountType, ProductTargetType
from app.domain.category import Category
from app.domain.money import Money
from app.domain.product import PriceTier, Product
from app.services.campaign_discount_service import CampaignDiscountService, DiscountCalculationItem


def try_(amount) -> Money:
    return Money(Decimal(str(amount)), "TRY")


@pytest.fixture
def service(campaign_repo, product_repo, category_repo):
    return CampaignDiscountService(campaign_repo, product_repo, category_repo)


@pytest.fixture
def laptops(category_repo):
    electronics = category_repo.add(Category.create("Electronics"))
    return category_repo.add(Category.create("Laptops", parent_category_id=electronics.id))


@pytest.fixture
def laptop(product_repo, laptops):
    return product_repo.add(Product.create("LPT-001", "Laptop 14", laptops.id, try_(100)))


class TestCalculateBestDiscount:

    def test_no_active_campaign(self, service, customer_id):
        result = service.calculate_best_discount(uuid4(), customer_id, PriceTier.LIST, try_(100), 1)

        assert result.success
        assert result.data is None

    def test_unknown_product(self, service, campaign_repo, active_campaign, customer_id):
        campaign_repo.add(active_campaign())

        result = service.calculate_best_discount(uuid4(), customer_id, PriceTier.LIST, try_(100), 1)

        assert result.error_code == ErrorCodes.PRODUCT_NOT_FOUND

    def test_quantity_must_be_positive(self, service, laptop, customer_id):
        result = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 0)

        assert result.error_code == ErrorCodes.VALIDATION_ERROR

    def test_percentage_discount_for_line(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = campaign_repo.add(active_campaign())

        result = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 2)

        best = result.data
        assert best.campaign_id == campaign.id
        assert best.discount_amount == Decimal("20.00")
        assert best.discounted_unit_price == Decimal("90.00")
        assert best.discounted_total_price == Decimal("180.00")
        assert best.discount_percentage == Decimal("10.00")

    def test_highest_amount_wins(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign_repo.add(active_campaign("Ten percent", priority=10))
        fixed = campaign_repo.add(active_campaign(
            "Fifteen off", discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("15"),
        ))

        best = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 2).data

        assert best.campaign_id == fixed.id
        assert best.discount_amount == Decimal("30.00")

    def test_tie_goes_to_higher_priority(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign_repo.add(active_campaign("Low", priority=1))
        high = campaign_repo.add(active_campaign("High", priority=5))

        best = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1).data

        assert best.campaign_id == high.id

    def test_category_rule_matches_ancestor(self, service, campaign_repo, category_repo, active_campaign,
                                            laptop, laptops, customer_id):
        campaign = active_campaign(product_target_type=ProductTargetType.CATEGORIES)
        campaign.discount_rules[0].add_category(laptops.parent_category_id)
        campaign_repo.add(campaign)

        best = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1).data

        assert best is not None
        assert best.discount_amount == Decimal("10.00")

    def test_category_cycle_does_not_hang(self, service, campaign_repo, category_repo, active_campaign,
                                          laptop, laptops, customer_id):
        electronics = category_repo.find_by_id(laptops.parent_category_id)
        electronics.parent_category_id = laptops.id
        campaign = active_campaign(product_target_type=ProductTargetType.CATEGORIES)
        campaign.discount_rules[0].add_category(uuid4())
        campaign_repo.add(campaign)

        result = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1)

        assert result.success
        assert result.data is None

    def test_other_currency_campaign_is_skipped(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign_repo.add(active_campaign(currency="USD"))

        result = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1)

        assert result.data is None

    def test_customer_tier_targeting(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = active_campaign(customer_target_type=CustomerTargetType.CUSTOMER_TIERS)
        campaign.discount_rules[0].add_customer_tier(PriceTier.TIER1)
        campaign_repo.add(campaign)

        assert service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1).data is None
        assert service.calculate_best_discount(laptop.id, customer_id, PriceTier.TIER1, try_(100), 1).data is not None

    def test_discount_clamped_to_remaining_budget(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = campaign_repo.add(active_campaign(total_budget_limit=Decimal("50")))
        campaign.record_usage(try_(45))

        best = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 2).data

        assert best.discount_amount == Decimal("5.00")

    def test_exhausted_budget_gives_no_discount(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = campaign_repo.add(active_campaign(total_budget_limit=Decimal("50")))
        campaign.record_usage(try_(50))

        result = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1)

        assert result.data is None

    def test_per_customer_usage_limit(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = campaign_repo.add(active_campaign(per_customer_usage_limit=1))
        campaign_repo.usages.append(CampaignUsage.create(campaign.id, customer_id, uuid4(), try_(10)))

        assert service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 1).data is None
        assert service.calculate_best_discount(laptop.id, uuid4(), PriceTier.LIST, try_(100), 1).data is not None

    def test_per_customer_budget_clamp(self, service, campaign_repo, active_campaign, laptop, customer_id):
        campaign = campaign_repo.add(active_campaign(per_customer_budget_limit=Decimal("25")))
        campaign_repo.usages.append(CampaignUsage.create(campaign.id, customer_id, uuid4(), try_(20)))

        best = service.calculate_best_discount(laptop.id, customer_id, PriceTier.LIST, try_(100), 3).data

        assert best.discount_amount == Decimal("5.00")


class TestCalculateDiscountsForItems:

    def test_only_discounted_items_are_returned(self, service, campaign_repo, product_repo, active_campaign,
                                                laptop, customer_id):
        campaign = active_campaign(product_target_type=ProductTargetType.SPECIFIC_PRODUCTS)
        campaign.discount_rules[0].add_product(laptop.id)
        campaign_repo.add(campaign)
        mouse = product_repo.add(Product.create("MSE-001", "Mouse", laptop.category_id, try_(10)))

        result = service.calculate_discounts_for_items(customer_id, PriceTier.LIST, [
            DiscountCalculationItem(laptop.id, Decimal("100"), 1),
            DiscountCalculationItem(mouse.id, Decimal("10"), 4),
        ])

        assert list(result.data) == [laptop.id]


class TestUsage:

    def test_record_usage_updates_counters(self, service, campaign_repo, active_campaign, customer_id):
        campaign = campaign_repo.add(active_campaign())
        order_id = uuid4()

        result = service.record_usage(campaign.id, customer_id, order_id, try_(12.5))

        assert result.success
        assert result.data["order_id"] == str(order_id)
        assert campaign.total_usage_count == 1
        assert campaign.total_discount_used == try_(12.5)
        assert len(campaign_repo.usages) == 1

    def test_record_usage_for_unknown_campaign(self, service, customer_id):
        result = service.record_usage(uuid4(), customer_id, uuid4(), try_(5))

        assert result.error_code == ErrorCodes.CAMPAIGN_NOT_FOUND

    def test_record_usage_currency_mismatch(self, service, campaign_repo, active_campaign, customer_id):
        campaign = campaign_repo.add(active_campaign())

        result = service.record_usage(campaign.id, customer_id, uuid4(), Money(Decimal("5"), "USD"))

        assert result.error_code == ErrorCodes.VALIDATION_ERROR
        assert campaign_repo.usages == []

    def test_reverse_usage_is_idempotent(self, service, campaign_repo, active_campaign, customer_id):
        campaign = campaign_repo.add(active_campaign())
        order_id = uuid4()
        service.record_usage(campaign.id, customer_id, order_id, try_(10))
        service.record_usage(campaign.id, customer_id, order_id, try_(5))

        first = service.reverse_usage(order_id)
        second = service.reverse_usage(order_id)

        assert first.data["reversed_count"] == 2
        assert second.data["reversed_count"] == 0
        assert campaign.total_usage_count == 0
        assert campaign.total_discount_used.is_zero
        assert all(u.is_reversed for u in campaign_repo.usages)

    def test_usage_stats(self, service, campaign_repo, active_campaign, customer_id):
        campaign = campaign_repo.add(active_campaign(total_budget_limit=Decimal("100"), total_usage_limit=10))
        service.record_usage(campaign.id, customer_id, uuid4(), try_(10))
        service.record_usage(campaign.id, uuid4(), uuid4(), try_(15))

        stats = service.get_usage_stats(campaign.id).data

        assert stats["total_usage_count"] == 2
        assert stats["unique_customers"] == 2
        assert stats["remaining_budget"] == 75.0
        assert stats["remaining_usages"] == 8
