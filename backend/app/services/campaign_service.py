"""
Campaign Service - admin management of campaigns and their discount rules

Domain rule violations (bad dates, lifecycle transitions, rule edits
outside draft) come back as Result.fail(..., INVALID_OPERATION).

Author: TM3
Date: 2025-12-03
"""
import logging
from typing import Callable, Optional
from uuid import UUID

from app.core.errors import DomainException, ErrorCodes
from app.core.result import Result
from app.domain.campaign import (
    Campaign,
    CampaignRequest,
    CampaignStatus,
    DiscountRule,
    DiscountRuleRequest,
)
from app.domain.money import Money
from app.repositories.campaign_repository import CampaignRepository

logger = logging.getLogger(__name__)


def _money(amount, currency: str) -> Optional[Money]:
    return Money(amount, currency) if amount is not None else None


class CampaignService:

    def __init__(self, campaign_repository: Optional[CampaignRepository] = None):
        self.campaigns = campaign_repository or CampaignRepository()

    # ========================================================================
    # Queries
    # ========================================================================

    def list_campaigns(
        self,
        status: Optional[CampaignStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Result:
        campaigns, total = self.campaigns.find_all(status=status, search=search, page=page, page_size=page_size)
        return Result.ok(([c.to_dict(include_rules=False) for c in campaigns], total))

    def get_campaign(self, campaign_id: UUID) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)
        return Result.ok(campaign.to_dict())

    def get_campaign_by_external_id(self, external_id: str) -> Result:
        campaign = self.campaigns.find_by_external_id(external_id)
        if campaign is None:
            return Result.fail(f"Campaign not found by ExternalId: {external_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)
        return Result.ok(campaign.to_dict())

    # ========================================================================
    # Create / update / delete
    # ========================================================================

    def create_campaign(self, request: CampaignRequest, created_by: Optional[str] = None) -> Result:
        if request.external_id and self.campaigns.find_by_external_id(request.external_id.strip()):
            return Result.fail(
                f"A campaign with ExternalId '{request.external_id}' already exists",
                ErrorCodes.EXTERNAL_ID_EXISTS,
            )

        try:
            kwargs = dict(
                description=request.description,
                priority=request.priority,
                total_budget_limit=_money(request.total_budget_limit, request.currency),
                total_usage_limit=request.total_usage_limit,
                per_customer_budget_limit=_money(request.per_customer_budget_limit, request.currency),
                per_customer_usage_limit=request.per_customer_usage_limit,
                currency=request.currency,
                created_by=created_by,
            )
            if request.external_id:
                campaign = Campaign.create_from_external(
                    request.external_id,
                    request.name,
                    request.start_date,
                    request.end_date,
                    external_code=request.external_code,
                    **kwargs,
                )
            else:
                campaign = Campaign.create(request.name, request.start_date, request.end_date, **kwargs)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.INVALID_OPERATION)

        self.campaigns.save(campaign)
        logger.info(f"Campaign created: {campaign.name} (Id: {campaign.id})")
        return Result.ok(campaign.to_dict())

    def update_campaign(self, campaign_id: UUID, request: CampaignRequest, updated_by: Optional[str] = None) -> Result:
        def change(campaign: Campaign):
            currency = campaign.currency
            campaign.update(
                request.name,
                request.start_date,
                request.end_date,
                description=request.description,
                priority=request.priority,
                total_budget_limit=_money(request.total_budget_limit, currency),
                total_usage_limit=request.total_usage_limit,
                per_customer_budget_limit=_money(request.per_customer_budget_limit, currency),
                per_customer_usage_limit=request.per_customer_usage_limit,
                updated_by=updated_by,
            )

        return self._apply(campaign_id, change, "updated")

    def delete_campaign(self, campaign_id: UUID, deleted_by: Optional[str] = None) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)
        if campaign.status == CampaignStatus.ACTIVE:
            return Result.fail("Cannot delete an active campaign. Pause or end it first.", ErrorCodes.INVALID_OPERATION)

        campaign.soft_delete(deleted_by)
        self.campaigns.save(campaign)
        logger.info(f"Campaign deleted: {campaign.name} (Id: {campaign.id})")
        return Result.ok({"id": str(campaign.id)})

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def schedule(self, campaign_id: UUID, updated_by: Optional[str] = None) -> Result:
        return self._apply(campaign_id, lambda c: c.schedule(), "scheduled", updated_by)

    def activate(self, campaign_id: UUID, updated_by: Optional[str] = None) -> Result:
        return self._apply(campaign_id, lambda c: c.activate(), "activated", updated_by)

    def pause(self, campaign_id: UUID, updated_by: Optional[str] = None) -> Result:
        return self._apply(campaign_id, lambda c: c.pause(), "paused", updated_by)

    def end(self, campaign_id: UUID, updated_by: Optional[str] = None) -> Result:
        return self._apply(campaign_id, lambda c: c.end(), "ended", updated_by)

    def cancel(self, campaign_id: UUID, updated_by: Optional[str] = None) -> Result:
        return self._apply(campaign_id, lambda c: c.cancel(), "cancelled", updated_by)

    # ========================================================================
    # Discount rules
    # ========================================================================

    def add_discount_rule(self, campaign_id: UUID, request: DiscountRuleRequest,
                          updated_by: Optional[str] = None) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)

        currency = campaign.currency
        try:
            rule = DiscountRule.create(
                campaign.id,
                request.discount_type,
                request.discount_value,
                product_target_type=request.product_target_type,
                customer_target_type=request.customer_target_type,
                max_discount_amount=_money(request.max_discount_amount, currency),
                min_order_amount=_money(request.min_order_amount, currency),
                min_quantity=request.min_quantity,
            )
            self._add_targets(rule, request)
            campaign.add_discount_rule(rule)
            campaign.touch(updated_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.INVALID_OPERATION)

        self.campaigns.save(campaign)
        logger.info(f"Discount rule {rule.id} added to campaign {campaign.name}")
        return Result.ok(rule.to_dict())

    def remove_discount_rule(self, campaign_id: UUID, rule_id: UUID, updated_by: Optional[str] = None) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)
        if campaign.find_rule(rule_id) is None:
            return Result.fail(f"Discount rule not found: {rule_id}", ErrorCodes.DISCOUNT_RULE_NOT_FOUND)

        try:
            campaign.remove_discount_rule(rule_id)
            campaign.touch(updated_by)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.INVALID_OPERATION)

        self.campaigns.save(campaign)
        logger.info(f"Discount rule {rule_id} removed from campaign {campaign.name}")
        return Result.ok({"id": str(rule_id)})

    def add_rule_targets(self, campaign_id: UUID, rule_id: UUID, request: DiscountRuleRequest) -> Result:
        """Add product / category / brand / customer / tier targets to an existing draft rule"""
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)

        rule = campaign.find_rule(rule_id)
        if rule is None:
            return Result.fail(f"Discount rule not found: {rule_id}", ErrorCodes.DISCOUNT_RULE_NOT_FOUND)
        if campaign.status != CampaignStatus.DRAFT:
            return Result.fail(
                f"Cannot change rules of campaign in {campaign.status.value} status. Campaign must be in draft status.",
                ErrorCodes.INVALID_OPERATION,
            )

        try:
            self._add_targets(rule, request)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.INVALID_OPERATION)

        self.campaigns.save(campaign)
        return Result.ok(rule.to_dict())

    @staticmethod
    def _add_targets(rule: DiscountRule, request: DiscountRuleRequest):
        for add, values in (
            (rule.add_product, request.product_ids),
            (rule.add_category, request.category_ids),
            (rule.add_brand, request.brand_ids),
            (rule.add_customer, request.customer_ids),
            (rule.add_customer_tier, request.customer_tiers),
        ):
            for value in values:
                add(value)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _apply(
        self,
        campaign_id: UUID,
        change: Callable[[Campaign], None],
        action: str,
        updated_by: Optional[str] = None,
    ) -> Result:
        campaign = self.campaigns.find_by_id(campaign_id)
        if campaign is None:
            return Result.fail(f"Campaign not found: {campaign_id}", ErrorCodes.CAMPAIGN_NOT_FOUND)

        try:
            change(campaign)
        except DomainException as e:
            return Result.fail(e.message, ErrorCodes.INVALID_OPERATION)

        campaign.touch(updated_by)
        self.campaigns.save(campaign)
        logger.info(f"Campaign {action}: {campaign.name} (Id: {campaign.id})")
        return Result.ok(campaign.to_dict())
