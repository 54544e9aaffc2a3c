"""
Admin API - Campaigns
Campaign CRUD, lifecycle transitions, discount rules, discount calculation and usage

Author: TM3
Date: 2025-12-05
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.api.dependencies import get_campaign_discount_service, get_campaign_service
from app.api.responses import ok, paged_result_to_response, result_to_response
from app.core.auth import TokenUser, require_admin
from app.domain.campaign import CampaignRequest, CampaignStatus, DiscountRuleRequest
from app.domain.money import DEFAULT_CURRENCY, Money
from app.domain.product import PriceTier
from app.services.campaign_discount_service import CampaignDiscountService, DiscountCalculationItem
from app.services.campaign_service import CampaignService

router = APIRouter()


# ============================================================================
# Request models
# ============================================================================

class CalculateDiscountRequest(BaseModel):
    product_id: UUID
    customer_id: UUID
    customer_tier: PriceTier = PriceTier.LIST
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = 1
    currency: str = DEFAULT_CURRENCY


class DiscountItemRequest(BaseModel):
    product_id: UUID
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    currency: str = DEFAULT_CURRENCY


class CalculateDiscountsRequest(BaseModel):
    customer_id: UUID
    customer_tier: PriceTier = PriceTier.LIST
    items: List[DiscountItemRequest]


class RecordUsageRequest(BaseModel):
    campaign_id: UUID
    customer_id: UUID
    order_id: UUID
    order_item_id: Optional[UUID] = None
    discount_amount: Decimal = Field(..., gt=0)
    currency: str = DEFAULT_CURRENCY


# ============================================================================
# Discount calculation and usage
# ============================================================================

@router.post("/calculate-discount")
async def calculate_discount(
    request: CalculateDiscountRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignDiscountService = Depends(get_campaign_discount_service),
):
    """Best campaign discount for one order line, or null when no campaign applies"""
    result = service.calculate_best_discount(
        request.product_id,
        request.customer_id,
        request.customer_tier,
        Money(request.unit_price, request.currency),
        request.quantity,
    )
    if not result.success:
        return result_to_response(result)

    best = result.data
    if best is None:
        return ok(None, "No applicable campaign")
    return ok(best.to_dict())


@router.post("/calculate-discounts")
async def calculate_discounts(
    request: CalculateDiscountsRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignDiscountService = Depends(get_campaign_discount_service),
):
    """Best discount per product; products without an applicable campaign are omitted"""
    items = [
        DiscountCalculationItem(item.product_id, item.unit_price, item.quantity, item.currency)
        for item in request.items
    ]
    result = service.calculate_discounts_for_items(request.customer_id, request.customer_tier, items)
    if not result.success:
        return result_to_response(result)
    return ok({str(product_id): calc.to_dict() for product_id, calc in result.data.items()})


@router.post("/usages")
async def record_usage(
    request: RecordUsageRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignDiscountService = Depends(get_campaign_discount_service),
):
    result = service.record_usage(
        request.campaign_id,
        request.customer_id,
        request.order_id,
        Money(request.discount_amount, request.currency),
        request.order_item_id,
    )
    return result_to_response(result, "Campaign usage recorded", success_status=201)


@router.post("/usages/reverse/{order_id}")
async def reverse_usages(
    order_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignDiscountService = Depends(get_campaign_discount_service),
):
    """Reverse every usage recorded for a cancelled or returned order"""
    return result_to_response(service.reverse_usage(order_id), "Campaign usages reversed")


# ============================================================================
# Campaign CRUD
# ============================================================================

@router.get("")
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    result = service.list_campaigns(status=status, search=search, page=page, page_size=page_size)
    return paged_result_to_response(result, page, page_size)


@router.post("")
async def create_campaign(
    request: CampaignRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.create_campaign(request, user.email), "Campaign created", success_status=201)


@router.get("/ext/{external_id}")
async def get_campaign_by_external_id(
    external_id: str,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.get_campaign_by_external_id(external_id))


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.get_campaign(campaign_id))


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: UUID,
    request: CampaignRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    """Only draft and scheduled campaigns can be edited"""
    return result_to_response(service.update_campaign(campaign_id, request, user.email), "Campaign updated")


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.delete_campaign(campaign_id, user.email), "Campaign deleted")


@router.get("/{campaign_id}/usage-stats")
async def get_usage_stats(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignDiscountService = Depends(get_campaign_discount_service),
):
    return result_to_response(service.get_usage_stats(campaign_id))


# ============================================================================
# Lifecycle
# ============================================================================

@router.post("/{campaign_id}/schedule")
async def schedule_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.schedule(campaign_id, user.email), "Campaign scheduled")


@router.post("/{campaign_id}/activate")
async def activate_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.activate(campaign_id, user.email), "Campaign activated")


@router.post("/{campaign_id}/pause")
async def pause_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.pause(campaign_id, user.email), "Campaign paused")


@router.post("/{campaign_id}/end")
async def end_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.end(campaign_id, user.email), "Campaign ended")


@router.post("/{campaign_id}/cancel")
async def cancel_campaign(
    campaign_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.cancel(campaign_id, user.email), "Campaign cancelled")


# ============================================================================
# Discount rules
# ============================================================================

@router.post("/{campaign_id}/rules")
async def add_discount_rule(
    campaign_id: UUID,
    request: DiscountRuleRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(
        service.add_discount_rule(campaign_id, request, user.email), "Discount rule added", success_status=201
    )


@router.post("/{campaign_id}/rules/{rule_id}/targets")
async def add_rule_targets(
    campaign_id: UUID,
    rule_id: UUID,
    request: DiscountRuleRequest,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    """Add the target ids in the body to an existing rule; type and value are ignored"""
    return result_to_response(service.add_rule_targets(campaign_id, rule_id, request), "Rule targets added")


@router.delete("/{campaign_id}/rules/{rule_id}")
async def remove_discount_rule(
    campaign_id: UUID,
    rule_id: UUID,
    user: TokenUser = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return result_to_response(service.remove_discount_rule(campaign_id, rule_id, user.email), "Discount rule removed")
