"""
Campaign Repository - campaigns, discount rules and campaign usages

Usage records and the campaign counters are always written in the same
transaction so counters never drift from the usage table.

Author: TM3
Date: 2025-12-02
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

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
from app.repositories.base import BaseRepository, AUDIT_COLUMNS, EXTERNAL_COLUMNS

CAMPAIGN_COLUMNS = ", ".join([
    "id", "name", "description", "start_date", "end_date", "status", "priority", "currency",
    "total_budget_limit", "total_usage_limit", "per_customer_budget_limit", "per_customer_usage_limit",
    "total_discount_used", "total_usage_count",
] + EXTERNAL_COLUMNS + AUDIT_COLUMNS)

# only add_usage / reverse_usage move these, with atomic SQL
COUNTER_COLUMNS = {"total_discount_used", "total_usage_count"}

RULE_COLUMNS = """
    id, campaign_id, discount_type, discount_value, max_discount_amount,
    product_target_type, customer_target_type, min_order_amount, min_quantity,
    product_ids, category_ids, brand_ids, customer_ids, customer_tiers
"""

USAGE_COLUMNS = """
    id, campaign_id, customer_id, order_id, order_item_id, discount_amount, currency,
    used_at, is_reversed, reversed_at, created_at
"""


def _money(amount, currency: str) -> Optional[Money]:
    return Money(amount, currency) if amount is not None else None


def _amount(money: Optional[Money]) -> Optional[Decimal]:
    return money.amount if money is not None else None


class CampaignRepository(BaseRepository):

    # ========================================================================
    # Mapping
    # ========================================================================

    @staticmethod
    def _map_row_to_rule(row: dict, currency: str) -> DiscountRule:
        return DiscountRule(
            id=row["id"],
            campaign_id=row["campaign_id"],
            discount_type=DiscountType(row["discount_type"]),
            discount_value=row["discount_value"],
            max_discount_amount=_money(row["max_discount_amount"], currency),
            product_target_type=ProductTargetType(row["product_target_type"]),
            customer_target_type=CustomerTargetType(row["customer_target_type"]),
            min_order_amount=_money(row["min_order_amount"], currency),
            min_quantity=row["min_quantity"],
            product_ids=set(row["product_ids"] or []),
            category_ids=set(row["category_ids"] or []),
            brand_ids=set(row["brand_ids"] or []),
            customer_ids=set(row["customer_ids"] or []),
            customer_tiers={PriceTier(t) for t in row["customer_tiers"] or []},
        )

    @classmethod
    def _map_row_to_campaign(cls, row: dict, rules: List[dict]) -> Campaign:
        data = dict(row)
        currency = data["currency"]
        data["status"] = CampaignStatus(data["status"])
        data["total_budget_limit"] = _money(data["total_budget_limit"], currency)
        data["per_customer_budget_limit"] = _money(data["per_customer_budget_limit"], currency)
        data["total_discount_used"] = Money(data["total_discount_used"] or 0, currency)
        data["discount_rules"] = [cls._map_row_to_rule(r, currency) for r in rules]
        return Campaign.model_validate(data)

    @staticmethod
    def _map_row_to_usage(row: dict) -> CampaignUsage:
        data = dict(row)
        data["discount_amount"] = Money(data["discount_amount"], data.pop("currency"))
        return CampaignUsage.model_validate(data)

    def _load_rules(self, cursor, campaign_ids: List[UUID]) -> Dict[UUID, List[dict]]:
        rules = defaultdict(list)
        if not campaign_ids:
            return rules
        cursor.execute(f"""
            SELECT {RULE_COLUMNS}
            FROM discount_rules
            WHERE campaign_id = ANY(%s)
        """, (campaign_ids,))
        for row in cursor.fetchall():
            rules[row["campaign_id"]].append(row)
        return rules

    def _find_many(self, where: str, params, order_by: str = "priority DESC, start_date") -> List[Campaign]:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {CAMPAIGN_COLUMNS}
                FROM campaigns
                WHERE {where} AND is_deleted = FALSE
                ORDER BY {order_by}
            """, params)
            rows = cursor.fetchall()
            rules = self._load_rules(cursor, [row["id"] for row in rows])
        return [self._map_row_to_campaign(row, rules[row["id"]]) for row in rows]

    # ========================================================================
    # Queries
    # ========================================================================

    def find_by_id(self, campaign_id: UUID) -> Optional[Campaign]:
        campaigns = self._find_many("id = %s", (campaign_id,))
        return campaigns[0] if campaigns else None

    def find_by_external_id(self, external_id: str) -> Optional[Campaign]:
        campaigns = self._find_many("external_id = %s", (external_id,))
        return campaigns[0] if campaigns else None

    def find_active(self, now: datetime) -> List[Campaign]:
        """Active campaigns whose date window contains `now`, highest priority first"""
        return self._find_many(
            "status = %s AND start_date <= %s AND end_date >= %s",
            (CampaignStatus.ACTIVE.value, now, now),
        )

    def find_all(
        self,
        status: Optional[CampaignStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Campaign], int]:
        conditions = ["is_deleted = FALSE"]
        params = []

        if status:
            conditions.append("status = %s")
            params.append(status.value)

        if search:
            conditions.append("name ILIKE %s")
            params.append(f"%{search}%")

        rows, total = self._fetch_page(
            "campaigns", CAMPAIGN_COLUMNS, conditions, params, "start_date DESC, name", page, page_size,
        )
        with self._cursor() as cursor:
            rules = self._load_rules(cursor, [row["id"] for row in rows])
        return [self._map_row_to_campaign(row, rules[row["id"]]) for row in rows], total

    # ========================================================================
    # Persistence
    # ========================================================================

    def save(self, campaign: Campaign) -> Campaign:
        """Upsert the campaign and replace its discount rules"""
        row = {
            "id": campaign.id,
            "name": campaign.name,
            "description": campaign.description,
            "start_date": campaign.start_date,
            "end_date": campaign.end_date,
            "status": campaign.status.value,
            "priority": campaign.priority,
            "currency": campaign.currency,
            "total_budget_limit": _amount(campaign.total_budget_limit),
            "total_usage_limit": campaign.total_usage_limit,
            "per_customer_budget_limit": _amount(campaign.per_customer_budget_limit),
            "per_customer_usage_limit": campaign.per_customer_usage_limit,
            "total_discount_used": campaign.total_discount_used.amount,
            "total_usage_count": campaign.total_usage_count,
        }
        row.update(self._external_row(campaign))
        row.update(self._audit_row(campaign))

        with self._cursor(commit=True) as cursor:
            self._upsert(cursor, "campaigns", row, insert_only=COUNTER_COLUMNS)

            keep_ids = [rule.id for rule in campaign.discount_rules]
            cursor.execute("""
                DELETE FROM discount_rules
                WHERE campaign_id = %s AND NOT (id = ANY(%s))
            """, (campaign.id, keep_ids))

            for rule in campaign.discount_rules:
                self._upsert(cursor, "discount_rules", {
                    "id": rule.id,
                    "campaign_id": campaign.id,
                    "discount_type": rule.discount_type.value,
                    "discount_value": rule.discount_value,
                    "max_discount_amount": _amount(rule.max_discount_amount),
                    "product_target_type": rule.product_target_type.value,
                    "customer_target_type": rule.customer_target_type.value,
                    "min_order_amount": _amount(rule.min_order_amount),
                    "min_quantity": rule.min_quantity,
                    "product_ids": sorted(rule.product_ids, key=str),
                    "category_ids": sorted(rule.category_ids, key=str),
                    "brand_ids": sorted(rule.brand_ids, key=str),
                    "customer_ids": sorted(rule.customer_ids, key=str),
                    "customer_tiers": sorted(t.value for t in rule.customer_tiers),
                })

        return campaign

    # ========================================================================
    # Usage
    # ========================================================================

    def get_customer_usage(self, campaign_id: UUID, customer_id: UUID) -> Tuple[int, Decimal]:
        """Count and total of the customer's non-reversed usages of a campaign"""
        row = self._fetch_one("""
            SELECT COUNT(*) AS usage_count, COALESCE(SUM(discount_amount), 0) AS total_discount
            FROM campaign_usages
            WHERE campaign_id = %s AND customer_id = %s AND is_reversed = FALSE
        """, (campaign_id, customer_id))
        return int(row["usage_count"]), Decimal(row["total_discount"])

    def get_unique_customer_count(self, campaign_id: UUID) -> int:
        row = self._fetch_one("""
            SELECT COUNT(DISTINCT customer_id) AS customers
            FROM campaign_usages
            WHERE campaign_id = %s AND is_reversed = FALSE
        """, (campaign_id,))
        return int(row["customers"])

    def find_usages_by_order(self, order_id: UUID, include_reversed: bool = False) -> List[CampaignUsage]:
        condition = "" if include_reversed else "AND is_reversed = FALSE"
        rows = self._fetch_all(f"""
            SELECT {USAGE_COLUMNS}
            FROM campaign_usages
            WHERE order_id = %s {condition}
            ORDER BY used_at
        """, (order_id,))
        return [self._map_row_to_usage(row) for row in rows]

    def add_usage(self, usage: CampaignUsage):
        """Insert a usage and bump the campaign counters atomically"""
        with self._cursor(commit=True) as cursor:
            cursor.execute(f"""
                INSERT INTO campaign_usages ({USAGE_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                usage.id, usage.campaign_id, usage.customer_id, usage.order_id, usage.order_item_id,
                usage.discount_amount.amount, usage.discount_amount.currency,
                usage.used_at, usage.is_reversed, usage.reversed_at, usage.created_at,
            ))
            cursor.execute("""
                UPDATE campaigns
                SET total_discount_used = total_discount_used + %s,
                    total_usage_count = total_usage_count + 1,
                    updated_at = NOW()
                WHERE id = %s
            """, (usage.discount_amount.amount, usage.campaign_id))

    def reverse_usage(self, usage: CampaignUsage):
        """Mark a usage reversed and take it back off the campaign counters (floored at zero)"""
        with self._cursor(commit=True) as cursor:
            cursor.execute("""
                UPDATE campaign_usages
                SET is_reversed = TRUE, reversed_at = %s
                WHERE id = %s AND is_reversed = FALSE
            """, (usage.reversed_at, usage.id))
            if cursor.rowcount == 0:
                return
            cursor.execute("""
                UPDATE campaigns
                SET total_discount_used = GREATEST(total_discount_used - %s, 0),
                    total_usage_count = GREATEST(total_usage_count - 1, 0),
                    updated_at = NOW()
                WHERE id = %s
            """, (usage.discount_amount.amount, usage.campaign_id))
