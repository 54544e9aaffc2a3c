"""
Unit tests for CampaignRepository

Author: TM3
Date: 2025-12-05
"""
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from app.repositories.campaign_repository import CampaignRepository
from app.domain.campaign import Campaign, CampaignStatus, CampaignUsage, ProductTargetType
from app.domain.money import Money
from app.domain.product import PriceTier


@pytest.fixture
def mock_db():
    with patch('app.repositories.base.get_db_connection_dict') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


def campaign_row(campaign_id, **overrides) -> dict:
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    row = {
        'id': campaign_id,
        'name': 'Winter Sale',
        'description': None,
        'start_date': start,
        'end_date': start + timedelta(days=30),
        'status': 'active',
        'priority': 3,
        'currency': 'EUR',
        'total_budget_limit': Decimal('1000.00'),
        'total_usage_limit': None,
        'per_customer_budget_limit': None,
        'per_customer_usage_limit': 2,
        'total_discount_used': Decimal('150.00'),
        'total_usage_count': 4,
        'external_id': None,
        'external_code': None,
        'last_synced_at': None,
        'created_at': start,
        'created_by': 'admin@example.com',
        'updated_at': None,
        'updated_by': None,
        'is_deleted': False,
        'deleted_at': None,
    }
    row.update(overrides)
    return row


def rule_row(campaign_id, **overrides) -> dict:
    row = {
        'id': uuid4(),
        'campaign_id': campaign_id,
        'discount_type': 'percentage',
        'discount_value': Decimal('15'),
        'max_discount_amount': Decimal('40.00'),
        'product_target_type': 'categories',
        'customer_target_type': 'customer_tiers',
        'min_order_amount': None,
        'min_quantity': None,
        'product_ids': [],
        'category_ids': [uuid4()],
        'brand_ids': None,
        'customer_ids': None,
        'customer_tiers': ['tier1', 'tier2'],
    }
    row.update(overrides)
    return row


class TestCampaignRepository:

    def test_find_by_id_maps_campaign_and_rules(self, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        campaign_id = uuid4()
        mock_cursor.fetchall.side_effect = [[campaign_row(campaign_id)], [rule_row(campaign_id)]]

        # Act
        campaign = CampaignRepository().find_by_id(campaign_id)

        # Assert
        assert campaign.status == CampaignStatus.ACTIVE
        assert campaign.total_budget_limit == Money(Decimal('1000.00'), 'EUR')
        assert campaign.get_remaining_budget().amount == Decimal('850.00')

        rule = campaign.discount_rules[0]
        assert rule.product_target_type == ProductTargetType.CATEGORIES
        assert rule.max_discount_amount.currency == 'EUR'
        assert rule.customer_tiers == {PriceTier.TIER1, PriceTier.TIER2}
        assert rule.brand_ids == set()

        # one connection for the campaign and its rules
        assert mock_cursor.execute.call_count == 2
        mock_conn.close.assert_called_once()

    def test_find_by_id_not_found_skips_rule_query(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = []

        # Act
        campaign = CampaignRepository().find_by_id(uuid4())

        # Assert
        assert campaign is None
        mock_cursor.execute.assert_called_once()

    def test_add_usage_bumps_counters_in_same_transaction(self, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        usage = CampaignUsage.create(uuid4(), uuid4(), uuid4(), Money(Decimal('12.50'), 'TRY'))

        # Act
        CampaignRepository().add_usage(usage)

        # Assert
        insert, update = [c[0] for c in mock_cursor.execute.call_args_list]
        assert 'INSERT INTO campaign_usages' in insert[0]
        assert 'total_usage_count = total_usage_count + 1' in update[0]
        assert update[1] == (Decimal('12.50'), usage.campaign_id)
        mock_conn.commit.assert_called_once()

    def test_reverse_usage_already_reversed_leaves_counters(self, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        mock_cursor.rowcount = 0
        usage = CampaignUsage.create(uuid4(), uuid4(), uuid4(), Money(Decimal('5'), 'TRY'))
        usage.reverse()

        # Act
        CampaignRepository().reverse_usage(usage)

        # Assert
        mock_cursor.execute.assert_called_once()
        mock_conn.commit.assert_called_once()

    def test_customer_usage_totals(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = {'usage_count': 2, 'total_discount': Decimal('30.00')}

        # Act
        count, total = CampaignRepository().get_customer_usage(uuid4(), uuid4())

        # Assert
        assert (count, total) == (2, Decimal('30.00'))
        assert 'is_reversed = FALSE' in mock_cursor.execute.call_args[0][0]

    def test_save_never_overwrites_usage_counters(self, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        campaign = Campaign.create('Winter Sale', start, start + timedelta(days=30))

        # Act
        CampaignRepository().save(campaign)

        # Assert: counters are written on insert only
        query, row = mock_cursor.execute.call_args_list[0][0]
        update_clause = query.split('DO UPDATE SET', 1)[1]
        assert 'INSERT INTO campaigns' in query
        assert row['total_usage_count'] == 0
        assert 'total_usage_count' not in update_clause
        assert 'total_discount_used' not in update_clause
        assert 'name = EXCLUDED.name' in update_clause
        assert 'created_at' not in update_clause
        mock_conn.commit.assert_called_once()
