"""
Domain Layer - Business Entities

Catalog, campaign and integration entities. They enforce their own
invariants and raise DomainException when one is violated.

Author: TM3
Date: 2025-10-17
Updated: 2025-12-02 (catalog sync, campaigns, API keys)
"""
from app.domain.money import Money
from app.domain.category import Category
from app.domain.brand import Brand
from app.domain.attribute import AttributeDefinition, AttributeValue
from app.domain.product_type import ProductType
from app.domain.product import Product
from app.domain.campaign import Campaign, DiscountRule, CampaignUsage
from app.domain.integration import ApiClient, ApiKey

__all__ = [
    'Money',
    'Category',
    'Brand',
    'AttributeDefinition',
    'AttributeValue',
    'ProductType',
    'Product',
    'Campaign',
    'DiscountRule',
    'CampaignUsage',
    'ApiClient',
    'ApiKey',
]
