"""
Database table definitions
"""
from .catalog import (
    Category,
    Brand,
    AttributeDefinition,
    AttributeValue,
    ProductType,
    ProductTypeAttribute,
    Product,
)
from .campaign import Campaign, DiscountRule, CampaignUsage
from .integration import ApiClient, ApiKey

__all__ = [
    "Category",
    "Brand",
    "AttributeDefinition",
    "AttributeValue",
    "ProductType",
    "ProductTypeAttribute",
    "Product",
    "Campaign",
    "DiscountRule",
    "CampaignUsage",
    "ApiClient",
    "ApiKey",
]
