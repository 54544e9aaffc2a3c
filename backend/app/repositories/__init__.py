"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.

Author: TM3
Date: 2025-10-17
"""
from app.repositories.product_repository import ProductRepository
from app.repositories.category_repository import CategoryRepository
from app.repositories.brand_repository import BrandRepository
from app.repositories.attribute_repository import AttributeRepository
from app.repositories.product_type_repository import ProductTypeRepository
from app.repositories.campaign_repository import CampaignRepository
from app.repositories.api_key_repository import ApiClientRepository, ApiKeyRepository

__all__ = [
    'ProductRepository',
    'CategoryRepository',
    'BrandRepository',
    'AttributeRepository',
    'ProductTypeRepository',
    'CampaignRepository',
    'ApiClientRepository',
    'ApiKeyRepository',
]
