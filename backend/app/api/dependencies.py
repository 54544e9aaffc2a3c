"""
Service providers for the API routers

Routers take their services through Depends(...) so tests can swap them
with app.dependency_overrides.
"""
from app.core.api_key_auth import get_api_key_service
from app.services.attribute_sync_service import AttributeSyncService
from app.services.campaign_discount_service import CampaignDiscountService
from app.services.campaign_service import CampaignService
from app.services.catalog_sync_service import CatalogSyncService


def get_catalog_sync_service() -> CatalogSyncService:
    return CatalogSyncService()


def get_attribute_sync_service() -> AttributeSyncService:
    return AttributeSyncService()


def get_campaign_service() -> CampaignService:
    return CampaignService()


def get_campaign_discount_service() -> CampaignDiscountService:
    return CampaignDiscountService()


__all__ = [
    "get_api_key_service",
    "get_catalog_sync_service",
    "get_attribute_sync_service",
    "get_campaign_service",
    "get_campaign_discount_service",
]
