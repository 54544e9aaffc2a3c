"""
API key authentication for the Integration API

Usage:
    @router.post("/products")
    async def upsert_product(client: ApiKeyValidationResult = Depends(require_scope("products:write"))):
        ...

Author: TM3
Date: 2025-12-03
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from app.core.config import settings
from app.core.rate_limit import RateLimitExceeded, apply_api_key_rate_limit, apply_ip_rate_limit, get_client_ip
from app.domain.integration import IntegrationScopes
from app.services.api_key_service import ApiKeyService, ApiKeyValidationResult

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name=settings.API_KEY_HEADER, auto_error=False)

WWW_AUTHENTICATE = 'ApiKey realm="B2B Integration API"'


def get_api_key_service() -> ApiKeyService:
    return ApiKeyService()


async def get_api_client(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyValidationResult:
    """
    Validate the API key header and apply the key's own rate limit.

    Raises:
        HTTPException 401 when the key is missing or invalid
        RateLimitExceeded when the key is over its per-minute limit, or
        when rejected keys from this client IP are over the anonymous limit
    """
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"API key required in {settings.API_KEY_HEADER} header",
            headers={"WWW-Authenticate": WWW_AUTHENTICATE},
        )

    client_ip = get_client_ip(request)
    result = service.validate_key(api_key, client_ip)
    if not result.is_valid:
        is_allowed, _, retry_after = apply_ip_rate_limit(request)
        if not is_allowed:
            logger.warning(f"Too many rejected API keys from {client_ip}")
            raise RateLimitExceeded(settings.UNAUTHENTICATED_RATE_LIMIT, retry_after)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{result.error_message} ({result.error_code})",
            headers={"WWW-Authenticate": WWW_AUTHENTICATE},
        )

    limit = result.rate_limit_per_minute or settings.API_KEY_DEFAULT_RATE_LIMIT
    is_allowed, _, retry_after = apply_api_key_rate_limit(request, str(result.api_key_id), limit)
    if not is_allowed:
        logger.warning(f"Rate limit exceeded for API key {result.key_prefix} ({result.client_name})")
        raise RateLimitExceeded(
            limit, retry_after, f"Rate limit exceeded for this API key. Try again in {retry_after} seconds."
        )

    request.state.api_client = result
    return result


def require_scope(scope: str):
    """Dependency factory: a valid API key that also carries `scope`"""
    async def scope_checker(
        client: ApiKeyValidationResult = Depends(get_api_client)
    ) -> ApiKeyValidationResult:
        if IntegrationScopes.grants(client.permissions, scope):
            return client

        logger.warning(f"API key {client.key_prefix} ({client.client_name}) lacks scope {scope}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required scope: {scope}",
        )

    return scope_checker
