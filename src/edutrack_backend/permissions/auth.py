"""
Authentication: bearer token -> identity gateway -> Principal.

Verified principals are cached for a short time keyed by a hash of the token,
so role or tenant changes made through set-claims reach an already issued
token once the cache entry expires.
"""

import hashlib
import logging
from typing import Annotated, Callable
from fastapi import Depends, Request
from fastapi.security.utils import get_authorization_scheme_param

from edutrack_backend.api.exceptions import InternalServerException, UnauthorizedException
from edutrack_backend.auth.gateway import IdentityClaims, IdentityGateway, IdentityGatewayError, InvalidTokenError
from edutrack_backend.permissions.core import check_role
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)


class PrincipalBuilder:
    """Builder for creating Principal objects from verified claims"""

    @staticmethod
    def build(claims: IdentityClaims) -> Principal:
        if not claims.role:
            logger.warning(f"Token for {claims.subject} carries no role claim, defaulting to {Role.student.value}")

        try:
            role = Role.from_claim(claims.role)
        except ValueError:
            logger.warning(f"Rejected token for {claims.subject} with unknown role claim {claims.role!r}")
            raise UnauthorizedException("Unknown role claim")

        return Principal(
            user_id=claims.subject,
            email=claims.email,
            role=role,
            institution_id=claims.institution_id,
            child_id=claims.child_id
        )

    @staticmethod
    async def build_with_cache(request: Request, token: str) -> Principal:
        """Verify the token through the gateway, with caching support"""

        cache = request.app.state.cache
        ttl = settings.AUTH_CACHE_TTL
        cache_key = hashlib.sha256(f"principal:{token}".encode()).hexdigest()

        if ttl > 0:
            try:
                cached_data = await cache.get(cache_key)
                if cached_data:
                    logger.debug(f"Principal cache hit for {cache_key}")
                    return Principal.model_validate_json(cached_data)
            except Exception as e:
                logger.warning(f"Cache retrieval error: {e}")

        try:
            claims = await request.app.state.identity.verify(token)
        except InvalidTokenError as e:
            raise UnauthorizedException("Invalid or expired token") from e
        except IdentityGatewayError as e:
            logger.error(f"Identity gateway failed to verify token: {e}")
            raise InternalServerException("Identity provider unavailable") from e

        principal = PrincipalBuilder.build(claims)

        if ttl > 0:
            try:
                await cache.set(cache_key, principal.model_dump_json(), ttl=ttl)
            except Exception as e:
                logger.warning(f"Cache storage error: {e}")

        return principal


def parse_bearer_token(request: Request) -> str:
    authorization = request.headers.get("Authorization")
    if not authorization:
        raise UnauthorizedException("No authorization provided")

    scheme, param = get_authorization_scheme_param(authorization)

    if scheme.lower() != "bearer" or not param:
        raise UnauthorizedException("Invalid authorization format")

    return param


async def get_current_principal(
    request: Request,
    token: Annotated[str, Depends(parse_bearer_token)]
) -> Principal:
    """Main dependency for getting the current authenticated principal."""
    return await PrincipalBuilder.build_with_cache(request, token)


def require_permission(resource: str, action: str) -> Callable:
    """Dependency factory gating a route on the role table."""

    async def dependency(permissions: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        check_role(permissions, resource, action)
        return permissions

    return dependency


def get_identity_gateway(request: Request) -> IdentityGateway:
    return request.app.state.identity
