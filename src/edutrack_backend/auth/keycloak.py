"""
Keycloak identity gateway.

Tokens are verified locally against the realm JWKS. Accounts and the role
claim set are managed through the Keycloak admin REST API; the claims live in
user attributes and are expected to be mapped into access tokens by protocol
mappers named after the claims (role, institutionId, childId).
"""

import logging
import time
from typing import Any, Dict, List, Optional
import httpx
from jose import jwt, JWTError
from pydantic import BaseModel, Field

from edutrack_backend.auth.gateway import (
    CHILD_CLAIM,
    INSTITUTION_CLAIM,
    ROLE_CLAIM,
    DuplicateIdentityError,
    IdentityClaims,
    IdentityGateway,
    IdentityGatewayError,
    IdentityNotFoundError,
    InvalidCredentialsError,
    InvalidTokenError,
    LoginResult,
)
from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)


class KeycloakConfig(BaseModel):
    """Keycloak-specific configuration."""
    server_url: str = Field(default_factory=lambda: settings.KEYCLOAK_SERVER_URL)
    realm: str = Field(default_factory=lambda: settings.KEYCLOAK_REALM)
    client_id: str = Field(default_factory=lambda: settings.KEYCLOAK_CLIENT_ID)
    client_secret: str = Field(default_factory=lambda: settings.KEYCLOAK_CLIENT_SECRET)
    admin_username: str = Field(default_factory=lambda: settings.KEYCLOAK_ADMIN)
    admin_password: str = Field(default_factory=lambda: settings.KEYCLOAK_ADMIN_PASSWORD)
    scopes: List[str] = ["openid", "profile", "email"]
    verify_ssl: bool = Field(default_factory=lambda: settings.KEYCLOAK_VERIFY_SSL)
    timeout: float = 30.0

    @property
    def issuer(self) -> str:
        return f"{self.server_url}/realms/{self.realm}"

    @property
    def admin_url(self) -> str:
        return f"{self.server_url}/admin/realms/{self.realm}"


class KeycloakIdentityGateway(IdentityGateway):

    def __init__(self, config: Optional[KeycloakConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or KeycloakConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._oidc_config: Optional[Dict[str, Any]] = None
        self._jwks: Optional[Dict[str, Any]] = None
        self._admin_token: Optional[str] = None
        self._admin_token_expires_at = 0.0

    async def initialize(self) -> None:
        """Open the HTTP client and fetch OIDC configuration and signing keys."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
                transport=self._transport,
            )

        try:
            await self._fetch_oidc_config()
            await self._fetch_jwks()
            logger.info(f"Keycloak gateway initialized for realm {self.config.realm}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to initialize Keycloak gateway: {e}")
            raise IdentityGatewayError("Identity provider unavailable") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Gateway not initialized. Call initialize() first.")
        return self._client

    async def _fetch_oidc_config(self) -> None:
        response = await self.client.get(f"{self.config.issuer}/.well-known/openid-configuration")
        response.raise_for_status()
        self._oidc_config = response.json()

    async def _fetch_jwks(self) -> None:
        jwks_uri = (self._oidc_config or {}).get("jwks_uri")
        if not jwks_uri:
            raise IdentityGatewayError("JWKS URI not found in OIDC configuration")

        response = await self.client.get(jwks_uri)
        response.raise_for_status()
        self._jwks = response.json()

    def _find_key(self, kid: str) -> Optional[Dict[str, Any]]:
        for jwk in (self._jwks or {}).get("keys", []):
            if jwk.get("kid") == kid:
                return jwk
        return None

    async def verify(self, token: str) -> IdentityClaims:
        try:
            unverified_header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidTokenError("Malformed token") from e

        kid = unverified_header.get("kid")
        if not kid:
            raise InvalidTokenError("No key ID found in token header")

        key = self._find_key(kid)
        if key is None:
            # Signing keys may have rotated since start-up
            await self._fetch_jwks()
            key = self._find_key(kid)
        if key is None:
            raise InvalidTokenError(f"No matching key found for kid: {kid}")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self.config.client_id,
                issuer=self.config.issuer
            )
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            raise InvalidTokenError(str(e)) from e

        if "sub" not in claims:
            raise InvalidTokenError("Token has no subject")

        return IdentityClaims.from_token_claims(claims)

    async def login(self, email: str, password: str) -> LoginResult:
        token_endpoint = (self._oidc_config or {}).get("token_endpoint")
        if not token_endpoint:
            raise IdentityGatewayError("Token endpoint not found in OIDC configuration")

        data = {
            "grant_type": "password",
            "username": email,
            "password": password,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": " ".join(self.config.scopes)
        }

        response = await self.client.post(
            token_endpoint,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"}
        )

        if response.status_code in (400, 401):
            raise InvalidCredentialsError("Invalid email or password")

        self._raise_for_status(response, "login")

        access_token = response.json()["access_token"]
        return LoginResult(token=access_token, claims=await self.verify(access_token))

    async def _get_admin_token(self) -> str:
        """Get admin access token for Keycloak API operations."""
        if self._admin_token and time.monotonic() < self._admin_token_expires_at:
            return self._admin_token

        data = {
            "grant_type": "password",
            "username": self.config.admin_username,
            "password": self.config.admin_password,
            "client_id": "admin-cli",
            "scope": "openid"
        }

        response = await self.client.post(
            f"{self.config.server_url}/realms/master/protocol/openid-connect/token",
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"}
        )
        self._raise_for_status(response, "admin token")

        token_data = response.json()
        self._admin_token = token_data["access_token"]
        # Renew a little before the provider expires it
        self._admin_token_expires_at = time.monotonic() + max(int(token_data.get("expires_in", 60)) - 10, 0)
        return self._admin_token

    async def _admin_request(self, method: str, path: str, **kwargs) -> httpx.Response:
        token = await self._get_admin_token()
        return await self.client.request(
            method,
            f"{self.config.admin_url}{path}",
            headers={"Authorization": f"Bearer {token}"},
            **kwargs
        )

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.status_code == 404:
            raise IdentityNotFoundError(f"{operation}: not found")
        if response.is_error:
            logger.error(f"Keycloak {operation} failed: {response.status_code} - {response.text}")
            raise IdentityGatewayError(f"Identity provider rejected {operation} ({response.status_code})")

    async def create_user(self, email: str, password: Optional[str] = None, name: Optional[str] = None) -> str:
        user_data: Dict[str, Any] = {
            "username": email,
            "email": email,
            "enabled": True,
        }
        if name:
            user_data["firstName"] = name
        if password:
            user_data["credentials"] = [{"type": "password", "value": password, "temporary": False}]

        response = await self._admin_request("POST", "/users", json=user_data)

        if response.status_code == 409:
            raise DuplicateIdentityError(f"User already exists: {email}")

        self._raise_for_status(response, "create user")

        # Extract user ID from Location header
        location_header = response.headers.get("Location")
        if location_header:
            user_id = location_header.rstrip("/").split("/")[-1]
            logger.info(f"Created Keycloak user: {email} (ID: {user_id})")
            return user_id

        return await self._get_user_id_by_email(email)

    async def _get_user_id_by_email(self, email: str) -> str:
        response = await self._admin_request("GET", "/users", params={"email": email, "exact": "true"})
        self._raise_for_status(response, "lookup user")

        users = response.json()
        if not users:
            raise IdentityNotFoundError(f"User not found: {email}")
        return users[0]["id"]

    async def set_claims(self, subject: str, role: str, institution_id: Optional[str] = None, child_id: Optional[str] = None) -> None:
        response = await self._admin_request("GET", f"/users/{subject}")
        self._raise_for_status(response, "get user")

        # PUT replaces the whole attribute map, so merge into the current one
        attributes = response.json().get("attributes") or {}
        attributes[ROLE_CLAIM] = [role]
        for claim, value in ((INSTITUTION_CLAIM, institution_id), (CHILD_CLAIM, child_id)):
            if value is None:
                attributes.pop(claim, None)
            else:
                attributes[claim] = [value]

        response = await self._admin_request("PUT", f"/users/{subject}", json={"attributes": attributes})
        self._raise_for_status(response, "set claims")
        logger.info(f"Updated claims for {subject}: role={role} institution={institution_id}")

    async def disable_user(self, subject: str) -> None:
        response = await self._admin_request("PUT", f"/users/{subject}", json={"enabled": False})
        self._raise_for_status(response, "disable user")
        logger.info(f"Disabled Keycloak user {subject}")

    async def send_setup_email(self, subject: str) -> None:
        response = await self._admin_request(
            "PUT",
            f"/users/{subject}/execute-actions-email",
            json=["UPDATE_PASSWORD", "VERIFY_EMAIL"],
            params={"client_id": self.config.client_id}
        )
        self._raise_for_status(response, "send setup email")
