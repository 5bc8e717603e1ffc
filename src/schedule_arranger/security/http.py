from functools import cached_property
from pydantic import BaseModel
from fastapi.exceptions import HTTPException
from fastapi.security import OpenIdConnect
from fastapi import Depends, Request, status
from typing import Annotated, Any
import jwt
import httpx
import logging

from schedule_arranger.config import Settings
from schedule_arranger.dependencies import get_db, get_oidc_provider
from schedule_arranger.persistence.database import PersistentDatabase, upsert_user
from schedule_arranger.persistence.types import Identity, UserId

logger = logging.getLogger(__name__)

# pyright: reportAny=none


class TokenError(HTTPException):
    def __init__(self, detail: str, code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(
            status_code=code, detail=detail, headers={"WWW-Authenticate": "Bearer"}
        )


class TokenClaims(BaseModel):
    # ---- JWT standard claims ----
    iss: str  # Issuer Identifier (MUST match your IdP's issuer URL)
    sub: str  # Subject Identifier (unique user ID)
    exp: int  # Expiration time (epoch seconds)
    iat: int  # Issued-at time (epoch seconds)

    # ---- OIDC profile claims ----
    name: str | None = None
    preferred_username: str | None = None
    email: str | None = None


def verify_jwt_token(
    token: str,
    jwks_client: jwt.PyJWKClient,
    client_id: str,
    issuer: str,
    signing_algos: list[str],
) -> TokenClaims:
    """
    Checks signature, expiry, audience and issuer. Tokens minted for other
    clients of the same provider are rejected.
    """
    try:
        signing_key = jwks_client.get_signing_key_from_jwt(token).key
        payload = jwt.decode(
            token,
            key=signing_key,
            algorithms=signing_algos,
            audience=client_id,
            issuer=issuer,
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise TokenError("Invalid authentication token") from e

    # We expect a standard JWT payload dict here
    assert isinstance(payload, dict), "Expected JWT payload to be a dictionary"

    return TokenClaims(**payload)  # pyright: ignore[reportUnknownArgumentType]


class OIDCUserInfo(BaseModel):
    """Model for OIDC provider user information"""

    sub: str
    username: str | None = None
    preferred_username: str | None = None
    name: str | None = None
    email: str | None = None


async def get_user_info_from_oidc_provider(
    token: str,
    userinfo_endpoint: str,
) -> OIDCUserInfo:
    """
    Get user information from an OIDC provider using the access token.

    Raises:
        TokenError: If the provider refuses the token
    """
    clean_token = token.removeprefix("Bearer ")

    async with httpx.AsyncClient() as client:
        response = await client.get(
            userinfo_endpoint,
            headers={"Authorization": f"Bearer {clean_token}"},
        )

    if response.status_code != 200:
        logger.warning(
            f"Failed to get user info: {response.status_code} {response.text}"
        )
        raise TokenError("Unable to fetch user information")

    return OIDCUserInfo.model_validate(response.json())


class OIDCProvider:
    """
    Endpoints and signing keys of the configured OIDC provider.

    Discovery happens on first use, so constructing the provider never
    touches the network.
    """

    SCOPE = "openid profile email"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheme = OpenIdConnect(openIdConnectUrl=settings.oidc_config_url)

    @cached_property
    def configuration(self) -> dict[str, Any]:
        logger.info(f"Fetching OIDC configuration from {self.settings.oidc_config_url}")
        return httpx.get(self.settings.oidc_config_url).raise_for_status().json()

    @cached_property
    def jwks_client(self) -> jwt.PyJWKClient:
        return jwt.PyJWKClient(self.configuration["jwks_uri"])

    @property
    def signing_algos(self) -> list[str]:
        return self.configuration.get(
            "id_token_signing_alg_values_supported", ["RS256"]
        )

    @property
    def issuer(self) -> str:
        return self.configuration.get("issuer", self.settings.oidc_issuer)

    @property
    def authorization_endpoint(self) -> str:
        return self.configuration["authorization_endpoint"]

    @property
    def userinfo_endpoint(self) -> str:
        userinfo_endpoint = self.configuration.get("userinfo_endpoint")
        # userinfo_endpoint must be present for a valid OIDC configuration
        assert userinfo_endpoint, "Userinfo endpoint not found in OIDC configuration"
        return userinfo_endpoint

    def authorization_url(self, state: str) -> str:
        return str(
            httpx.URL(
                self.authorization_endpoint,
                params={
                    "response_type": "code",
                    "client_id": self.settings.oidc_client_id,
                    "redirect_uri": self.settings.frontend_redirect_uri,
                    "scope": self.SCOPE,
                    "state": state,
                },
            )
        )


async def get_current_user(
    request: Request,
    db: Annotated[PersistentDatabase, Depends(get_db)],
    provider: Annotated[OIDCProvider, Depends(get_oidc_provider)],
) -> Identity:
    """
    Resolves the bearer token of the request into an Identity and refreshes
    the stored user.
    """
    token = await provider.scheme(request)
    if token is None:
        raise TokenError("Not authenticated")

    clean_token = token.removeprefix("Bearer ")
    claims = verify_jwt_token(
        clean_token,
        provider.jwks_client,
        provider.settings.oidc_client_id,
        provider.issuer,
        provider.signing_algos,
    )

    username = claims.preferred_username or claims.name
    if not username:
        user_info = await get_user_info_from_oidc_provider(
            clean_token, provider.userinfo_endpoint
        )
        username = (
            user_info.preferred_username or user_info.username or user_info.name
        )

    user = upsert_user(db, UserId(claims.sub), username or claims.sub)
    return Identity(user_id=user.user_id, username=user.username)
