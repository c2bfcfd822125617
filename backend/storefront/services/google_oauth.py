"""Google ID token verification.

The token is checked against Google's ``tokeninfo`` endpoint; the response
must name our client id as audience, come from Google's issuer, be
unexpired and carry a verified email.
"""

import time

import httpx

from storefront.config.config import settings
from storefront.core.errors import Unauthenticated
from storefront.core.logging import logger
from storefront.schemas.auth import GoogleIdentity

GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


class InvalidIdentityToken(Unauthenticated):
    def __init__(self, message: str = "Invalid Google token"):
        super().__init__(message)


class GoogleIdentityVerifier:
    """Verify Google ID tokens and extract the asserted identity.

    Args:
        client_id: OAuth client id the tokens must be issued for.
        tokeninfo_url: Google's token verification endpoint.
        transport: Optional httpx transport (tests inject a mock).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        client_id: str,
        tokeninfo_url: str = settings.GOOGLE_TOKENINFO_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.tokeninfo_url = tokeninfo_url
        self.transport = transport
        self.timeout = timeout

    async def _fetch_claims(self, id_token: str) -> dict:
        try:
            async with httpx.AsyncClient(
                transport=self.transport, timeout=self.timeout, follow_redirects=False
            ) as client:
                response = await client.get(
                    self.tokeninfo_url, params={"id_token": id_token}
                )
        except httpx.HTTPError as exc:
            logger.error("Google token verification request failed: {}", exc)
            raise InvalidIdentityToken()

        if response.status_code != 200:
            logger.warning(
                "Google rejected ID token (status={})", response.status_code
            )
            raise InvalidIdentityToken()
        try:
            claims = response.json()
        except ValueError:
            logger.error("Google tokeninfo returned a non-JSON body")
            raise InvalidIdentityToken()
        if not isinstance(claims, dict):
            raise InvalidIdentityToken()
        return claims

    async def verify(self, id_token: str) -> GoogleIdentity:
        """Return the verified identity behind ``id_token``.

        Raises:
            InvalidIdentityToken: When verification fails for any reason.
        """
        if not self.client_id:
            logger.warning("Google sign-in attempted but GOOGLE_CLIENT_ID is not set")
            raise InvalidIdentityToken("Google sign-in is not configured")

        claims = await self._fetch_claims(id_token)

        if claims.get("aud") != self.client_id:
            logger.warning("Google token audience mismatch aud={}", claims.get("aud"))
            raise InvalidIdentityToken()
        if claims.get("iss") not in GOOGLE_ISSUERS:
            logger.warning("Google token issuer mismatch iss={}", claims.get("iss"))
            raise InvalidIdentityToken()
        try:
            expires = int(claims.get("exp", 0))
        except (TypeError, ValueError):
            raise InvalidIdentityToken()
        if expires <= time.time():
            raise InvalidIdentityToken("Google token has expired")

        email = (claims.get("email") or "").strip().lower()
        # tokeninfo reports booleans as strings
        if not email or str(claims.get("email_verified")).lower() != "true":
            logger.warning("Google token without a verified email")
            raise InvalidIdentityToken("Google account email is not verified")

        name = (claims.get("name") or "").strip() or email.split("@")[0]
        return GoogleIdentity(email=email, name=name)
