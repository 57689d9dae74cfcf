"""
Authenticated identity lookup.

The identity provider (Clerk) issues session JWTs; the browser forwards them as
`Authorization: Bearer <token>`. Routes resolve the token to an `Identity` and
pass it explicitly into every operation that needs authorization.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    external_id: str
    email: str = ""
    name: str = ""


class IdentityProvider:
    """
    Verifies bearer tokens either against the provider's JWKS endpoint (RS256)
    or a shared secret (HS256).
    """

    def __init__(self, jwks_url: Optional[str] = None, secret: Optional[str] = None):
        if not jwks_url and not secret:
            logger.warning("No JWKS URL or shared secret configured, every request will be anonymous")
        self.secret = secret
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def identify(self, request) -> Optional[Identity]:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return self.identify_token(token.strip())

    def identify_token(self, token: str) -> Optional[Identity]:
        try:
            claims = self._decode(token)
        except jwt.PyJWTError as e:
            logger.info("Rejected bearer token: %s", e)
            return None

        subject = claims.get("sub")
        if not subject:
            return None
        return Identity(external_id=subject, email=claims.get("email") or "", name=claims.get("name") or "")

    def _decode(self, token):
        if self._jwks_client is not None:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(token, signing_key.key, algorithms=["RS256"], options={"verify_aud": False})
        if self.secret:
            return jwt.decode(token, self.secret, algorithms=["HS256"], options={"verify_aud": False})
        raise jwt.InvalidTokenError("no verification key configured")
