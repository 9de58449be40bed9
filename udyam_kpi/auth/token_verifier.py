# udyam_kpi/auth/token_verifier.py
import asyncio
import logging
import re
import time
from typing import Any, Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from pydantic import BaseModel, Field

from udyam_kpi.core.config import FIREBASE_CERTS_URL
from udyam_kpi.core.exceptions import UnauthenticatedError, UpstreamError
from udyam_kpi.models.enums import DEFAULT_ROLE, UserRole

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "RS256"
MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")
# Unknown key ids may force a refetch, but not more often than this
MIN_REFRESH_INTERVAL_SECONDS = 60


class TokenClaims(BaseModel):
    """Decoded claims of a verified identity token"""
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = DEFAULT_ROLE.value
    claims: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class TokenVerifier:
    """
    Verifies Firebase ID tokens against Google's published signing certificates.

    The certificates are cached for the process lifetime, or until the
    Cache-Control max-age of the certificate endpoint runs out when it sends one.
    """

    def __init__(
        self,
        project_id: str,
        certs_url: str = FIREBASE_CERTS_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.project_id = project_id
        self.issuer = f"https://securetoken.google.com/{project_id}"
        self.certs_url = certs_url
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self._public_keys: Optional[Dict[str, str]] = None
        self._expires_at: Optional[float] = None
        self._fetched_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def aclose(self):
        if self._owns_client:
            await self._http_client.aclose()

    def _cache_is_fresh(self) -> bool:
        if self._public_keys is None:
            return False
        return self._expires_at is None or time.monotonic() < self._expires_at

    async def get_public_keys(self, force_refresh: bool = False) -> Dict[str, str]:
        """Return the kid -> PEM certificate map, fetching it when needed"""
        if not force_refresh and self._cache_is_fresh():
            return self._public_keys

        async with self._lock:
            if not force_refresh and self._cache_is_fresh():
                return self._public_keys
            if (
                force_refresh
                and self._fetched_at is not None
                and time.monotonic() - self._fetched_at < MIN_REFRESH_INTERVAL_SECONDS
            ):
                return self._public_keys

            try:
                response = await self._http_client.get(self.certs_url)
                response.raise_for_status()
                keys = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Error fetching Firebase public keys: {e}")
                raise UpstreamError(f"Failed to fetch Firebase public keys: {e}")

            if not isinstance(keys, dict) or not keys:
                raise UpstreamError("Failed to fetch Firebase public keys: unexpected response")

            now = time.monotonic()
            self._public_keys = keys
            self._fetched_at = now
            match = MAX_AGE_PATTERN.search(response.headers.get("cache-control", ""))
            self._expires_at = now + int(match.group(1)) if match else None
            logger.info(f"Fetched {len(keys)} Firebase public keys")
            return self._public_keys

    async def verify(self, id_token: str) -> TokenClaims:
        """Verify signature, expiry, audience and issuer; return the decoded claims"""
        if not id_token:
            raise UnauthenticatedError()

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as e:
            raise UnauthenticatedError(f"Invalid or expired authentication token: {e}")

        if header.get("alg") != TOKEN_ALGORITHM:
            raise UnauthenticatedError("Invalid or expired authentication token: unexpected signing algorithm")

        kid = header.get("kid")
        if not kid:
            raise UnauthenticatedError("Invalid or expired authentication token: missing key id")

        public_keys = await self.get_public_keys()
        certificate = public_keys.get(kid)
        if certificate is None:
            public_keys = await self.get_public_keys(force_refresh=True)
            certificate = public_keys.get(kid)
        if certificate is None:
            logger.warning(f"JWK not found for kid: {kid}")
            raise UnauthenticatedError("Invalid or expired authentication token: Firebase public key not found for token.")

        try:
            payload = jwt.decode(
                id_token,
                certificate,
                algorithms=[TOKEN_ALGORITHM],
                audience=self.project_id,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise UnauthenticatedError("Invalid or expired authentication token: token has expired")
        except JWTClaimsError as e:
            raise UnauthenticatedError(f"Invalid or expired authentication token: {e}")
        except JWTError as e:
            raise UnauthenticatedError(f"Invalid or expired authentication token: {e}")

        uid = payload.get("sub")
        if not isinstance(uid, str) or not uid:
            raise UnauthenticatedError("Invalid or expired authentication token: missing subject")

        claims = TokenClaims(
            uid=uid,
            email=payload.get("email"),
            name=payload.get("name"),
            role=payload.get("role") or DEFAULT_ROLE.value,
            claims=payload,
        )
        logger.debug(f"Token verified for user: {claims.email} (UID: {claims.uid}) with role: {claims.role}")
        return claims
