import time

import pytest
from jose import jwt

from udyam_kpi.core.exceptions import UnauthenticatedError, UpstreamError
from tests.conftest import KEY_ID, PROJECT_ID


@pytest.mark.asyncio
class TestTokenVerifier:
    """Firebase ID token verification against mocked signing certificates"""

    async def test_valid_token(self, verifier, tokens):
        claims = await verifier.verify(tokens.make("U1", role="admin", email="u1@udyam.test"))
        assert claims.uid == "U1"
        assert claims.email == "u1@udyam.test"
        assert claims.role == "admin"
        assert claims.is_admin
        assert claims.claims["aud"] == PROJECT_ID

    async def test_missing_role_defaults_to_agent(self, verifier, tokens):
        claims = await verifier.verify(tokens.make("U1"))
        assert claims.role == "udyamMitra"
        assert not claims.is_admin

    async def test_expired_token(self, verifier, tokens):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await verifier.verify(tokens.make("U1", expires_in=-60))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail.startswith("Invalid or expired authentication token")

    async def test_wrong_audience(self, verifier, tokens):
        with pytest.raises(UnauthenticatedError):
            await verifier.verify(tokens.make("U1", audience="another-project"))

    async def test_wrong_issuer(self, verifier, tokens):
        with pytest.raises(UnauthenticatedError):
            await verifier.verify(tokens.make("U1", issuer="https://securetoken.google.com/another-project"))

    async def test_malformed_token(self, verifier):
        with pytest.raises(UnauthenticatedError):
            await verifier.verify("not-a-jwt")

    async def test_empty_token(self, verifier):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await verifier.verify("")
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_symmetric_algorithm_rejected(self, verifier):
        token = jwt.encode({"sub": "U1", "aud": PROJECT_ID}, "secret", algorithm="HS256", headers={"kid": KEY_ID})
        with pytest.raises(UnauthenticatedError):
            await verifier.verify(token)

    async def test_unknown_key_id(self, verifier, tokens, cert_endpoint):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await verifier.verify(tokens.make("U1", kid="rotated-away"))
        assert "public key not found" in exc_info.value.detail
        # The forced refetch is rate limited right after the first fetch
        assert cert_endpoint.calls == 1

    async def test_keys_cached_between_verifications(self, verifier, tokens, cert_endpoint):
        await verifier.verify(tokens.make("U1"))
        await verifier.verify(tokens.make("U2"))
        assert cert_endpoint.calls == 1

    async def test_keys_refetched_after_max_age(self, verifier, tokens, cert_endpoint):
        cert_endpoint.cache_control = "public, max-age=0"
        await verifier.verify(tokens.make("U1"))
        await verifier.verify(tokens.make("U1"))
        assert cert_endpoint.calls == 2

    async def test_rotated_key_triggers_refetch(self, verifier, tokens, cert_endpoint):
        await verifier.get_public_keys()
        cert_endpoint.keys["rotated-in"] = tokens.certificate_pem
        # Pretend the last fetch is older than the refresh interval
        verifier._fetched_at = time.monotonic() - 120

        claims = await verifier.verify(tokens.make("U1", kid="rotated-in"))
        assert claims.uid == "U1"
        assert cert_endpoint.calls == 2

    async def test_certificate_endpoint_failure(self, verifier, tokens, cert_endpoint):
        cert_endpoint.status_code = 500
        with pytest.raises(UpstreamError) as exc_info:
            await verifier.verify(tokens.make("U1"))
        assert exc_info.value.status_code == 500
        assert "Failed to fetch Firebase public keys" in exc_info.value.detail
