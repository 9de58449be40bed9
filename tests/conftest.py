import time
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from httpx import ASGITransport, AsyncClient
from jose import jwt

from udyam_kpi.auth.token_verifier import TokenVerifier
from udyam_kpi.core.config import Settings
from udyam_kpi.core.context import AppContext
from udyam_kpi.core.database import Collections
from udyam_kpi.db.init_db import init_db
from udyam_kpi.main import create_app
from tests.fakes import FakeIdentityProvider, InMemoryDatabase

PROJECT_ID = "udyam-test"
KEY_ID = "test-key-1"
CERTS_URL = "https://certs.test/securetoken"

ADMIN_UID = "ADMIN1"
AGENT_UID = "U1"
OTHER_AGENT_UID = "U2"


def _generate_signing_material():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    certificate_pem = certificate.public_bytes(serialization.Encoding.PEM).decode("utf-8")
    return private_pem, certificate_pem


class TokenFactory:
    """Signs Firebase-shaped ID tokens with a test key"""

    def __init__(self, private_pem: str, certificate_pem: str):
        self.private_pem = private_pem
        self.certificate_pem = certificate_pem

    def make(
        self,
        uid: str,
        role: Optional[str] = None,
        email: Optional[str] = None,
        expires_in: int = 3600,
        audience: str = PROJECT_ID,
        issuer: Optional[str] = None,
        kid: str = KEY_ID,
    ) -> str:
        now = int(time.time())
        claims = {
            "iss": issuer or f"https://securetoken.google.com/{PROJECT_ID}",
            "aud": audience,
            "sub": uid,
            "user_id": uid,
            "iat": now - 10,
            "auth_time": now - 10,
            "exp": now + expires_in,
            "email": email or f"{uid.lower()}@udyam.test",
        }
        if role:
            claims["role"] = role
        return jwt.encode(claims, self.private_pem, algorithm="RS256", headers={"kid": kid})


class CertificateEndpoint:
    """Mock of the x509 certificate endpoint; counts fetches"""

    def __init__(self, keys: dict, cache_control: str = "public, max-age=3600"):
        self.keys = keys
        self.cache_control = cache_control
        self.status_code = 200
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        return httpx.Response(200, json=dict(self.keys), headers={"Cache-Control": self.cache_control})


@pytest.fixture(scope="session")
def signing_material():
    return _generate_signing_material()


@pytest.fixture(scope="session")
def tokens(signing_material) -> TokenFactory:
    return TokenFactory(*signing_material)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        FIREBASE_PROJECT_ID=PROJECT_ID,
        FIREBASE_CERTS_URL=CERTS_URL,
        MONGODB_URL="mongodb://localhost:27017",
        ENVIRONMENT="test",
        LOG_DIR=str(tmp_path / "logs"),
    )


@pytest.fixture
def cert_endpoint(tokens: TokenFactory) -> CertificateEndpoint:
    return CertificateEndpoint({KEY_ID: tokens.certificate_pem})


@pytest.fixture
async def verifier(cert_endpoint: CertificateEndpoint) -> AsyncGenerator[TokenVerifier, None]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(cert_endpoint))
    verifier = TokenVerifier(project_id=PROJECT_ID, certs_url=CERTS_URL, http_client=http_client)
    yield verifier
    await http_client.aclose()


@pytest.fixture
def identity() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add_user(ADMIN_UID, email="admin@udyam.test", display_name="Admin", role="admin")
    provider.add_user(AGENT_UID, email="u1@udyam.test", display_name="Agent One")
    provider.add_user(OTHER_AGENT_UID, email="u2@udyam.test", display_name="Agent Two")
    return provider


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
async def context(settings, database, identity, verifier) -> AppContext:
    collections = Collections(database, settings)
    await init_db(collections, seed=True)
    return AppContext(
        settings=settings,
        collections=collections,
        identity=identity,
        verifier=verifier,
    )


@pytest.fixture
async def client(context: AppContext) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    app = create_app(context=context)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers(tokens: TokenFactory) -> dict:
    return {"Authorization": f"Bearer {tokens.make(ADMIN_UID, role='admin')}"}


@pytest.fixture
def agent_headers(tokens: TokenFactory) -> dict:
    return {"Authorization": f"Bearer {tokens.make(AGENT_UID)}"}


@pytest.fixture
def other_agent_headers(tokens: TokenFactory) -> dict:
    return {"Authorization": f"Bearer {tokens.make(OTHER_AGENT_UID)}"}
