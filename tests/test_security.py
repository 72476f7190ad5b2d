from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from config.settings import AuthSettings
from radar.models import utcnow
from radar.utils import security
from radar.utils.security import AuthNotConfigured, decode_access_token

JWKS_URL = "https://auth.test/.well-known/jwks.json"


class _SigningKey:
    def __init__(self, key):
        self.key = key


class _JwkClient:
    def __init__(self, public_key):
        self._public_key = public_key
        self.tokens = []

    def get_signing_key_from_jwt(self, token):
        self.tokens.append(token)
        return _SigningKey(self._public_key)


@pytest.fixture
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwk_client(monkeypatch, private_key):
    client = _JwkClient(private_key.public_key())
    monkeypatch.setattr(security, "_jwk_client", lambda url: client)
    return client


@pytest.fixture
def auth():
    return AuthSettings(jwks_url=JWKS_URL, audience="memeradar", issuer="https://auth.test/")


def _token(private_key, **overrides):
    claims = {
        "sub": "user-1",
        "aud": "memeradar",
        "iss": "https://auth.test/",
        "exp": utcnow() + timedelta(minutes=5),
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256", headers={"kid": "k1"})


def test_valid_token_returns_claims(jwk_client, private_key, auth):
    token = _token(private_key)

    claims = decode_access_token(token, auth)

    assert claims["sub"] == "user-1"
    assert jwk_client.tokens == [token]


def test_expired_token_is_rejected(jwk_client, private_key, auth):
    token = _token(private_key, exp=utcnow() - timedelta(minutes=1))

    with pytest.raises(ValueError):
        decode_access_token(token, auth)


def test_wrong_audience_is_rejected(jwk_client, private_key, auth):
    token = _token(private_key, aud="someone-else")

    with pytest.raises(ValueError):
        decode_access_token(token, auth)


def test_foreign_signature_is_rejected(jwk_client, auth):
    stranger = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    with pytest.raises(ValueError):
        decode_access_token(_token(stranger), auth)


def test_disabled_auth_raises_not_configured():
    with pytest.raises(AuthNotConfigured):
        decode_access_token("abc.def.ghi", AuthSettings())
