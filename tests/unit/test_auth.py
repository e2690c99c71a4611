"""Unit tests for JWT decoding and authentication utilities."""

import time
from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt
from jwt.algorithms import ECAlgorithm

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, get_signing_key

USER_ID = "550e8400-e29b-41d4-a716-446655440000"


def generate_pem_key() -> tuple[str, Any]:
    """Generate a P-256 key pair.

    Returns:
        Tuple of (private key PEM, public key object).
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return pem, private_key.public_key()


SIGNING_PEM, PUBLIC_KEY = generate_pem_key()
OTHER_PEM, _ = generate_pem_key()


def create_test_token(
    sub: str | None = USER_ID,
    email: str | None = "test@example.com",
    role: str | None = "authenticated",
    exp_offset: int = 3600,
    key: str = SIGNING_PEM,
    user_metadata: dict[str, Any] | None = None,
    aud: str | None = "authenticated",
) -> str:
    """Create an ES256 test token.

    Args:
        sub: Subject (user ID), omitted when None.
        email: User email.
        role: User role.
        exp_offset: Seconds from now for expiration (negative for expired).
        key: PEM private key used for signing.
        user_metadata: Provider metadata claim.
        aud: Audience claim, omitted when None.

    Returns:
        str: Encoded JWT token.
    """
    now = int(time.time())
    payload: dict[str, Any] = {
        "email": email,
        "role": role,
        "exp": now + exp_offset,
        "iat": now,
        "iss": "https://test.supabase.co/auth/v1",
        "user_metadata": user_metadata or {},
    }
    if sub is not None:
        payload["sub"] = sub
    if aud is not None:
        payload["aud"] = aud
    return jwt.encode(payload, key, algorithm="ES256")


@pytest.fixture(autouse=True)
def signing_key() -> Generator[None, None, None]:
    get_signing_key.cache_clear()
    with patch("src.api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.supabase_signing_key_jwk = ECAlgorithm.to_jwk(PUBLIC_KEY)
        yield
    get_signing_key.cache_clear()


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decode_jwt_with_valid_token(self) -> None:
        payload = decode_jwt(create_test_token())

        assert payload.sub == USER_ID
        assert payload.email == "test@example.com"
        assert payload.role == "authenticated"
        assert payload.aud == "authenticated"

    def test_decode_jwt_with_expired_token(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(exp_offset=-3600))

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED
        assert "expired" in exc_info.value.message.lower()

    def test_decode_jwt_with_invalid_signature(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(key=OTHER_PEM))

        assert exc_info.value.code in [AuthErrorCode.INVALID_SIGNATURE, AuthErrorCode.INVALID_TOKEN]

    def test_decode_jwt_with_malformed_token(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-valid-jwt-token")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_decode_jwt_missing_sub_claim(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(sub=None))

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN
        assert "sub" in exc_info.value.message.lower()

    def test_decode_jwt_with_wrong_audience(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(aud="service_role"))

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN
        assert exc_info.value.message == "Invalid token audience"

    def test_decode_jwt_missing_audience(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(aud=None))

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN
        assert "aud" in exc_info.value.message.lower()

    def test_unconfigured_signing_key(self) -> None:
        get_signing_key.cache_clear()
        with patch("src.api.middleware.auth.get_settings") as mock_settings:
            mock_settings.return_value.supabase_signing_key_jwk = ""
            with pytest.raises(AuthError) as exc_info:
                decode_jwt(create_test_token())

        assert exc_info.value.message == "Signing key not configured"

    def test_user_context_carries_verified_email_and_name(self) -> None:
        token = create_test_token(user_metadata={"email_verified": True, "full_name": "Ada Obi"})

        user_context = decode_jwt(token).to_user_context()

        assert str(user_context.user_id) == USER_ID
        assert user_context.email == "test@example.com"
        assert user_context.email_verified is True
        assert user_context.name == "Ada Obi"

    def test_email_unverified_by_default(self) -> None:
        user_context = decode_jwt(create_test_token(email=None, role=None)).to_user_context()

        assert user_context.email is None
        assert user_context.role is None
        assert user_context.email_verified is False
