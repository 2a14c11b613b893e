"""
Unit tests for token and password helpers.
"""
import json

from service_orders_api.app.core.config import settings
from service_orders_api.app.core.security import (
    _b64_url_decode,
    _b64_url_encode,
    _sign,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_token_round_trip():
    token = create_access_token({"sub": "user@example.com"})

    payload = decode_access_token(token)

    assert payload["sub"] == "user@example.com"
    assert "exp" in payload


def test_tampered_token_is_rejected():
    header, payload, signature = create_access_token({"sub": "user@example.com"}).split(".")
    other_payload = create_access_token({"sub": "admin@example.com"}).split(".")[1]

    assert decode_access_token(f"{header}.{other_payload}.{signature}") is None


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "user@example.com"}, expires_delta=-10)

    assert decode_access_token(token) is None


def test_malformed_token_is_rejected():
    assert decode_access_token("garbage") is None
    assert decode_access_token("a.b.c") is None


def test_token_header_names_hs256():
    header = create_access_token({"sub": "user@example.com"}).split(".")[0]

    assert json.loads(_b64_url_decode(header)) == {"alg": "HS256", "typ": "JWT"}


def test_token_with_another_algorithm_is_rejected():
    _, payload, _ = create_access_token({"sub": "user@example.com"}).split(".")
    header = _b64_url_encode(b'{"alg":"HS512","typ":"JWT"}')
    signature = _b64_url_encode(_sign(f"{header}.{payload}".encode("utf-8"), settings.secret_key))

    assert decode_access_token(f"{header}.{payload}.{signature}") is None


def test_password_hashing():
    hashed = hash_password("secret")

    assert hashed != hash_password("secret")
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret", "not-a-hash")
