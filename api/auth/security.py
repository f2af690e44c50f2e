"""
Auth security helpers.
"""

from __future__ import annotations

import secrets
import time
from typing import Any

import bcrypt
import jwt

# Any HMAC variant is accepted; asymmetric algorithms are not.
HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


class AuthSecurityError(RuntimeError):
    pass


def now_epoch_s() -> int:
    return int(time.time())


def issue_token(
    *,
    signing_key: str,
    subject: str,
    expires_in_s: int | None = None,
    algorithm: str = "HS256",
) -> str:
    if algorithm not in HMAC_ALGORITHMS:
        raise AuthSecurityError(f"Unsupported signing algorithm: {algorithm}")

    issued_at = now_epoch_s()
    payload: dict[str, Any] = {"sub": subject, "iat": issued_at}
    if expires_in_s is not None:
        payload["exp"] = issued_at + expires_in_s
    return jwt.encode(payload, signing_key, algorithm=algorithm)


def decode_token(token: str, *, signing_key: str) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Token is empty.")
    if not signing_key:
        raise AuthSecurityError("Signing key is not configured.")

    try:
        return jwt.decode(
            raw,
            signing_key,
            algorithms=HMAC_ALGORITHMS,
            options={"verify_aud": False},
        )
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid token.") from exc


def _is_bcrypt_hash(value: str) -> bool:
    return value.startswith(("$2a$", "$2b$", "$2y$"))


def verify_password(plain_password: str, configured: str) -> bool:
    """
    Check a password against the configured one.

    The configured value may be plain text or a bcrypt hash.
    """
    password = (plain_password or "").encode("utf-8")
    expected = (configured or "").encode("utf-8")
    if not password or not expected:
        return False

    if _is_bcrypt_hash(configured):
        try:
            return bcrypt.checkpw(password, expected)
        except ValueError:
            return False
    return secrets.compare_digest(password, expected)


def verify_basic_credentials(
    username: str,
    password: str,
    *,
    expected_username: str,
    expected_password: str,
) -> bool:
    if not expected_username or not expected_password:
        return False
    # Evaluate both so timing does not reveal which one failed.
    user_ok = secrets.compare_digest(
        (username or "").encode("utf-8"),
        expected_username.encode("utf-8"),
    )
    password_ok = verify_password(password, expected_password)
    return user_ok and password_ok
