"""HS256 JWT helpers for DocVault bearer tokens.

Tokens are minted by the identity gateway. This service only verifies them;
``create_token`` is kept for the gateway's tooling and for tests. The token
subject is the caller's user id and the issuer must be ``docvault``.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

ISSUER = "docvault"

# Seconds of clock drift tolerated between the gateway and this service.
CLOCK_SKEW_SECONDS = 30


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    exp: datetime
    issued_at: Optional[datetime] = None


def create_token(
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
    issuer: str = ISSUER,
) -> str:
    """Sign a token for *subject* (a user id).

    Raises:
        ValueError: for any algorithm other than HS256.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = int(time.time())
    claims = {"sub": subject, "iat": now, "exp": now + expires_hours * 3600, "iss": issuer}
    signing_input = _encode_json({"alg": "HS256", "typ": "JWT"}) + b"." + _encode_json(claims)
    return (signing_input + b"." + _b64encode(_sign(signing_input, secret))).decode()


def decode_token(
    token: str, secret: str, algorithm: str = "HS256", issuer: str = ISSUER
) -> Optional[TokenPayload]:
    """Verified payload of *token*, or ``None`` when anything about it is wrong.

    Rejected: unsupported algorithm, bad signature, expiry (beyond the clock
    skew), a foreign issuer, or a missing subject.
    """
    if algorithm != "HS256":
        return None
    parsed = _split(token)
    if parsed is None:
        return None
    signing_input, signature, claims_segment = parsed

    try:
        if not hmac.compare_digest(_sign(signing_input, secret), _b64decode(signature)):
            return None
        claims = json.loads(_b64decode(claims_segment))
    except (ValueError, TypeError):
        return None
    if not isinstance(claims, dict):
        return None

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or time.time() > exp + CLOCK_SKEW_SECONDS:
        return None
    if claims.get("iss") != issuer:
        return None
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        return None

    iat = claims.get("iat")
    return TokenPayload(
        sub=subject,
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else None,
    )


def _split(token: str) -> Optional[Tuple[bytes, bytes, bytes]]:
    """(signing input, signature, claims segment) of a three-part token."""
    if not isinstance(token, str):
        return None
    parts = token.encode().split(b".")
    if len(parts) != 3 or not all(parts):
        return None
    header, claims, signature = parts
    return header + b"." + claims, signature, claims


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def _encode_json(value: dict) -> bytes:
    return _b64encode(json.dumps(value, separators=(",", ":")).encode())


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))
