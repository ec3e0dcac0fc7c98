"""Access-token verification for platform sessions.

Access tokens are HS256 JWTs signed with the platform's JWT secret; the
`sub` claim carries the stable user id.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from medpost.interfaces import SessionProvider
from medpost.models.identity import Session

logger = logging.getLogger(__name__)

_SUPPORTED_ALG = "HS256"


class SessionTokenErrorCode(StrEnum):
    MALFORMED = "MALFORMED"
    UNSUPPORTED_ALG = "UNSUPPORTED_ALG"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    AUDIENCE_MISMATCH = "AUDIENCE_MISMATCH"
    EXPIRED = "EXPIRED"


class SessionTokenError(ValueError):
    """Raised when access token validation fails."""

    def __init__(self, code: SessionTokenErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code


def decode_access_token(
    token: str,
    *,
    secret: str,
    audience: str | None = None,
    leeway_s: int = 0,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Verify an HS256 access token and return its claims."""
    parts = token.split(".")
    if len(parts) != 3:
        raise SessionTokenError(SessionTokenErrorCode.MALFORMED, "Token format is invalid")
    header_segment, payload_segment, signature_segment = parts

    header = _decode_segment(header_segment)
    if header.get("alg") != _SUPPORTED_ALG:
        raise SessionTokenError(
            SessionTokenErrorCode.UNSUPPORTED_ALG,
            f"Token algorithm is not supported: {header.get('alg')}",
        )

    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    expected = _base64url_encode(_sign(secret, signing_input))
    if not hmac.compare_digest(signature_segment, expected):
        raise SessionTokenError(
            SessionTokenErrorCode.INVALID_SIGNATURE,
            "Token signature is invalid",
        )

    claims = _decode_segment(payload_segment)
    if not isinstance(claims.get("sub"), str) or not claims["sub"]:
        raise SessionTokenError(SessionTokenErrorCode.MALFORMED, "Token subject is missing")

    if audience is not None:
        aud = claims.get("aud")
        audiences = aud if isinstance(aud, list) else [aud]
        if audience not in audiences:
            raise SessionTokenError(
                SessionTokenErrorCode.AUDIENCE_MISMATCH,
                "Token audience is invalid",
            )

    exp = claims.get("exp")
    if exp is not None:
        if not isinstance(exp, int):
            raise SessionTokenError(SessionTokenErrorCode.MALFORMED, "Token expiry is malformed")
        now_ts = int((now or datetime.now(UTC)).timestamp())
        if exp + leeway_s <= now_ts:
            raise SessionTokenError(SessionTokenErrorCode.EXPIRED, "Token has expired")
    return claims


def issue_access_token(claims: dict[str, Any], *, secret: str) -> str:
    """Sign claims as an HS256 access token (development and tests)."""
    header = {"alg": _SUPPORTED_ALG, "typ": "JWT"}
    header_segment = _base64url_encode(_compact_json(header))
    payload_segment = _base64url_encode(_compact_json(claims))
    signing_input = f"{header_segment}.{payload_segment}".encode("ascii")
    signature = _base64url_encode(_sign(secret, signing_input))
    return f"{header_segment}.{payload_segment}.{signature}"


class JWTSessionProvider(SessionProvider):
    """Session provider that trusts tokens signed with the shared JWT secret."""

    def __init__(self, secret: str, *, audience: str | None = None, leeway_s: int = 0) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._audience = audience
        self._leeway_s = leeway_s

    def get_session(self, token: str | None) -> Session | None:
        if not token:
            return None
        try:
            claims = decode_access_token(
                token,
                secret=self._secret,
                audience=self._audience,
                leeway_s=self._leeway_s,
            )
        except SessionTokenError as exc:
            logger.info("Rejected access token reason=%s", exc.code.value)
            return None
        email = claims.get("email")
        return Session(user_id=claims["sub"], email=email if isinstance(email, str) else None)


def _decode_segment(segment: str) -> dict[str, Any]:
    try:
        obj = json.loads(_base64url_decode(segment).decode("utf-8"))
    except Exception as exc:
        raise SessionTokenError(
            SessionTokenErrorCode.MALFORMED,
            "Token segment is malformed",
        ) from exc
    if not isinstance(obj, dict):
        raise SessionTokenError(SessionTokenErrorCode.MALFORMED, "Token segment is malformed")
    return obj


def _compact_json(value: dict[str, Any]) -> bytes:
    return json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8")


def _sign(secret: str, message: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def _base64url_encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).rstrip(b"=").decode("ascii")


def _base64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("ascii"))
