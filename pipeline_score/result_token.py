"""Stateless signed result tokens.

A token is ``header.payload.mac``, each segment unpadded URL-safe base64:

- header:  ``{"alg": "HS256", "typ": "JWT"}``
- payload: the ResultSummary (camelCase) plus a schema version ``v``
- mac:     HMAC-SHA256 over ``header.payload`` with the server secret

Nothing is stored server-side. Rotating the secret invalidates every token.
"""

import base64
import binascii
import hashlib
import hmac
import json
import math

from .config import get_settings, resolve_signing_secret
from .models import ResultSummary

TOKEN_VERSION = 1

_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _mac(secret: str, data: str) -> str:
    digest = hmac.new(secret.encode(), data.encode("ascii"), hashlib.sha256).digest()
    return _b64url(digest)


def _secret(secret: str | None) -> str:
    return secret if secret is not None else resolve_signing_secret(get_settings())


def sign(summary: ResultSummary, secret: str | None = None) -> str:
    payload = {**summary.to_dict(), "v": TOKEN_VERSION}
    h = _b64url(json.dumps(_HEADER, separators=(",", ":")).encode())
    p = _b64url(json.dumps(payload, separators=(",", ":")).encode())
    data = f"{h}.{p}"
    return f"{data}.{_mac(_secret(secret), data)}"


def verify(token: str, secret: str | None = None) -> ResultSummary | None:
    """
    Recover the summary from a token, or None if it is malformed or tampered.

    Never raises for bad input; every failure looks the same to the caller.
    """
    if not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        return None
    h, p, s = parts
    try:
        expected = _mac(_secret(secret), f"{h}.{p}")
    except UnicodeEncodeError:
        return None
    if not hmac.compare_digest(expected.encode("ascii"), s.encode("utf-8")):
        return None

    try:
        payload = json.loads(_b64url_decode(p))
    except (binascii.Error, ValueError, UnicodeError):
        return None

    if not isinstance(payload, dict):
        return None
    score = payload.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    if not isinstance(payload.get("topMoves"), list):
        return None

    payload.pop("v", None)
    return ResultSummary.from_dict(payload)


def score_to_bucket(score: float) -> str:
    """
    Coarse decile for analytics, e.g. 87 -> '80-89', 100 -> '100-100'.

    >>> score_to_bucket(87)
    '80-89'
    """
    floor = max(0, min(100, math.floor(score / 10) * 10))
    ceil = min(100, floor + 9)
    return f"{floor}-{ceil}"
