"""
security.py — Bearer token helpers.

Uses python-jose to read the claims of an incoming access token *without*
verifying its signature. That is only ever used to reject tokens early
(malformed, or already expired) so we skip a pointless round-trip to the
identity provider. It never grants anything: a token that passes the
pre-check still has to be accepted by the identity provider.
"""

import time
from typing import Optional

from jose import JWTError, jwt
from starlette.requests import Request

BEARER_PREFIX = "Bearer "


def get_bearer_token(request: Request) -> Optional[str]:
    """Return the token from ``Authorization: Bearer <token>``, or None."""
    header = request.headers.get("authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def precheck_access_token(token: str, now: Optional[float] = None) -> bool:
    """
    Cheap local sanity check on an access token.

    Returns False if *token* cannot be decoded as a JWT or its ``exp``
    claim lies in the past. Tokens without an ``exp`` claim pass; the
    identity provider decides.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False

    exp = claims.get("exp")
    if exp is None:
        return True
    try:
        expires_at = float(exp)
    except (TypeError, ValueError):
        return False

    current = time.time() if now is None else now
    return expires_at > current
