"""
auth_status.py — Resolve who is calling, for one request.

    no bearer token                     → not authenticated
    token fails local pre-check         → not authenticated (no network call)
    identity provider says no / is down → not authenticated (fail closed)
    verified, no usable handle          → authenticated, not approved
    verified, handle                    → authenticated, approved iff allowlisted

Nothing is cached between requests: approval can change at any time.
"""

import logging
from typing import Any, Optional

from starlette.requests import Request

from lexer_world.core.security import get_bearer_token, precheck_access_token
from lexer_world.models.viewer import ViewerAuthStatus
from lexer_world.services.allowlist import AllowlistResolver, normalize_twitter_username
from lexer_world.services.identity import HANDLE_METADATA_FIELDS, IdentityProviderClient

logger = logging.getLogger(__name__)

PREVIEW_APPROVAL_MESSAGE = (
    "Insider preview mode active. Manual allowlist checks are bypassed for this request."
)


def extract_twitter_username(user: dict[str, Any]) -> Optional[str]:
    """First normalisable handle found in the user's metadata, in priority order."""
    metadata = user.get("user_metadata")
    if not isinstance(metadata, dict):
        return None
    for field in HANDLE_METADATA_FIELDS:
        handle = normalize_twitter_username(metadata.get(field))
        if handle:
            return handle
    return None


async def resolve_viewer_auth_status(
    request: Request,
    identity: IdentityProviderClient,
    allowlist: AllowlistResolver,
) -> ViewerAuthStatus:
    token = get_bearer_token(request)
    if not token:
        return ViewerAuthStatus.anonymous()

    if not precheck_access_token(token):
        logger.debug("Bearer token is malformed or expired")
        return ViewerAuthStatus.anonymous()

    user = await identity.get_user(token)
    if user is None:
        return ViewerAuthStatus.anonymous()

    handle = extract_twitter_username(user)
    if handle is None:
        return ViewerAuthStatus(is_authenticated=True, is_approved=False, twitter_username=None)

    return ViewerAuthStatus(
        is_authenticated=True,
        is_approved=await allowlist.is_approved(handle),
        twitter_username=handle,
    )


def get_approval_message(auth_status: ViewerAuthStatus) -> str:
    if not auth_status.is_authenticated:
        return "Outsider access only. Sign in with X to request insider approval."

    if auth_status.is_approved:
        if auth_status.twitter_username:
            return f"Insider approved for @{auth_status.twitter_username}."
        return "Insider approved."

    if auth_status.twitter_username:
        return f"Signed in as @{auth_status.twitter_username}. Awaiting allowlist approval."

    return "Signed in, but no Twitter handle was found. Awaiting manual approval."
