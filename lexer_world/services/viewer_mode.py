"""
viewer_mode.py — Decide between the outsider and insider view.

Real approval always wins. Failing that, operators can demo the insider
view with ``?viewer=insider`` (or ``x-lexer-viewer: insider``) provided the
preview-token check passes:

  * INSIDER_PREVIEW_TOKEN set   → the caller must supply it via
    ``x-insider-preview-token`` or ``?token=``;
  * INSIDER_PREVIEW_TOKEN unset → allowed outside production only.
"""

import secrets
from typing import Optional

from starlette.requests import Request

from lexer_world.core.config import Settings
from lexer_world.models.viewer import ViewerAuthStatus, ViewerMode
from lexer_world.services.allowlist import AllowlistResolver
from lexer_world.services.auth_status import resolve_viewer_auth_status
from lexer_world.services.identity import IdentityProviderClient

VIEWER_HEADER = "x-lexer-viewer"
PREVIEW_TOKEN_HEADER = "x-insider-preview-token"


def requests_insider_preview(request: Request) -> bool:
    requested = request.headers.get(VIEWER_HEADER)
    if requested is None:
        requested = request.query_params.get("viewer")
    return (requested or "").strip().lower() == ViewerMode.INSIDER.value


def preview_token_allows_insider(request: Request, cfg: Settings) -> bool:
    expected = cfg.insider_preview_token.strip()
    if not expected:
        return not cfg.is_production

    supplied = request.headers.get(PREVIEW_TOKEN_HEADER)
    if supplied is None:
        supplied = request.query_params.get("token")
    if not supplied:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


async def resolve_viewer_mode(
    request: Request,
    cfg: Settings,
    auth_status: Optional[ViewerAuthStatus] = None,
    *,
    identity: Optional[IdentityProviderClient] = None,
    allowlist: Optional[AllowlistResolver] = None,
) -> ViewerMode:
    """
    Resolve the viewer mode for *request*.

    *identity* and *allowlist* are only needed when *auth_status* is omitted.
    """
    if auth_status is None:
        if identity is None or allowlist is None:
            raise ValueError("identity and allowlist are required when auth_status is omitted")
        auth_status = await resolve_viewer_auth_status(request, identity, allowlist)

    if auth_status.is_authenticated and auth_status.is_approved:
        return ViewerMode.INSIDER

    if requests_insider_preview(request) and preview_token_allows_insider(request, cfg):
        return ViewerMode.INSIDER

    return ViewerMode.OUTSIDER
