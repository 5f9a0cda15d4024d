# ─────────────────────────────────────────────────────────────────
# auth.py — Operator Authentication
#
# One shared static token (ADMIN_TOKEN). The operator sends it as
#   X-Admin-Token: <token>
# or
#   Authorization: Bearer <token>
#
# If no token is configured, every protected route answers 401.
# ─────────────────────────────────────────────────────────────────

import hmac
import logging

from fastapi import Depends, Request

from config import Settings
from deps import client_ip, get_settings
from errors import AuthError, ForbiddenError

logger = logging.getLogger("auth")


def presented_token(request: Request) -> str:
    raw = (request.headers.get("x-admin-token") or request.headers.get("authorization") or "").strip()
    if raw.startswith("Bearer "):
        return raw[7:].strip()
    return raw


def token_matches(presented: str, expected: str) -> bool:
    if not expected or not presented:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> bool:
    if token_matches(presented_token(request), settings.admin_token):
        return True

    logger.warning(f"Rejected operator request {request.method} {request.url.path} from {client_ip(request) or '?'}")
    raise AuthError("auth_required")


def require_stats_token(request: Request, settings: Settings = Depends(get_settings)) -> bool:
    token = request.query_params.get("token", "")
    if token_matches(token, settings.stats_token):
        return True
    raise ForbiddenError("Forbidden")
