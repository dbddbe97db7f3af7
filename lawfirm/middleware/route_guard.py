"""
middleware/route_guard.py
-------------------------
Request-level authorization / redirection gate.

Every request (except static assets and the /api/auth routes) is classified
once, before any handler runs, by an ordered table of rules. The first rule
whose predicate matches decides the outcome; no match means forward as is.

    1. tenant subdomain          → rewrite to /landing/{slug}{path}
    2. /portal                   → pass (the portal has its own sessions)
    3. protected, no session     → redirect to /login?callbackUrl=<path>
    4. /login|/register, session → redirect to /dashboard
    5. /api with a session       → forward with x-user-id (+ x-organization-id)

The session token comes from the Authorization bearer header or the session
cookie. It is decoded, never looked up, so memberships are as of issuance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode
from uuid import uuid4

from fastapi import Request
from fastapi.responses import RedirectResponse

from lawfirm.core.config import settings
from lawfirm.core.logging import bind_request_context, clear_request_context, get_logger
from lawfirm.core.security import try_decode_session_token
from lawfirm.middleware.tenant import landing_path, resolve_landing_slug

logger = get_logger(__name__)

PROTECTED_PREFIXES = ("/dashboard", "/clients", "/cases", "/documents", "/settings", "/billing")
AUTH_ONLY_PREFIXES = ("/login", "/register")
PORTAL_PREFIX = "/portal"
API_PREFIX = "/api"
EXCLUDED_PREFIXES = ("/static", "/public", "/favicon.ico", "/api/auth")

USER_ID_HEADER = "x-user-id"
ORGANIZATION_ID_HEADER = "x-organization-id"
_IDENTITY_HEADERS = {USER_ID_HEADER.encode("latin-1"), ORGANIZATION_ID_HEADER.encode("latin-1")}


class Action(str, Enum):
    REWRITE_LANDING = "rewrite_landing"
    PASS = "pass"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DASHBOARD = "redirect_dashboard"
    FORWARD_WITH_IDENTITY = "forward_with_identity"
    FORWARD = "forward"


@dataclass(frozen=True)
class GuardContext:
    path: str
    query: Mapping[str, str]
    landing_slug: Optional[str]
    claims: Optional[Dict[str, Any]]

    @property
    def authenticated(self) -> bool:
        return self.claims is not None


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[GuardContext], bool]
    action: Action


def _under(path: str, prefixes) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


RULES = (
    Rule("tenant-landing", lambda ctx: ctx.landing_slug is not None, Action.REWRITE_LANDING),
    Rule("client-portal", lambda ctx: ctx.path.startswith(PORTAL_PREFIX), Action.PASS),
    Rule(
        "protected-anonymous",
        lambda ctx: _under(ctx.path, PROTECTED_PREFIXES) and not ctx.authenticated,
        Action.REDIRECT_LOGIN,
    ),
    Rule(
        "auth-page-signed-in",
        lambda ctx: _under(ctx.path, AUTH_ONLY_PREFIXES) and ctx.authenticated,
        Action.REDIRECT_DASHBOARD,
    ),
    Rule(
        "api-identity",
        lambda ctx: ctx.path.startswith(API_PREFIX) and ctx.authenticated,
        Action.FORWARD_WITH_IDENTITY,
    ),
)


def decide(ctx: GuardContext) -> Action:
    for rule in RULES:
        if rule.predicate(ctx):
            return rule.action
    return Action.FORWARD


def is_excluded(path: str) -> bool:
    return _under(path, EXCLUDED_PREFIXES)


def extract_session_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if auth and auth.startswith("Bearer "):
        token = auth.removeprefix("Bearer ").strip()
        if token:
            return token
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def _replace_identity_headers(request: Request, values: Dict[str, str]) -> None:
    headers = [(k, v) for k, v in request.scope["headers"] if k not in _IDENTITY_HEADERS]
    headers += [(k.encode("latin-1"), v.encode("latin-1")) for k, v in values.items()]
    request.scope["headers"] = headers


def _with_query(path: str, params: Dict[str, str]) -> str:
    return f"{path}?{urlencode(params)}" if params else path


async def route_guard_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
):
    # Identity headers are only ever set by this middleware
    _replace_identity_headers(request, {})

    path = request.url.path
    clear_request_context()
    bind_request_context(request_id=uuid4().hex[:12], path=path)

    if is_excluded(path):
        return await call_next(request)

    claims = try_decode_session_token(extract_session_token(request))
    if claims is not None:
        bind_request_context(account_id=claims.get("sub"))
    ctx = GuardContext(
        path=path,
        query=dict(request.query_params),
        landing_slug=resolve_landing_slug(request.headers.get("host", "")),
        claims=claims,
    )
    action = decide(ctx)
    request.state.session_claims = claims

    if action is Action.REWRITE_LANDING:
        rewritten = landing_path(ctx.landing_slug, path)
        request.scope["path"] = rewritten
        request.scope["raw_path"] = rewritten.encode("utf-8")
        logger.debug("Landing rewrite", slug=ctx.landing_slug, path=rewritten)
        return await call_next(request)

    if action is Action.REDIRECT_LOGIN:
        params = {**ctx.query, "callbackUrl": path}
        return RedirectResponse(_with_query("/login", params), status_code=307)

    if action is Action.REDIRECT_DASHBOARD:
        return RedirectResponse(_with_query("/dashboard", ctx.query), status_code=307)

    if action is Action.FORWARD_WITH_IDENTITY:
        identity = {USER_ID_HEADER: str(claims["sub"])}
        organization_id = ctx.query.get("organizationId")
        if organization_id:
            identity[ORGANIZATION_ID_HEADER] = organization_id
        _replace_identity_headers(request, identity)

    return await call_next(request)
