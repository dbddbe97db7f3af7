"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication.

Flow:
  1. The route guard middleware decodes the session token (Authorization
     bearer header or session cookie) and leaves the claims on request.state.
     Routes it skips (/api/auth/*) decode the token here instead.
  2. get_session_claims returns the verified claims (no DB round-trip).
  3. get_current_account loads the Account named by 'sub', rejecting
     deleted or suspended accounts.

Tenant access is never taken from the token's membership snapshot: services
re-check membership against the database for every tenant-scoped operation.
"""

from typing import Annotated, Any, Dict

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.errors import Forbidden, Unauthorized
from lawfirm.core.logging import get_logger
from lawfirm.core.security import decode_session_token
from lawfirm.db.session import get_db
from lawfirm.middleware.route_guard import extract_session_token
from lawfirm.models.account import Account, AccountStatus

logger = get_logger(__name__)


def get_session_token(request: Request) -> str:
    token = extract_session_token(request)
    if not token:
        raise Unauthorized()
    return token


def get_session_claims(
    request: Request,
    token: Annotated[str, Depends(get_session_token)],
) -> Dict[str, Any]:
    claims = getattr(request.state, "session_claims", None)
    if claims is None:
        claims = decode_session_token(token)
    return claims


async def get_current_account(
    claims: Annotated[Dict[str, Any], Depends(get_session_claims)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Account:
    result = await db.execute(
        select(Account)
        .where(Account.id == claims.get("sub"))
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()

    if account is None:
        logger.warning("Account from valid session not found", account_id=claims.get("sub"))
        raise Unauthorized()
    if account.status == AccountStatus.SUSPENDED.value:
        raise Forbidden("Account suspended")
    return account

