"""
# `app/core/security.py` - Request-scoped session and route guards

## Flow
- `Authorization: Bearer <Firebase ID token>` is read with `HTTPBearer(auto_error=False)`;
  a missing header is not an error, it resolves to an anonymous session.
- `get_data_service` builds one `RemoteDataService` client per request holding that token.
- `get_session_context` runs `SessionContext.init()` (bounded by
  `settings.session_timeout_seconds`) and tears the context down after the response.
- `require_member` / `require_admin` feed the resolved session into `gate.decide`.

## Status mapping
| Decision                  | HTTP | Body |
|---------------------------|------|------|
| `ALLOW`                   | -    | the endpoint runs |
| `REDIRECT_TO_LOGIN`       | 401  | `{"decision", "redirect_to": "/login"}` |
| `REDIRECT_TO_MEMBER_HOME` | 403  | `{"decision", "redirect_to": "/dashboard"}` |
| `REDIRECT_TO_ADMIN_HOME`  | 403  | `{"decision", "redirect_to": "/admin/dashboard"}` |
"""
from typing import AsyncIterator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from horizon.app.config import settings
from horizon.app.core.gate import Decision, decide, redirect_path
from horizon.app.core.session import SessionContext
from horizon.app.integrations.firebase_remote import FirebaseDataService
from horizon.app.integrations.remote import RemoteDataService
from horizon.app.schemas.principal import Principal, ResolvedSession

oauth2_scheme = HTTPBearer(auto_error=False)


def get_data_service(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
) -> RemoteDataService:
    token = credentials.credentials if credentials else None
    return FirebaseDataService.from_access_token(token)


async def get_session_context(
    service: RemoteDataService = Depends(get_data_service),
) -> AsyncIterator[SessionContext]:
    ctx = SessionContext(service, timeout=settings.session_timeout_seconds)
    await ctx.init()
    try:
        yield ctx
    finally:
        ctx.teardown()


def get_resolved_session(ctx: SessionContext = Depends(get_session_context)) -> ResolvedSession:
    return ctx.current


def enforce(resolved: ResolvedSession, route_requires_admin: bool) -> Principal:
    """Raise the HTTP form of any non-ALLOW decision."""
    decision = decide(resolved.principal, resolved.is_admin, route_requires_admin)
    if decision is Decision.ALLOW:
        return resolved.principal

    detail = {"decision": decision.value, "redirect_to": redirect_path(decision)}
    if decision is Decision.REDIRECT_TO_LOGIN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def require_member(resolved: ResolvedSession = Depends(get_resolved_session)) -> Principal:
    """Member-scoped routes; admins are sent to their own dashboard."""
    return enforce(resolved, route_requires_admin=False)


def require_admin(resolved: ResolvedSession = Depends(get_resolved_session)) -> Principal:
    return enforce(resolved, route_requires_admin=True)
