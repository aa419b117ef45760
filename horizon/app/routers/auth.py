"""
# `app/routers/auth.py` - Registration, login and session endpoints

## Endpoints
| Method | Path             | Body                                        | Result |
|--------|------------------|---------------------------------------------|--------|
| POST   | `/auth/register` | form: full_name, phone, password, confirm_password | `RegisterResponse` (201) |
| POST   | `/auth/login`    | form: credential (phone or e-mail), password | `LoginResponse` |
| POST   | `/auth/admin/login` | form: email, password                   | `LoginResponse`; 403 for non-admins |
| POST   | `/auth/refresh`  | JSON: `{refresh_token}`                     | `LoginResponse` |
| POST   | `/auth/logout`   | Bearer token                                | `SessionOut` (anonymous) |
| GET    | `/auth/session`  | Bearer token (optional)                     | `SessionOut` |

Phone-registered members never see an e-mail: the phone digits become
`<digits>@<phone_email_domain>` for both registration and login.
Failed form checks return 422 with a `fields` map before Firebase is called.
"""
import logging

from fastapi import APIRouter, Depends, Form, HTTPException, status

from horizon.app.config import settings
from horizon.app.core.errors import NOT_ADMIN, AuthError
from horizon.app.core.gate import LOGIN_PATH, home_path
from horizon.app.core.security import get_data_service, get_session_context
from horizon.app.core.session import SessionContext, resolve_session
from horizon.app.core.validation import (
    phone_to_email,
    require_valid,
    validate_credential,
    validate_password,
    validate_password_confirmation,
    validate_phone,
    validate_required,
)
from horizon.app.integrations.remote import PROFILES, RemoteDataService
from horizon.app.schemas.member import (
    LoginResponse,
    MemberProfile,
    RefreshRequest,
    RegisterResponse,
    SessionOut,
)
from horizon.app.schemas.principal import ResolvedSession, Session

logger = logging.getLogger("horizon.auth")

router = APIRouter(prefix="/auth", tags=["Auth"])


def _session_out(resolved: ResolvedSession) -> SessionOut:
    principal = resolved.principal
    return SessionOut(
        state=resolved.state,
        user_id=principal.uid if principal else None,
        email=principal.email if principal else None,
        is_admin=resolved.is_admin,
        redirect_to=home_path(resolved.is_admin) if principal else LOGIN_PATH,
    )


def _login_response(session: Session, resolved: ResolvedSession) -> LoginResponse:
    return LoginResponse(
        id_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user_id=session.principal.uid,
        is_admin=resolved.is_admin,
        redirect_to=home_path(resolved.is_admin),
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a member with a phone number",
)
async def register(
    full_name: str = Form(..., description="Full name"),
    phone: str = Form(..., description="Phone number, e.g. 0712345678"),
    password: str = Form(..., description="Password (min 6 characters)"),
    confirm_password: str = Form(..., description="Password confirmation"),
    service: RemoteDataService = Depends(get_data_service),
):
    values = require_valid({
        "full_name": validate_required(full_name, "full name"),
        "phone": validate_phone(phone),
        "password": validate_password(password),
        "confirm_password": validate_password_confirmation(password, confirm_password),
    })
    email = phone_to_email(values["phone"], settings.phone_email_domain)
    user_id = await service.sign_up(
        email, values["password"], {"full_name": values["full_name"], "phone_number": values["phone"]}
    )
    logger.info("Registered member %s", user_id)

    profile = await service.maybe_single(PROFILES, {"user_id": user_id}) or {"user_id": user_id}
    return RegisterResponse(user_id=user_id, email=email, profile=MemberProfile(**profile))


@router.post("/login", response_model=LoginResponse, summary="Sign in with phone number or e-mail")
async def login(
    credential: str = Form(..., description="Phone number or e-mail"),
    password: str = Form(..., description="Password (min 6 characters)"),
    service: RemoteDataService = Depends(get_data_service),
):
    values = require_valid({
        "credential": validate_credential(credential, settings.phone_email_domain),
        "password": validate_password(password),
    })

    # Follow the sign-in through the session stream, as a client would
    ctx = SessionContext(service, timeout=settings.session_timeout_seconds)
    await ctx.init()
    try:
        session = await service.sign_in_with_password(values["credential"], values["password"])
        resolved = await ctx.settle()
    finally:
        ctx.teardown()
    return _login_response(session, resolved)


@router.post("/admin/login", response_model=LoginResponse, summary="Admin sign-in")
async def admin_login(
    email: str = Form(..., description="Admin e-mail"),
    password: str = Form(..., description="Password"),
    service: RemoteDataService = Depends(get_data_service),
):
    """Sign in, then sign straight back out unless the principal holds the admin role."""
    values = require_valid({
        "email": validate_credential(email, settings.phone_email_domain),
        "password": validate_password(password),
    })

    ctx = SessionContext(service, timeout=settings.session_timeout_seconds)
    await ctx.init()
    try:
        session = await service.sign_in_with_password(values["email"], values["password"])
        resolved = await ctx.settle()
        if not resolved.is_admin:
            await service.sign_out()
            logger.warning("Admin sign-in refused for %s", session.principal.uid)
            raise AuthError("You do not have admin privileges", NOT_ADMIN)
    finally:
        ctx.teardown()
    return _login_response(session, resolved)


@router.post("/refresh", response_model=LoginResponse, summary="Exchange a refresh token")
async def refresh(body: RefreshRequest, service: RemoteDataService = Depends(get_data_service)):
    session = await service.refresh_session(body.refresh_token)
    resolved = await resolve_session(service, session)
    return _login_response(session, resolved)


@router.post("/logout", response_model=SessionOut, summary="Sign out and revoke refresh tokens")
async def logout(ctx: SessionContext = Depends(get_session_context)):
    if ctx.current.principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    await ctx.service.sign_out()
    return _session_out(ctx.current)


@router.get("/session", response_model=SessionOut, summary="Resolved session and landing path")
async def current_session(ctx: SessionContext = Depends(get_session_context)):
    return _session_out(ctx.current)
