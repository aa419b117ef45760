"""
Session/role resolution.

- `bootstrap_admin` makes sure a privileged principal exists. It is safe to call
  on every startup and never raises.
- `resolve_session` classifies a raw session as anonymous, member or admin.
- `SessionContext` owns the resolved state of one client and follows the
  session-changed stream:

      INITIALIZING -> RESOLVED_ANONYMOUS | RESOLVED_MEMBER | RESOLVED_ADMIN
      SIGNED_OUT   -> RESOLVED_ANONYMOUS
      refresh / user update move between resolved states directly

  Every transition goes through `_apply`, which drops results from a superseded
  generation and results that land after `teardown`.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from horizon.app.core.errors import ALREADY_REGISTERED, AuthError, HorizonError, QueryError
from horizon.app.integrations.remote import PROFILES, USER_ROLES, RemoteDataService
from horizon.app.schemas.principal import (
    ADMIN_ROLE,
    ANONYMOUS,
    ResolvedSession,
    Session,
    SessionEventKind,
    SessionState,
)

logger = logging.getLogger("horizon.session")

DEFAULT_SESSION_TIMEOUT = 5.0


# --------------------------------------------------------------------------- #
# Bootstrap
# --------------------------------------------------------------------------- #

async def _grant_admin(service: RemoteDataService, user_id: str) -> None:
    """Insert the admin role; the storage key makes a second admin row impossible."""
    try:
        await service.insert_rows(
            USER_ROLES, [{"user_id": user_id, "role": ADMIN_ROLE}], unique_on=("role",)
        )
        logger.info("Admin role granted to %s", user_id)
    except QueryError as exc:
        if not exc.is_unique_violation:
            raise
        logger.info("Admin role already assigned; leaving it in place")


async def _claim_existing_principal(service: RemoteDataService, email: str, password: str) -> None:
    session = await service.sign_in_with_password(email, password)
    try:
        existing = await service.maybe_single(
            USER_ROLES, {"user_id": session.principal.uid, "role": ADMIN_ROLE}
        )
        if existing:
            logger.info("Admin role confirmed for %s", email)
        else:
            await _grant_admin(service, session.principal.uid)
    finally:
        # The bootstrap must not leave a lingering session behind
        await service.sign_out()


async def bootstrap_admin(service: RemoteDataService, admin_email: Optional[str], admin_password: Optional[str]) -> None:
    """Ensure an admin principal exists. Errors are logged and absorbed."""
    if not admin_email or not admin_password:
        logger.warning("Admin credentials not configured; skipping admin bootstrap")
        return

    try:
        existing = await service.maybe_single(USER_ROLES, {"role": ADMIN_ROLE})
        if existing:
            logger.info("Admin user already exists")
            return

        logger.info("Creating admin user %s", admin_email)
        try:
            user_id = await service.sign_up(admin_email, admin_password, {"full_name": "Admin"})
        except AuthError as exc:
            if exc.code != ALREADY_REGISTERED:
                raise
            logger.info("Admin email already registered; claiming it")
            await _claim_existing_principal(service, admin_email, admin_password)
            return

        await _grant_admin(service, user_id)
    except HorizonError as exc:
        logger.error("Admin bootstrap failed (%s): %s", exc.code, exc.message)
    except Exception:
        logger.exception("Admin bootstrap failed")


# --------------------------------------------------------------------------- #
# Resolution
# --------------------------------------------------------------------------- #

async def fetch_is_admin(service: RemoteDataService, user_id: str) -> bool:
    row = await service.maybe_single(USER_ROLES, {"user_id": user_id, "role": ADMIN_ROLE})
    return row is not None


async def touch_presence(service: RemoteDataService, user_id: str) -> None:
    await service.update_rows(
        PROFILES,
        {"user_id": user_id},
        {"is_online": True, "last_seen_at": datetime.now(timezone.utc)},
    )


async def resolve_session(service: RemoteDataService, raw_session: Optional[Session]) -> ResolvedSession:
    """One role lookup and one presence touch; never raises for remote failures."""
    if raw_session is None:
        return ANONYMOUS

    principal = raw_session.principal
    is_admin, touched = await asyncio.gather(
        fetch_is_admin(service, principal.uid),
        touch_presence(service, principal.uid),
        return_exceptions=True,
    )
    if isinstance(touched, BaseException):
        logger.warning("Presence update failed for %s: %s", principal.uid, touched)
    if isinstance(is_admin, BaseException):
        logger.error("Error checking admin role for %s: %s", principal.uid, is_admin)
        is_admin = False
    return ResolvedSession(principal=principal, is_admin=is_admin)


# --------------------------------------------------------------------------- #
# Context
# --------------------------------------------------------------------------- #

def _consume_late_result(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Abandoned session fetch failed: %s", task.exception())


class SessionContext:
    """Resolved session of one client, with an init/update/teardown lifecycle."""

    def __init__(self, service: RemoteDataService, timeout: float = DEFAULT_SESSION_TIMEOUT):
        self.service = service
        self.timeout = timeout
        self.state = SessionState.INITIALIZING
        self._current: ResolvedSession = ANONYMOUS
        self._generation = 0
        self._alive = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def current(self) -> ResolvedSession:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def alive(self) -> bool:
        return self._alive

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _apply(self, generation: int, resolved: ResolvedSession) -> bool:
        if not self._alive:
            logger.debug("Dropping session result after teardown")
            return False
        if generation != self._generation:
            logger.debug("Dropping superseded session result (gen %s < %s)", generation, self._generation)
            return False
        self._current = resolved
        self.state = resolved.state
        return True

    async def _fetch_current_session(self) -> Optional[Session]:
        # Abandon waiting on timeout without cancelling the request itself
        fetch = asyncio.ensure_future(self.service.get_current_session())
        fetch.add_done_callback(_consume_late_result)
        try:
            return await asyncio.wait_for(asyncio.shield(fetch), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Session retrieval timed out after %.1fs; treating as signed out", self.timeout)
            return None
        except AuthError as exc:
            logger.info("No usable session: %s", exc.message)
            return None

    async def init(self) -> ResolvedSession:
        """Subscribe to session changes, then resolve the current session."""
        self._alive = True
        self.state = SessionState.INITIALIZING
        self._unsubscribe = self.service.on_session_changed(self.update)
        generation = self._next_generation()
        raw = await self._fetch_current_session()
        resolved = await resolve_session(self.service, raw)
        self._apply(generation, resolved)
        return self._current

    def update(self, kind: SessionEventKind, session: Optional[Session]) -> None:
        """Session-changed listener; later events always win over earlier ones."""
        generation = self._next_generation()
        if kind is SessionEventKind.SIGNED_OUT or session is None:
            self._apply(generation, ANONYMOUS)
            return
        task = asyncio.get_running_loop().create_task(self._resolve_and_apply(generation, session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve_and_apply(self, generation: int, session: Session) -> None:
        resolved = await resolve_session(self.service, session)
        self._apply(generation, resolved)

    async def settle(self) -> ResolvedSession:
        """Wait for in-flight resolutions triggered by events."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        return self._current

    def teardown(self) -> None:
        self._alive = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
