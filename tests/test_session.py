"""Tests for admin bootstrap, session resolution and the session context lifecycle."""

import asyncio

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, MEMBER_PASSWORD, FakeDataService

from horizon.app.core.errors import QueryError
from horizon.app.core.session import SessionContext, bootstrap_admin, resolve_session
from horizon.app.integrations.remote import PROFILES, USER_ROLES
from horizon.app.schemas.principal import ANONYMOUS, SessionEventKind, SessionState

MEMBER_EMAIL = "712345678@horizonunit.local"


def _admin_rows(store):
    return [r for r in store.rows(USER_ROLES) if r["role"] == "admin"]


# ---- bootstrap -------------------------------------------------------------

def test_bootstrap_creates_admin(store, service):
    asyncio.run(bootstrap_admin(service, ADMIN_EMAIL, ADMIN_PASSWORD))

    rows = _admin_rows(store)
    assert len(rows) == 1
    assert rows[0]["user_id"] == store.accounts[ADMIN_EMAIL]["uid"]


def test_bootstrap_is_idempotent(store, service):
    async def twice():
        await bootstrap_admin(service, ADMIN_EMAIL, ADMIN_PASSWORD)
        await bootstrap_admin(service, ADMIN_EMAIL, ADMIN_PASSWORD)

    asyncio.run(twice())

    assert len(_admin_rows(store)) == 1
    assert len(store.accounts) == 1


def test_concurrent_bootstraps_leave_one_admin(store):
    async def race():
        await asyncio.gather(
            bootstrap_admin(FakeDataService(store), ADMIN_EMAIL, ADMIN_PASSWORD),
            bootstrap_admin(FakeDataService(store), ADMIN_EMAIL, ADMIN_PASSWORD),
        )

    asyncio.run(race())

    assert len(_admin_rows(store)) == 1


def test_bootstrap_claims_existing_account(store, service):
    uid = asyncio.run(service.sign_up(ADMIN_EMAIL, ADMIN_PASSWORD))

    asyncio.run(bootstrap_admin(service, ADMIN_EMAIL, ADMIN_PASSWORD))

    assert [r["user_id"] for r in _admin_rows(store)] == [uid]
    # The temporary sign-in is not left behind
    assert store.tokens == {}


def test_bootstrap_without_credentials_is_a_no_op(store, service):
    asyncio.run(bootstrap_admin(service, None, None))

    assert store.ops == []
    assert store.accounts == {}


def test_bootstrap_absorbs_remote_failures(store, service):
    store.fail_on[("query", USER_ROLES)] = QueryError("network down")

    asyncio.run(bootstrap_admin(service, ADMIN_EMAIL, ADMIN_PASSWORD))

    assert _admin_rows(store) == []


# ---- resolution --------------------------------------------------------------

def test_resolve_none_is_anonymous_without_remote_calls(store, service):
    assert asyncio.run(resolve_session(service, None)) == ANONYMOUS
    assert store.ops == []


def test_resolve_member_touches_presence(store, member_id):
    svc = FakeDataService(store)
    session = asyncio.run(svc.sign_in_with_password(MEMBER_EMAIL, MEMBER_PASSWORD))

    resolved = asyncio.run(resolve_session(svc, session))

    assert resolved.state is SessionState.RESOLVED_MEMBER
    profile = store.rows(PROFILES)[0]
    assert profile["is_online"] is True
    assert profile["last_seen_at"] is not None


def test_resolve_admin(store, admin_id):
    svc = FakeDataService(store)
    session = asyncio.run(svc.sign_in_with_password(ADMIN_EMAIL, ADMIN_PASSWORD))

    resolved = asyncio.run(resolve_session(svc, session))

    assert resolved.is_admin
    assert resolved.role == "admin"


def test_role_lookup_failure_falls_back_to_member(store, admin_id):
    svc = FakeDataService(store)
    session = asyncio.run(svc.sign_in_with_password(ADMIN_EMAIL, ADMIN_PASSWORD))
    store.fail_on[("query", USER_ROLES)] = QueryError("permission denied")

    resolved = asyncio.run(resolve_session(svc, session))

    assert resolved.principal.uid == admin_id
    assert resolved.is_admin is False


def test_presence_failure_does_not_block_resolution(store, admin_id):
    svc = FakeDataService(store)
    session = asyncio.run(svc.sign_in_with_password(ADMIN_EMAIL, ADMIN_PASSWORD))
    store.fail_on[("update", PROFILES)] = QueryError("write rejected")

    resolved = asyncio.run(resolve_session(svc, session))

    assert resolved.is_admin


# ---- context -----------------------------------------------------------------

def test_init_resolves_existing_session(store, admin_id):
    async def scenario():
        svc = FakeDataService(store, store.issue_token(admin_id))
        ctx = SessionContext(svc, timeout=1.0)
        assert ctx.state is SessionState.INITIALIZING
        await ctx.init()
        return ctx

    ctx = asyncio.run(scenario())

    assert ctx.state is SessionState.RESOLVED_ADMIN
    assert ctx.current.principal.uid == admin_id


def test_session_timeout_fails_closed(store, member_id):
    store.session_delay = 0.5

    async def scenario():
        ctx = SessionContext(FakeDataService(store, store.issue_token(member_id)), timeout=0.05)
        await ctx.init()
        return ctx

    ctx = asyncio.run(scenario())

    assert ctx.state is SessionState.RESOLVED_ANONYMOUS
    assert ctx.current.principal is None


def test_sign_in_event_is_followed(store, member_id):
    async def scenario():
        svc = FakeDataService(store)
        ctx = SessionContext(svc, timeout=1.0)
        await ctx.init()
        assert ctx.state is SessionState.RESOLVED_ANONYMOUS
        await svc.sign_in_with_password(MEMBER_EMAIL, MEMBER_PASSWORD)
        await ctx.settle()
        return ctx

    ctx = asyncio.run(scenario())

    assert ctx.state is SessionState.RESOLVED_MEMBER


def test_sign_out_during_role_lookup_wins(store, admin_id):
    async def scenario():
        svc = FakeDataService(store)
        ctx = SessionContext(svc, timeout=1.0)
        await ctx.init()

        store.role_gate = asyncio.Event()
        await svc.sign_in_with_password(ADMIN_EMAIL, ADMIN_PASSWORD)
        await asyncio.sleep(0)  # resolution is now parked on the role lookup
        await svc.sign_out()
        assert ctx.state is SessionState.RESOLVED_ANONYMOUS

        store.role_gate.set()
        await ctx.settle()
        return ctx

    ctx = asyncio.run(scenario())

    assert ctx.state is SessionState.RESOLVED_ANONYMOUS
    assert ctx.current.principal is None


def test_superseded_result_is_dropped(store, member_id, admin_id):
    async def scenario():
        svc = FakeDataService(store)
        ctx = SessionContext(svc, timeout=1.0)
        await ctx.init()
        stale = ctx.generation
        ctx.update(SessionEventKind.SIGNED_OUT, None)
        return ctx, ctx._apply(stale, await resolve_session(svc, None))

    ctx, applied = asyncio.run(scenario())

    assert applied is False
    assert ctx.generation == 2


def test_teardown_stops_following_events(store, member_id):
    async def scenario():
        svc = FakeDataService(store)
        ctx = SessionContext(svc, timeout=1.0)
        await ctx.init()
        ctx.teardown()
        await svc.sign_in_with_password(MEMBER_EMAIL, MEMBER_PASSWORD)
        await ctx.settle()
        return svc, ctx

    svc, ctx = asyncio.run(scenario())

    assert not ctx.alive
    assert svc._listeners == []
    assert ctx.state is SessionState.RESOLVED_ANONYMOUS


def test_teardown_during_role_lookup_discards_the_result(store, admin_id):
    async def scenario():
        svc = FakeDataService(store)
        ctx = SessionContext(svc, timeout=1.0)
        await ctx.init()

        store.role_gate = asyncio.Event()
        await svc.sign_in_with_password(ADMIN_EMAIL, ADMIN_PASSWORD)
        await asyncio.sleep(0)  # resolution is now parked on the role lookup
        ctx.teardown()

        store.role_gate.set()
        await ctx.settle()
        return ctx

    ctx = asyncio.run(scenario())

    assert not ctx.alive
    assert ctx.state is SessionState.RESOLVED_ANONYMOUS
    assert ctx.current.principal is None
