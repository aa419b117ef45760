"""Shared pytest fixtures: an in-memory data service and an API client wired to it."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from horizon.app.core.errors import (
    ALREADY_REGISTERED,
    INVALID_CREDENTIALS,
    NOT_FOUND,
    SESSION_EXPIRED,
    UNIQUE_VIOLATION,
    AuthError,
    QueryError,
)
from horizon.app.core.security import get_data_service, oauth2_scheme
from horizon.app.integrations.remote import (
    PROFILES,
    TABLES,
    USER_ROLES,
    Increment,
    RemoteDataService,
    new_profile_row,
    unique_key,
)
from horizon.app.main import app
from horizon.app.schemas.principal import ADMIN_ROLE, Principal, Session, SessionEventKind

ADMIN_EMAIL = "admin@horizonunit.test"
ADMIN_PASSWORD = "admin-secret"
MEMBER_PHONE = "0712345678"
MEMBER_PASSWORD = "member-secret"


def matches(row, filters):
    return all(row.get(k) == v for k, v in (filters or {}).items())


class FakeStore:
    """Backing state shared by every FakeDataService client, like a hosted project."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {t: {} for t in TABLES}
        self.accounts: Dict[str, Dict[str, Any]] = {}  # email -> {uid, password}
        self.tokens: Dict[str, str] = {}  # access token -> uid
        self.refresh_tokens: Dict[str, str] = {}
        self.ops: List[Tuple[str, str]] = []
        self.fail_on: Dict[Tuple[str, str], Exception] = {}
        self.function_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.function_results: Dict[str, Any] = {}
        self.session_delay: float = 0.0
        self.role_gate: Optional[asyncio.Event] = None
        self._ids = itertools.count(1)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def issue_token(self, uid: str) -> str:
        token = self.next_id(f"token-{uid}")
        self.tokens[token] = uid
        return token

    def email_of(self, uid: str) -> Optional[str]:
        return next((e for e, a in self.accounts.items() if a["uid"] == uid), None)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return list(self.tables[table].values())


class FakeDataService(RemoteDataService):
    def __init__(self, store: FakeStore, access_token: Optional[str] = None):
        super().__init__()
        self.store = store
        self._access_token = access_token
        self._refresh_token: Optional[str] = None

    def _maybe_fail(self, op: str, table: str) -> None:
        self.store.ops.append((op, table))
        exc = self.store.fail_on.get((op, table))
        if exc is not None:
            raise exc

    def _session_for(self, uid: str) -> Session:
        return Session(
            principal=Principal(uid=uid, email=self.store.email_of(uid)),
            access_token=self._access_token,
            refresh_token=self._refresh_token,
        )

    # ---- authentication ----------------------------------------------------

    async def sign_up(self, email, password, metadata=None):
        if email in self.store.accounts:
            raise AuthError("User already registered", ALREADY_REGISTERED)
        uid = self.store.next_id("user")
        self.store.accounts[email] = {"uid": uid, "password": password}
        await self.insert_rows(PROFILES, [new_profile_row(uid, metadata)], unique_on=("user_id",))
        return uid

    async def sign_in_with_password(self, email, password):
        account = self.store.accounts.get(email)
        if account is None or account["password"] != password:
            raise AuthError("Invalid login credentials", INVALID_CREDENTIALS)
        self._access_token = self.store.issue_token(account["uid"])
        self._refresh_token = self.store.next_id("refresh")
        self.store.refresh_tokens[self._refresh_token] = account["uid"]
        session = self._session_for(account["uid"])
        self._emit(SessionEventKind.SIGNED_IN, session)
        return session

    async def sign_out(self):
        self.store.tokens.pop(self._access_token, None)
        self._access_token = None
        self._refresh_token = None
        self._emit(SessionEventKind.SIGNED_OUT, None)

    async def refresh_session(self, refresh_token=None):
        token = refresh_token or self._refresh_token
        uid = self.store.refresh_tokens.get(token)
        if uid is None:
            raise AuthError("Invalid refresh token", SESSION_EXPIRED)
        self._refresh_token = token
        self._access_token = self.store.issue_token(uid)
        session = self._session_for(uid)
        self._emit(SessionEventKind.TOKEN_REFRESHED, session)
        return session

    async def get_current_session(self):
        if self.store.session_delay:
            await asyncio.sleep(self.store.session_delay)
        uid = self.store.tokens.get(self._access_token)
        if uid is None:
            return None
        return self._session_for(uid)

    async def update_password(self, principal_id, password):
        for account in self.store.accounts.values():
            if account["uid"] == principal_id:
                account["password"] = password
                return
        raise QueryError(f"User {principal_id} not found", NOT_FOUND)

    # ---- collections --------------------------------------------------------

    async def query_rows(self, table, filters=None, *, order_by=None, descending=False, limit=None):
        if table == USER_ROLES and self.store.role_gate is not None:
            await self.store.role_gate.wait()
        await asyncio.sleep(0)  # a round trip lets other requests interleave
        self._maybe_fail("query", table)
        rows = [dict(r) for r in self.store.rows(table) if matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, str(r.get(order_by))), reverse=descending)
        return rows[:limit] if limit else rows

    async def insert_rows(self, table, rows, *, unique_on=None):
        self._maybe_fail("insert", table)
        inserted = []
        for row in rows:
            row = dict(row)
            if unique_on:
                row_id = unique_key(row, unique_on)
                if row_id in self.store.tables[table]:
                    raise QueryError(f"duplicate key value in {table}", UNIQUE_VIOLATION)
            else:
                row_id = self.store.next_id(table)
            row["id"] = row_id
            self.store.tables[table][row_id] = row
            inserted.append(dict(row))
        return inserted

    async def update_rows(self, table, filters, patch):
        self._maybe_fail("update", table)
        touched = [r for r in self.store.rows(table) if matches(r, filters)]
        for row in touched:
            for field, value in patch.items():
                if isinstance(value, Increment):
                    value = (row.get(field) or 0) + value.amount
                row[field] = value
        return len(touched)

    async def delete_rows(self, table, filters):
        self._maybe_fail("delete", table)
        doomed = [r["id"] for r in self.store.rows(table) if matches(r, filters)]
        for row_id in doomed:
            del self.store.tables[table][row_id]
        return len(doomed)

    async def invoke_function(self, name, body):
        self.store.function_calls.append((name, dict(body)))
        result = self.store.function_results.get(name, {"success": True})
        if isinstance(result, Exception):
            raise result
        return result


# --------------------------------------------------------------------------- #
# Fixtures
# --------------------------------------------------------------------------- #

@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def service(store):
    return FakeDataService(store)


@pytest.fixture
def member_id(store):
    """A registered member signed up with a phone number."""
    svc = FakeDataService(store)
    return asyncio.run(svc.sign_up(
        "712345678@horizonunit.local", MEMBER_PASSWORD,
        {"full_name": "Jane Wanjiku", "phone_number": "712345678"},
    ))


@pytest.fixture
def admin_id(store):
    svc = FakeDataService(store)

    async def _create():
        uid = await svc.sign_up(ADMIN_EMAIL, ADMIN_PASSWORD, {"full_name": "Admin"})
        await svc.insert_rows(USER_ROLES, [{"user_id": uid, "role": ADMIN_ROLE}], unique_on=("role",))
        return uid

    return asyncio.run(_create())


@pytest.fixture
def client(store):
    def _service(credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)):
        return FakeDataService(store, credentials.credentials if credentials else None)

    app.dependency_overrides[get_data_service] = _service
    # No context manager: startup (admin bootstrap, scheduler) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def member_headers(store, member_id):
    return {"Authorization": f"Bearer {store.issue_token(member_id)}"}


@pytest.fixture
def admin_headers(store, admin_id):
    return {"Authorization": f"Bearer {store.issue_token(admin_id)}"}
