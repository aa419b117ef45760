"""
app/integrations/firebase_remote.py - RemoteDataService on Firebase.

- Authentication: Admin SDK for account creation, revocation and password
  updates; Identity Toolkit / Secure Token REST endpoints for password sign-in and
  token refresh (the Admin SDK cannot sign in with a password).
- Collections: one Firestore collection per table, equality filters only.
- Functions: dispatched in-process to `horizon.app.functions`.

The Firebase SDKs are blocking, so every call runs in a worker thread.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx
from firebase_admin import auth as firebase_auth
from firebase_admin import firestore
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import AlreadyExists, GoogleAPICallError, NotFound

from horizon.app.config import get_db, get_firebase_app, settings
from horizon.app.core.auth import decode_id_token, token_to_principal
from horizon.app.core.errors import (
    ALREADY_REGISTERED,
    INVALID_CREDENTIALS,
    NOT_FOUND,
    SESSION_EXPIRED,
    UNIQUE_VIOLATION,
    AuthError,
    InvokeError,
    QueryError,
)
from horizon.app.functions.registry import FUNCTIONS
from horizon.app.integrations.remote import (
    PROFILES,
    TABLES,
    Filters,
    Increment,
    RemoteDataService,
    Row,
    new_profile_row,
    unique_key,
)
from horizon.app.schemas.principal import Principal, Session, SessionEventKind

logger = logging.getLogger("horizon.firebase")

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Firestore batches accept at most 500 writes
BATCH_SIZE = 400


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def _json_body(resp: httpx.Response) -> Dict[str, Any]:
    """Parsed JSON object, or `{}` for an empty or non-JSON (e.g. HTML error page) body."""
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _firestore_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        field: firestore.Increment(value.amount) if isinstance(value, Increment) else value
        for field, value in patch.items()
    }


class FirebaseDataService(RemoteDataService):
    """One instance per client; it holds that client's tokens."""

    def __init__(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None, db=None):
        super().__init__()
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._db = db

    @classmethod
    def from_access_token(cls, access_token: Optional[str]) -> "FirebaseDataService":
        return cls(access_token=access_token)

    @property
    def db(self):
        if self._db is None:
            self._db = get_db()
        return self._db

    # ---- authentication ----------------------------------------------------

    async def sign_up(self, email: str, password: str, metadata: Optional[Mapping[str, Any]] = None) -> str:
        metadata = dict(metadata or {})
        try:
            user = await asyncio.to_thread(
                firebase_auth.create_user,
                email=email,
                password=password,
                display_name=metadata.get("full_name") or None,
                app=get_firebase_app(),
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise AuthError("User already registered", ALREADY_REGISTERED)
        except ValueError as exc:
            raise AuthError(str(exc))
        except FirebaseError as exc:
            raise AuthError(f"Firebase user creation failed: {exc}")

        # Profile row mirrors the sign-up trigger of the hosted schema
        try:
            await self.insert_rows(PROFILES, [new_profile_row(user.uid, metadata)], unique_on=("user_id",))
        except QueryError:
            # No account may outlive a failed profile write, or the e-mail stays taken
            await self._delete_account(user.uid)
            raise
        return user.uid

    async def _delete_account(self, uid: str) -> None:
        try:
            await asyncio.to_thread(firebase_auth.delete_user, uid, app=get_firebase_app())
            logger.info("Removed account %s after its profile could not be created", uid)
        except FirebaseError as exc:
            logger.error("Could not remove account %s without profile: %s", uid, exc)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        if not settings.firebase_web_api_key:
            raise AuthError("Server misconfigured: missing FIREBASE_WEB_API_KEY")
        payload = {"email": email, "password": password, "returnSecureToken": True}
        try:
            async with _client() as client:
                resp = await client.post(
                    IDENTITY_TOOLKIT_URL, params={"key": settings.firebase_web_api_key}, json=payload
                )
        except httpx.HTTPError as exc:
            raise AuthError(f"Authentication service error: {exc}")

        data = _json_body(resp)
        if resp.status_code != 200:
            if resp.status_code >= 500 or "error" not in data:
                raise AuthError(f"Authentication service unavailable ({resp.status_code})")
            message = data["error"].get("message", "Invalid credentials")
            logger.info("Firebase login failed for %s: %s", email, message)
            raise AuthError(message, INVALID_CREDENTIALS)
        if "idToken" not in data or "localId" not in data:
            raise AuthError("Unexpected response from authentication service")

        session = Session(
            principal=Principal(
                uid=data["localId"],
                email=data.get("email", email),
                display_name=data.get("displayName") or None,
            ),
            access_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
            expires_in=int(data.get("expiresIn", 3600)),
        )
        self._access_token = session.access_token
        self._refresh_token = session.refresh_token
        self._emit(SessionEventKind.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        token = self._access_token
        self._access_token = None
        self._refresh_token = None
        if token:
            try:
                decoded = await asyncio.to_thread(decode_id_token, token)
                await asyncio.to_thread(
                    firebase_auth.revoke_refresh_tokens, decoded["uid"], app=get_firebase_app()
                )
            except (AuthError, FirebaseError) as exc:
                # Already invalid or the user is gone; the local session is cleared either way
                logger.info("Refresh token revocation skipped: %s", exc)
        self._emit(SessionEventKind.SIGNED_OUT, None)

    async def refresh_session(self, refresh_token: Optional[str] = None) -> Session:
        if refresh_token:
            self._refresh_token = refresh_token
        if not self._refresh_token:
            raise AuthError("No refresh token on this client", SESSION_EXPIRED)
        try:
            async with _client() as client:
                resp = await client.post(
                    SECURE_TOKEN_URL,
                    params={"key": settings.firebase_web_api_key},
                    data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                )
        except httpx.HTTPError as exc:
            raise AuthError(f"Token service error: {exc}")

        data = _json_body(resp)
        if resp.status_code != 200:
            if resp.status_code >= 500 or "error" not in data:
                raise AuthError(f"Token service unavailable ({resp.status_code})")
            raise AuthError(data["error"].get("message", "Refresh failed"), SESSION_EXPIRED)
        if "id_token" not in data:
            raise AuthError("Unexpected response from token service")

        self._access_token = data["id_token"]
        self._refresh_token = data.get("refresh_token", self._refresh_token)
        session = await self.get_current_session()
        if session is None:
            raise AuthError("Refreshed token could not be verified", SESSION_EXPIRED)
        session.expires_in = int(data.get("expires_in", 3600))
        self._emit(SessionEventKind.TOKEN_REFRESHED, session)
        return session

    async def get_current_session(self) -> Optional[Session]:
        if not self._access_token:
            return None
        try:
            decoded = await asyncio.to_thread(decode_id_token, self._access_token)
            principal = token_to_principal(decoded)
        except AuthError as exc:
            logger.info("Discarding client session: %s", exc.message)
            return None
        return Session(
            principal=principal,
            access_token=self._access_token,
            refresh_token=self._refresh_token,
        )

    async def update_password(self, principal_id: str, password: str) -> None:
        try:
            await asyncio.to_thread(
                firebase_auth.update_user, principal_id, password=password, app=get_firebase_app()
            )
        except firebase_auth.UserNotFoundError:
            raise QueryError(f"User {principal_id} not found", NOT_FOUND)
        except (ValueError, FirebaseError) as exc:
            raise AuthError(f"Password update failed: {exc}")

    # ---- collections --------------------------------------------------------

    async def _call(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except AlreadyExists as exc:
            raise QueryError(str(exc), UNIQUE_VIOLATION)
        except NotFound as exc:
            raise QueryError(str(exc), NOT_FOUND)
        except GoogleAPICallError as exc:
            raise QueryError(str(exc))

    @staticmethod
    def _check_table(table: str) -> None:
        if table not in TABLES:
            raise QueryError(f"Unknown collection '{table}'")

    def _matching_docs(self, table: str, filters: Optional[Filters], order_by=None, descending=False, limit=None):
        filters = dict(filters or {})
        col = self.db.collection(table)
        doc_id = filters.pop("id", None)
        if doc_id is not None:
            snap = col.document(doc_id).get()
            if not snap.exists:
                return []
            data = snap.to_dict() or {}
            return [snap] if all(data.get(k) == v for k, v in filters.items()) else []

        query = col
        for field, value in filters.items():
            query = query.where(field, "==", value)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)
        return list(query.stream())

    async def query_rows(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        self._check_table(table)

        def _query():
            docs = self._matching_docs(table, filters, order_by, descending, limit)
            return [{**(doc.to_dict() or {}), "id": doc.id} for doc in docs]

        return await self._call(_query)

    async def insert_rows(
        self,
        table: str,
        rows: Iterable[Row],
        *,
        unique_on: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        self._check_table(table)
        rows = [dict(r) for r in rows]

        def _insert():
            col = self.db.collection(table)
            inserted = []
            for data in rows:
                data.setdefault("created_at", _now())
                if unique_on:
                    ref = col.document(unique_key(data, unique_on))
                    ref.create(data)  # fails with AlreadyExists
                else:
                    ref = col.document()
                    ref.set(data)
                inserted.append({**data, "id": ref.id})
            return inserted

        return await self._call(_insert)

    async def update_rows(self, table: str, filters: Filters, patch: Mapping[str, Any]) -> int:
        self._check_table(table)
        patch = _firestore_patch(patch)

        def _update():
            docs = self._matching_docs(table, filters)
            batch = self.db.batch()
            for n, doc in enumerate(docs, start=1):
                batch.update(doc.reference, patch)
                if n % BATCH_SIZE == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.commit()
            return len(docs)

        return await self._call(_update)

    async def delete_rows(self, table: str, filters: Filters) -> int:
        self._check_table(table)

        def _delete():
            docs = self._matching_docs(table, filters)
            batch = self.db.batch()
            for n, doc in enumerate(docs, start=1):
                batch.delete(doc.reference)
                if n % BATCH_SIZE == 0:
                    batch.commit()
                    batch = self.db.batch()
            batch.commit()
            return len(docs)

        return await self._call(_delete)

    # ---- functions -----------------------------------------------------------

    async def invoke_function(self, name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        handler = FUNCTIONS.get(name)
        if handler is None:
            raise InvokeError(f"Unknown function '{name}'")
        try:
            return await handler(dict(body), self)
        except httpx.HTTPError as exc:
            raise InvokeError(f"{name} failed: {exc}")
