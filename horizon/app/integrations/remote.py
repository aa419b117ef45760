"""
app/integrations/remote.py - Request/response contract of the hosted data service.

Everything the resolver, services and routers need from the backing service goes
through `RemoteDataService`: authentication, the session-changed push stream,
generic CRUD against named collections, and the two proxied functions.
A realization owns its own client-side session, the same way a browser SDK
client does; sign-in and sign-out on one instance never affect another.
"""
from __future__ import annotations

import abc
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from horizon.app.config import settings
from horizon.app.schemas.principal import Session, SessionEventKind

logger = logging.getLogger("horizon.remote")

# Collections
PROFILES = "profiles"
CONTRIBUTIONS = "contributions"
BALANCE_ADJUSTMENTS = "balance_adjustments"
ADMIN_MESSAGES = "admin_messages"
USER_ROLES = "user_roles"
SMS_LOGS = "sms_logs"
PAYMENT_TRANSACTIONS = "payment_transactions"

TABLES = frozenset({
    PROFILES, CONTRIBUTIONS, BALANCE_ADJUSTMENTS, ADMIN_MESSAGES,
    USER_ROLES, SMS_LOGS, PAYMENT_TRANSACTIONS,
})

# Functions
SEND_SMS = "send-sms"
INITIATE_PAYMENT = "initiate-pesapal-payment"

Row = Dict[str, Any]
Filters = Mapping[str, Any]
SessionListener = Callable[[SessionEventKind, Optional[Session]], None]


class RemoteDataService(abc.ABC):
    """Generic contract consumed by the core; see the module docstring."""

    def __init__(self) -> None:
        self._listeners: List[SessionListener] = []

    # ---- session-changed stream ------------------------------------------

    def on_session_changed(self, callback: SessionListener) -> Callable[[], None]:
        """Subscribe to session events; returns an unsubscribe callable."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, kind: SessionEventKind, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind, session)
            except Exception:
                logger.exception("Session listener failed on %s", kind.value)

    # ---- authentication ----------------------------------------------------

    @abc.abstractmethod
    async def sign_up(self, email: str, password: str, metadata: Optional[Mapping[str, Any]] = None) -> str:
        """Create a principal and its profile; returns the new principal id.

        Raises AuthError(code="already_registered") when the email is taken.
        """

    @abc.abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Authenticate and keep the session on this client; emits SIGNED_IN."""

    @abc.abstractmethod
    async def sign_out(self) -> None:
        """Drop (and revoke) the client session; emits SIGNED_OUT."""

    @abc.abstractmethod
    async def refresh_session(self, refresh_token: Optional[str] = None) -> Session:
        """Exchange the client (or the given) refresh token; emits TOKEN_REFRESHED."""

    @abc.abstractmethod
    async def get_current_session(self) -> Optional[Session]:
        """Return the verified client session, or None."""

    @abc.abstractmethod
    async def update_password(self, principal_id: str, password: str) -> None:
        """Admin API: set a principal's password."""

    # ---- collections --------------------------------------------------------

    @abc.abstractmethod
    async def query_rows(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Equality-filtered read; each row carries its document `id`."""

    @abc.abstractmethod
    async def insert_rows(
        self,
        table: str,
        rows: Iterable[Row],
        *,
        unique_on: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        """Insert rows and return them with ids.

        With `unique_on`, the storage key is derived from those fields and a
        second row with the same values fails with QueryError(code="unique_violation").
        """

    @abc.abstractmethod
    async def update_rows(self, table: str, filters: Filters, patch: Mapping[str, Any]) -> int:
        """Patch every matching row; returns the number of rows touched.

        An `Increment` value is applied atomically against the stored number.
        """

    @abc.abstractmethod
    async def delete_rows(self, table: str, filters: Filters) -> int:
        """Delete every matching row; returns the number of rows removed."""

    # ---- functions -----------------------------------------------------------

    @abc.abstractmethod
    async def invoke_function(self, name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Call a proxied function; transport failures raise InvokeError."""

    # ---- helpers shared by realizations -------------------------------------

    async def maybe_single(self, table: str, filters: Filters) -> Optional[Row]:
        rows = await self.query_rows(table, filters, limit=1)
        return rows[0] if rows else None


def unique_key(row: Mapping[str, Any], fields: Sequence[str]) -> str:
    """Storage key for a row constrained to be unique on `fields`."""
    return "__".join(str(row.get(f, "")) for f in fields)


class Increment:
    """Patch value that adds `amount` to the stored number in a single server-side write."""

    __slots__ = ("amount",)

    def __init__(self, amount: float):
        self.amount = amount

    def __repr__(self) -> str:
        return f"Increment({self.amount!r})"


def new_profile_row(user_id: str, metadata: Optional[Mapping[str, Any]] = None) -> Row:
    """Profile created alongside every new principal."""
    metadata = metadata or {}
    return {
        "user_id": user_id,
        "full_name": metadata.get("full_name") or "",
        "phone_number": metadata.get("phone_number") or None,
        "balance_visible": True,
        "daily_contribution_amount": settings.default_daily_contribution,
        "balance_adjustment": 0.0,
        "missed_contributions": 0,
        "is_online": False,
        "last_seen_at": None,
    }
