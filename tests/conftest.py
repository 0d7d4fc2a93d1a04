"""Shared pytest fixtures: an in-memory stand-in for the Supabase client."""

from __future__ import annotations

import uuid
from typing import Any, Callable

import pytest

from app.modules.auth.service import AuthSessionManager

RESET_REDIRECT = "http://localhost:5173/reset-password"


class FakeAPIError(Exception):
    """Mimics PostgREST / Supabase Auth errors, which carry ``message``."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    def __init__(self, db: FakeSupabase, table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: list[tuple[str, Any]] = []
        self.is_single = False

    def select(self, columns: str = "*") -> FakeQuery:
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, payload: dict[str, Any]) -> FakeQuery:
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> FakeQuery:
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column: str, value: Any) -> FakeQuery:
        self.filters.append((column, value))
        return self

    def single(self) -> FakeQuery:
        self.is_single = True
        return self

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.op, dict(self.filters), self.payload))
        if (self.table, self.op) in self.db.failures or (self.table, None) in self.db.failures:
            raise FakeAPIError(f"{self.table} {self.op} rejected")

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            row = dict(self.payload)
            rows.append(row)
            return FakeResponse([row])

        matched = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        results = [self._with_joins(dict(r)) for r in matched]
        if self.is_single:
            if len(results) != 1:
                raise FakeAPIError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(results[0])
        return FakeResponse(results)

    def _with_joins(self, row: dict[str, Any]) -> dict[str, Any]:
        if "trust_metrics" in self.columns:
            row["trust_score"] = [
                dict(t) for t in self.db.tables.get("trust_metrics", []) if t.get("user_id") == row.get("id")
            ]
        return row


class FakeAuthUser:
    def __init__(self, email: str, user_id: str | None = None, email_confirmed_at: str | None = None):
        self.id = user_id or str(uuid.uuid4())
        self.email = email
        self.email_confirmed_at = email_confirmed_at
        self.user_metadata: dict[str, Any] = {}


class FakeSession:
    def __init__(self, user: FakeAuthUser):
        self.user = user
        self.access_token = f"access-{user.id}"
        self.refresh_token = f"refresh-{user.id}"


class FakeAuthResponse:
    def __init__(self, user: FakeAuthUser | None, session: FakeSession | None):
        self.user = user
        self.session = session


class FakeSubscription:
    def __init__(self, auth: FakeAuth, callback: Callable[[str, Any], None]):
        self.auth = auth
        self.callback = callback
        self.unsubscribe_calls = 0

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1


class FakeAuth:
    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, FakeAuthUser]] = {}
        self.session: FakeSession | None = None
        self.subscriptions: list[FakeSubscription] = []
        self.codes: dict[str, FakeAuthUser] = {}
        self.reset_requests: list[tuple[str, dict[str, Any]]] = []
        self.errors: dict[str, Exception] = {}
        self.hooks: dict[str, Callable[[], None]] = {}
        self.deliver_events = True

    def _maybe_fail(self, method: str) -> None:
        hook = self.hooks.get(method)
        if hook is not None:
            hook()
        if method in self.errors:
            raise self.errors[method]

    def emit(self, event: str, session: FakeSession | None) -> None:
        if not self.deliver_events:
            return
        for sub in list(self.subscriptions):
            if sub.unsubscribe_calls == 0:
                sub.callback(event, session)

    def _establish(self, user: FakeAuthUser) -> FakeAuthResponse:
        self.session = FakeSession(user)
        self.emit("SIGNED_IN", self.session)
        return FakeAuthResponse(user, self.session)

    def get_session(self) -> FakeSession | None:
        self._maybe_fail("get_session")
        return self.session

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> FakeSubscription:
        subscription = FakeSubscription(self, callback)
        self.subscriptions.append(subscription)
        return subscription

    def sign_in_with_password(self, credentials: dict[str, str]) -> FakeAuthResponse:
        self._maybe_fail("sign_in_with_password")
        account = self.accounts.get(credentials["email"])
        if account is None or account[0] != credentials["password"]:
            raise FakeAPIError("Invalid login credentials")
        return self._establish(account[1])

    def sign_up(self, credentials: dict[str, Any]) -> FakeAuthResponse:
        self._maybe_fail("sign_up")
        email = credentials["email"]
        if email in self.accounts:
            raise FakeAPIError("User already registered")
        user = FakeAuthUser(email)
        user.user_metadata = credentials.get("options", {}).get("data", {})
        self.accounts[email] = (credentials["password"], user)
        return self._establish(user)

    def sign_out(self) -> None:
        self._maybe_fail("sign_out")
        self.session = None
        self.emit("SIGNED_OUT", None)

    def reset_password_for_email(self, email: str, options: dict[str, Any]) -> None:
        self._maybe_fail("reset_password_for_email")
        self.reset_requests.append((email, options))

    def exchange_code_for_session(self, params: dict[str, str]) -> FakeAuthResponse:
        self._maybe_fail("exchange_code_for_session")
        user = self.codes.get(params["auth_code"])
        if user is None:
            raise FakeAPIError("invalid flow state, no valid flow state found")
        return self._establish(user)

    def set_session(self, access_token: str, refresh_token: str) -> FakeAuthResponse:
        self._maybe_fail("set_session")
        for _, user in self.accounts.values():
            if access_token == f"access-{user.id}" and refresh_token == f"refresh-{user.id}":
                return self._establish(user)
        raise FakeAPIError("Invalid Refresh Token")


class FakeSupabase:
    def __init__(self) -> None:
        self.auth = FakeAuth()
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, dict[str, Any], Any]] = []
        self.failures: set[tuple[str, str | None]] = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str | None = None) -> None:
        self.failures.add((table, op))

    def calls_to(self, table: str, op: str) -> list[tuple[str, str, dict[str, Any], Any]]:
        return [c for c in self.calls if c[0] == table and c[1] == op]

    def add_user(
        self,
        email: str,
        password: str,
        name: str = "Thandi Mokoena",
        with_profile: bool = True,
        trust: dict[str, Any] | None = None,
    ) -> FakeAuthUser:
        """Register an auth account, optionally with its users / trust_metrics rows."""
        user = FakeAuthUser(email, email_confirmed_at="2026-01-05T08:00:00+00:00")
        self.auth.accounts[email] = (password, user)
        if with_profile:
            self.tables.setdefault("users", []).append({
                "id": user.id,
                "email": email,
                "name": name,
                "phone": "+27821234567",
                "wallet_balance": 1250.5,
                "total_savings": 8000,
                "is_active": True,
                "created_at": "2026-01-05T08:00:00+00:00",
            })
        if trust is not None:
            self.tables.setdefault("trust_metrics", []).append({"user_id": user.id, **trust})
        return user


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def registered_user(fake_supabase: FakeSupabase) -> FakeAuthUser:
    """An existing account with a profile and trust metrics."""
    return fake_supabase.add_user(
        "thandi@example.com",
        "s3cret-pass",
        trust={
            "score": 720,
            "rating": "good",
            "on_time_payment_rate": 0.95,
            "years_active": 2,
            "pools_completed": 3,
            "defaults_count": 0,
            "updated_at": "2026-02-01T00:00:00+00:00",
        },
    )


@pytest.fixture
def manager(fake_supabase: FakeSupabase) -> AuthSessionManager:
    """A started manager bound to the fake client."""
    m = AuthSessionManager(fake_supabase, password_reset_redirect=RESET_REDIRECT).start()
    try:
        yield m
    finally:
        m.close()
