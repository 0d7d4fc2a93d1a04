import logging
import secrets
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError
from supabase import Client

from app.config import settings
from app.core.exceptions import AuthOperationError
from app.database.supabase_client import handle_supabase_error
from app.modules.auth.schemas import AuthState, AuthStateResponse, SessionIdentity
from app.modules.users.schemas import UserResponse, UserUpdate, neutral_trust_metrics_row

logger = logging.getLogger(__name__)

PROFILE_SELECT = "*, trust_score:trust_metrics(*)"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _redirect_params(url: str) -> Dict[str, str]:
    """Merge query and fragment parameters of an auth redirect URL."""
    parts = urlsplit(url)
    params: Dict[str, str] = {}
    for chunk in (parts.query, parts.fragment):
        for key, values in parse_qs(chunk).items():
            params[key] = values[0]
    return params


class AuthSessionManager:
    """
    Owns the signed-in user for this process.

    Holds the Supabase Auth identity (``session_user``) and the matching row
    from ``users`` (``user``), keeps them in step with Supabase auth events,
    and exposes sign-in, sign-up, sign-out, profile update and password reset.
    The profile is always refetched on sign-in, never patched from the event.

    Every adopted identity gets an opaque ``session_key``. Callers that share
    the process (HTTP clients) must present it to see or act on the session.
    The key survives token refreshes and is dropped when the identity changes
    or the session ends.
    """

    def __init__(self, supabase: Client, password_reset_redirect: Optional[str] = None):
        self.supabase = supabase
        self.password_reset_redirect = password_reset_redirect or settings.password_reset_redirect
        self._lock = threading.RLock()
        self._user: Optional[UserResponse] = None
        self._session_user: Optional[SessionIdentity] = None
        self._session_key: Optional[str] = None
        self._initializing = True
        self._in_flight = 0
        self._subscription = None
        self._closed = False

    def __enter__(self) -> "AuthSessionManager":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def user(self) -> Optional[UserResponse]:
        with self._lock:
            return self._user

    @property
    def session_user(self) -> Optional[SessionIdentity]:
        with self._lock:
            return self._session_user

    @property
    def session_key(self) -> Optional[str]:
        with self._lock:
            return self._session_key

    def session_for(self, session_key: Optional[str]) -> Optional[SessionIdentity]:
        """The active identity if session_key is its key, otherwise None."""
        with self._lock:
            if not session_key or self._session_key is None or self._session_user is None:
                return None
            if not secrets.compare_digest(session_key.encode(), self._session_key.encode()):
                return None
            return self._session_user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._initializing or self._in_flight > 0

    @property
    def state(self) -> AuthState:
        with self._lock:
            if self._initializing:
                return AuthState.INITIALIZING
            if self._session_user is not None:
                return AuthState.AUTHENTICATED
            return AuthState.UNAUTHENTICATED

    def snapshot(self) -> AuthStateResponse:
        with self._lock:
            return AuthStateResponse(
                state=self.state,
                user=self._user,
                session_user=self._session_user,
                is_authenticated=self._user is not None,
                is_loading=self.is_loading,
            )

    def snapshot_for(self, session_key: Optional[str]) -> AuthStateResponse:
        """Snapshot as seen by the holder of session_key; anyone else sees no session."""
        with self._lock:
            if self.session_for(session_key) is not None:
                return self.snapshot()
            return AuthStateResponse(
                state=AuthState.INITIALIZING if self._initializing else AuthState.UNAUTHENTICATED,
                is_authenticated=False,
                is_loading=self.is_loading,
            )

    def start(self) -> "AuthSessionManager":
        """Restore a persisted session, then subscribe to auth state changes."""
        try:
            session = self.supabase.auth.get_session()
        except Exception as e:
            logger.error(f"Error restoring persisted session: {e}")
            session = None

        if session and session.user:
            self._adopt_identity(session.user)
            self._fetch_user_profile(session.user.id)
        else:
            with self._lock:
                self._initializing = False

        self._subscription = self.supabase.auth.on_auth_state_change(self._on_auth_state_change)
        return self

    def close(self) -> None:
        """Stop receiving auth events. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()

    def sign_in(self, email: str, password: str) -> Optional[UserResponse]:
        with self._operation():
            try:
                response = self.supabase.auth.sign_in_with_password({
                    "email": email,
                    "password": password
                })
            except Exception as e:
                raise AuthOperationError(handle_supabase_error(e, "Failed to sign in")) from e

            if response.user:
                self._adopt_identity(response.user)
                self._fetch_user_profile(response.user.id)
                self._record_last_login(response.user.id)
            return self.user

    def sign_up(self, email: str, password: str, name: str) -> Optional[UserResponse]:
        with self._operation():
            try:
                response = self.supabase.auth.sign_up({
                    "email": email,
                    "password": password,
                    "options": {
                        "data": {"name": name}
                    }
                })
            except Exception as e:
                raise AuthOperationError(handle_supabase_error(e, "Failed to sign up")) from e

            auth_user = response.user
            if not auth_user:
                return None

            self._create_profile(auth_user, email, name)
            self._adopt_identity(auth_user)
            self._fetch_user_profile(auth_user.id)
            return self.user

    def sign_out(self) -> None:
        with self._operation():
            try:
                self.supabase.auth.sign_out()
            except Exception as e:
                raise AuthOperationError(handle_supabase_error(e, "Failed to sign out")) from e
            self._clear()

    def update_profile(self, changes: Union[UserUpdate, Dict[str, Any]]) -> Optional[UserResponse]:
        """Persist a partial profile update, then merge it into the in-memory profile."""
        identity = self.session_user
        if identity is None:
            raise AuthOperationError("No user logged in")

        if not isinstance(changes, UserUpdate):
            try:
                changes = UserUpdate.model_validate(changes)
            except ValidationError as e:
                raise AuthOperationError("Failed to update profile") from e
        update_data = changes.model_dump(exclude_unset=True)
        if not update_data:
            return self.user

        with self._operation():
            try:
                self.supabase.table("users")\
                    .update(update_data)\
                    .eq("id", identity.id)\
                    .execute()
            except Exception as e:
                raise AuthOperationError("Failed to update profile") from e

            # Not re-fetched: the local copy may drift from server-side triggers.
            with self._lock:
                if self._user is not None and self._user.id == identity.id:
                    self._user = self._user.model_copy(update=update_data)
                return self._user

    def reset_password(self, email: str) -> None:
        with self._operation():
            try:
                self.supabase.auth.reset_password_for_email(
                    email,
                    {"redirect_to": self.password_reset_redirect}
                )
            except Exception as e:
                raise AuthOperationError(handle_supabase_error(e, "Failed to send reset email")) from e

    def sign_in_from_redirect(self, url: str) -> Optional[UserResponse]:
        """Adopt the session carried by an auth redirect (PKCE code or implicit-grant tokens)."""
        params = _redirect_params(url)
        if "error" in params or "error_description" in params:
            raise AuthOperationError(
                params.get("error_description") or params.get("error") or "Failed to sign in"
            )
        has_tokens = "access_token" in params and "refresh_token" in params
        if "code" not in params and not has_tokens:
            return None

        with self._operation():
            try:
                if "code" in params:
                    response = self.supabase.auth.exchange_code_for_session({"auth_code": params["code"]})
                else:
                    response = self.supabase.auth.set_session(params["access_token"], params["refresh_token"])
            except Exception as e:
                raise AuthOperationError(handle_supabase_error(e, "Failed to sign in")) from e

            if response.user:
                self._adopt_identity(response.user)
                self._fetch_user_profile(response.user.id)
            return self.user

    @contextmanager
    def _operation(self):
        with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._in_flight -= 1

    def _on_auth_state_change(self, event: str, session: Any) -> None:
        if self._closed:
            return
        logger.info(f"Auth state changed: {event}")
        auth_user = getattr(session, "user", None) if session else None

        if event == "SIGNED_IN" and auth_user:
            self._adopt_identity(auth_user)
            self._fetch_user_profile(auth_user.id)
        elif event == "SIGNED_OUT":
            self._clear()
        elif event == "TOKEN_REFRESHED":
            logger.debug("Token refreshed")

    def _adopt_identity(self, auth_user: Any) -> SessionIdentity:
        identity = SessionIdentity.from_auth_user(auth_user)
        with self._lock:
            if self._user is not None and self._user.id != identity.id:
                self._user = None
            if self._session_key is None or self._session_user is None or self._session_user.id != identity.id:
                self._session_key = secrets.token_urlsafe(32)
            self._session_user = identity
        return identity

    def _clear(self) -> None:
        with self._lock:
            self._user = None
            self._session_user = None
            self._session_key = None

    def _fetch_user_profile(self, user_id: str) -> None:
        """Load ``users`` + ``trust_metrics`` for user_id. Failures are logged, never raised."""
        try:
            result = self.supabase.table("users")\
                .select(PROFILE_SELECT)\
                .eq("id", user_id)\
                .single()\
                .execute()

            if not result.data:
                raise LookupError(f"No profile row for user {user_id}")

            profile = UserResponse.from_row(result.data)
            with self._lock:
                if self._session_user is not None and self._session_user.id == profile.id:
                    self._user = profile
                else:
                    logger.warning(f"Discarding profile for {user_id}: session changed during fetch")
        except Exception as e:
            logger.error(f"Error fetching user profile: {e}")
        finally:
            with self._lock:
                self._initializing = False

    def _record_last_login(self, user_id: str) -> None:
        try:
            self.supabase.table("users")\
                .update({"last_login_at": _utcnow_iso()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.warning(f"Could not record last login for user {user_id}: {e}")

    def _create_profile(self, auth_user: Any, email: str, name: str) -> None:
        """Write the users row and the initial trust_metrics row for a new account."""
        user_id = str(auth_user.id)
        try:
            self.supabase.table("users").insert({
                "id": user_id,
                "email": auth_user.email or email,
                "name": name,
                "wallet_balance": 0,
                "total_savings": 0
            }).execute()

            self.supabase.table("trust_metrics")\
                .insert(neutral_trust_metrics_row(user_id))\
                .execute()
        except Exception as e:
            logger.error(f"Auth account {user_id} created but profile setup failed: {e}")
            raise AuthOperationError(handle_supabase_error(e, "Failed to sign up")) from e
