"""
Process-wide auth session manager and the session-key check, handed to routes through FastAPI dependencies
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import SessionIdentity
from app.modules.auth.service import AuthSessionManager
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

_auth_manager: Optional[AuthSessionManager] = None

security = HTTPBearer(auto_error=False)


def init_auth_manager(supabase: Optional[Client] = None) -> AuthSessionManager:
    """Create and start the manager. Raises ConfigurationError when Supabase is not configured."""
    global _auth_manager
    if _auth_manager is None:
        _auth_manager = AuthSessionManager(supabase or get_supabase()).start()
        logger.info(f"Auth session manager started ({_auth_manager.state.value})")
    return _auth_manager


def shutdown_auth_manager() -> None:
    global _auth_manager
    if _auth_manager is not None:
        _auth_manager.close()
        _auth_manager = None
        logger.info("Auth session manager stopped")


def get_auth_manager() -> AuthSessionManager:
    if _auth_manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth session manager is not running"
        )
    return _auth_manager


def get_session_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Optional[str]:
    """Session key from the Authorization header, if any"""
    return credentials.credentials if credentials else None


def get_caller_identity(
    session_key: Optional[str] = Depends(get_session_key),
    manager: AuthSessionManager = Depends(get_auth_manager)
) -> Optional[SessionIdentity]:
    """The active identity when the caller holds its session key"""
    return manager.session_for(session_key)


def require_session(
    identity: Optional[SessionIdentity] = Depends(get_caller_identity)
) -> SessionIdentity:
    """Dependency for routes that need the caller to own the signed-in session"""
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user logged in"
        )
    return identity
