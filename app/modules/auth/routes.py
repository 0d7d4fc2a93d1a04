from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from app.core.dependencies import get_auth_manager, get_caller_identity, get_session_key, require_session
from app.core.exceptions import AuthOperationError
from app.modules.auth.schemas import (
    SignInRequest, SignUpRequest, ResetPasswordRequest, RedirectRequest,
    AuthStateResponse, SignedInResponse, SessionIdentity
)
from app.modules.auth.service import AuthSessionManager
from app.modules.users.schemas import UserUpdate, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])

# Handlers are plain functions: the Supabase client is synchronous, so FastAPI
# runs them in its threadpool and the event loop stays free.


def _ensure_session_free(
    manager: AuthSessionManager,
    caller: Optional[SessionIdentity],
    email: Optional[str] = None
) -> None:
    """Only the session owner, or someone signing in to the same account, may replace it."""
    active = manager.session_user
    if active is None or caller is not None:
        return
    if email is not None and active.email and active.email.lower() == email.lower():
        return
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Another user is signed in")


def _signed_in(manager: AuthSessionManager) -> SignedInResponse:
    snapshot = manager.snapshot()
    session_key = manager.session_key if snapshot.session_user is not None else None
    return SignedInResponse.model_validate({**snapshot.model_dump(), "session_key": session_key})


@router.get("/session", response_model=AuthStateResponse)
def get_session(
    session_key: Optional[str] = Depends(get_session_key),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    """Current user, session identity and loading state, for the session owner"""
    return manager.snapshot_for(session_key)


@router.post("/sign-in", response_model=SignedInResponse)
def sign_in(
    credentials: SignInRequest,
    caller: Optional[SessionIdentity] = Depends(get_caller_identity),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    _ensure_session_free(manager, caller, credentials.email)
    try:
        manager.sign_in(credentials.email, credentials.password)
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    return _signed_in(manager)


@router.post("/sign-up", response_model=SignedInResponse, status_code=201)
def sign_up(
    register_data: SignUpRequest,
    caller: Optional[SessionIdentity] = Depends(get_caller_identity),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    _ensure_session_free(manager, caller)
    try:
        manager.sign_up(register_data.email, register_data.password, register_data.name)
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return _signed_in(manager)


@router.post("/sign-out", status_code=200)
def sign_out(
    identity: SessionIdentity = Depends(require_session),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    try:
        manager.sign_out()
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return {"message": "Signed out successfully"}


@router.patch("/profile", response_model=UserResponse)
def update_profile(
    changes: UserUpdate,
    identity: SessionIdentity = Depends(require_session),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    """Update the signed-in user's profile"""
    try:
        profile = manager.update_profile(changes)
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not loaded")
    return profile


@router.post("/reset-password", status_code=200)
def reset_password(
    request: ResetPasswordRequest,
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    try:
        manager.reset_password(request.email)
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return {"message": "Password reset email sent"}


@router.post("/callback", response_model=SignedInResponse)
def auth_callback(
    request: RedirectRequest,
    caller: Optional[SessionIdentity] = Depends(get_caller_identity),
    manager: AuthSessionManager = Depends(get_auth_manager)
):
    """Adopt the session from an email-link or OAuth redirect URL"""
    _ensure_session_free(manager, caller)
    try:
        manager.sign_in_from_redirect(request.url)
    except AuthOperationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    return _signed_in(manager)
