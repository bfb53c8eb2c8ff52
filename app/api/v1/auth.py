"""Registration, login, token refresh/logout, and auth dependencies (get_current_claims, require_roles)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import verify_access_token
from app.models import Role
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    TokenClaims,
    TokenResponse,
    UserView,
)
from app.services.authorization import AuthorizationGate
from app.services.credential_store import CredentialStore
from app.services.errors import AuthServiceError, StoreUnavailableError, WeakPasswordError
from app.services.revocation import RevocationStore, get_revocation_store
from app.services.session_engine import SessionEngine

router = APIRouter()
security = HTTPBearer(auto_error=False)


def to_http_exception(exc: AuthServiceError) -> HTTPException:
    """Translate a service outcome into the API's error body and status."""
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"status": "error", "message": "Internal server error"},
        )
    detail: dict[str, object] = {"status": "error", "message": exc.message}
    if isinstance(exc, WeakPasswordError):
        detail["errors"] = exc.reasons
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if exc.status_code == status.HTTP_401_UNAUTHORIZED
        else None
    )
    return HTTPException(status_code=exc.status_code, detail=detail, headers=headers)


def get_gate(
    revocations: Annotated[RevocationStore, Depends(get_revocation_store)],
) -> AuthorizationGate:
    return AuthorizationGate(revocations)


def get_session_engine(
    db: Annotated[Session, Depends(get_db)],
    revocations: Annotated[RevocationStore, Depends(get_revocation_store)],
) -> SessionEngine:
    return SessionEngine(CredentialStore(db), revocations, get_settings())


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Raw bearer token, or None when the header is absent or not a Bearer credential."""
    return credentials.credentials if credentials is not None else None


def get_current_claims(
    token: Annotated[str | None, Depends(get_bearer_token)],
    gate: Annotated[AuthorizationGate, Depends(get_gate)],
) -> TokenClaims:
    """Dependency: require a valid, unrevoked Bearer JWT and return its claims. Raises 401 otherwise."""
    try:
        return gate.authenticate(token)
    except AuthServiceError as e:
        raise to_http_exception(e) from e


def require_roles(*roles: Role) -> Callable[..., TokenClaims]:
    """Dependency factory: authenticate, then require one of roles (any role if none given)."""

    def dependency(
        claims: Annotated[TokenClaims, Depends(get_current_claims)],
        gate: Annotated[AuthorizationGate, Depends(get_gate)],
    ) -> TokenClaims:
        try:
            gate.authorize(claims, roles)
        except AuthServiceError as e:
            raise to_http_exception(e) from e
        return claims

    return dependency


require_admin = require_roles(Role.ADMIN)


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    body: RegisterRequest,
    engine: Annotated[SessionEngine, Depends(get_session_engine)],
) -> RegisterResponse:
    """Create an account with role 'user'. Does not log the user in."""
    try:
        user_id = engine.register(body.email, body.password, body.name)
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    return RegisterResponse(user_id=user_id)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    engine: Annotated[SessionEngine, Depends(get_session_engine)],
) -> LoginResponse:
    """
    Authenticate with email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    try:
        result = engine.login(body.email, body.password)
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    return LoginResponse(token=result.token, user=UserView.model_validate(result.user))


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    token: Annotated[str | None, Depends(get_bearer_token)],
    engine: Annotated[SessionEngine, Depends(get_session_engine)],
) -> TokenResponse:
    """Exchange a valid token for a fresh one; the presented token is revoked."""
    # get_current_claims has already rejected a missing token.
    new_token = engine.refresh(claims, token or "")
    return TokenResponse(token=new_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: Annotated[str | None, Depends(get_bearer_token)],
    engine: Annotated[SessionEngine, Depends(get_session_engine)],
) -> MessageResponse:
    """Revoke the presented token. Always succeeds, including for already revoked or expired tokens."""
    # Unverifiable strings can never authenticate and are not stored.
    if token and verify_access_token(token).status != "invalid":
        engine.logout(token)
    return MessageResponse(message="Logged out successfully")
