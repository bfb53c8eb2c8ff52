"""Profile and admin user listing (RBAC)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_claims, require_admin, to_http_exception
from app.core.database import get_db
from app.schemas.auth import ProfileResponse, TokenClaims, UserView, UsersListResponse
from app.services.credential_store import CredentialStore
from app.services.errors import AuthServiceError, NotFoundError

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    db: Annotated[Session, Depends(get_db)],
) -> ProfileResponse:
    """Return the authenticated user's own record (no password hash). 404 if the account was deleted."""
    try:
        user = CredentialStore(db).find_by_id(claims.user_id)
        if user is None:
            raise NotFoundError()
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    return ProfileResponse(user=UserView.model_validate(user))


@router.get("/admin/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[TokenClaims, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (admin only)."""
    try:
        users = CredentialStore(db).list_users()
    except AuthServiceError as e:
        raise to_http_exception(e) from e
    views = [UserView.model_validate(u) for u in users]
    return UsersListResponse(count=len(views), users=views)
