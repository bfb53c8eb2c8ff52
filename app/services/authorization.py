"""Bearer token authentication and role-based authorization decisions."""

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from app.core.security import verify_access_token
from app.models import Role
from app.schemas.auth import TokenClaims
from app.services.errors import (
    ForbiddenError,
    InvalidSignatureError,
    MissingTokenError,
    TokenExpiredError,
    TokenRevokedError,
)
from app.services.revocation import RevocationStore

logger = logging.getLogger(__name__)


class AuthorizationGate:
    """
    authenticate() must succeed before authorize() is called on its claims.

    Check order in authenticate: missing token, revoked, expired, any other
    verification failure.
    """

    def __init__(self, revocations: RevocationStore) -> None:
        self.revocations = revocations

    def authenticate(self, token: str | None) -> TokenClaims:
        if token is None or not token.strip():
            raise MissingTokenError()
        if self.revocations.contains(token):
            raise TokenRevokedError()

        result = verify_access_token(token)
        if result.status == "expired":
            raise TokenExpiredError()
        if not result.ok:
            raise InvalidSignatureError()

        payload = result.payload
        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                iat=payload.get("iat"),
                exp=payload.get("exp"),
                jti=payload.get("jti"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            # Signed by us but not a shape we issue (e.g. unknown role).
            raise InvalidSignatureError("Invalid token payload") from e

    def authorize(self, claims: TokenClaims, required_roles: Iterable[Role] = ()) -> None:
        """Allow any authenticated principal when required_roles is empty."""
        roles = frozenset(required_roles)
        if roles and claims.role not in roles:
            logger.info(
                "Forbidden: user_id=%s role=%s required=%s",
                claims.user_id,
                claims.role.value,
                sorted(r.value for r in roles),
            )
            raise ForbiddenError()
