"""Session/credential lifecycle: registration, login with lockout, token refresh and revocation."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from app.core.security import create_access_token, hash_password, verify_password
from app.models import Role, User
from app.schemas.auth import TokenClaims
from app.services.credential_store import CredentialStore
from app.services.errors import (
    AccountLockedError,
    DuplicateEmailError,
    InvalidCredentialsError,
    WeakPasswordError,
)
from app.services.password_policy import validate_password
from app.services.revocation import RevocationStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_hash(rounds: int) -> str:
    """Hash compared against for unknown emails so they cost as much as a wrong password."""
    return hash_password("unknown-account-placeholder", rounds=rounds)


@dataclass(frozen=True)
class LoginResult:
    """Token issued on successful login plus the (refreshed) user row."""

    token: str
    user: User


class SessionEngine:
    """
    Per-account state machine: Active (locked=False) and Locked (locked=True).

    A failed login that brings login_attempts to MAX_LOGIN_ATTEMPTS moves the
    account to Locked. There is no transition back from Locked here.
    """

    def __init__(
        self,
        store: CredentialStore,
        revocations: RevocationStore,
        settings: "Settings",
    ) -> None:
        self.store = store
        self.revocations = revocations
        self.settings = settings

    def register(self, email: str, password: str, name: str, role: Role = Role.USER) -> int:
        """
        Create an account and return its id. Does not log the user in.

        The lookup below is only a fast path; the store's unique index decides
        duplicates when two registrations race.
        """
        if self.store.find_by_email(email) is not None:
            raise DuplicateEmailError()

        validation = validate_password(password, min_length=self.settings.PASSWORD_MIN_LENGTH)
        if not validation.is_valid:
            raise WeakPasswordError(validation.errors)

        password_hash = hash_password(password, rounds=self.settings.BCRYPT_ROUNDS)
        user = self.store.create(email, password_hash, name, role=role)
        logger.info("Registered user id=%s role=%s", user.id, user.role.value)
        return user.id

    def login(self, email: str, password: str) -> LoginResult:
        user = self.store.find_by_email(email)
        if user is None:
            verify_password(password, _dummy_hash(self.settings.BCRYPT_ROUNDS))
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if user.locked:
            logger.info("Login rejected: account locked user_id=%s", user.id)
            raise AccountLockedError()

        if not verify_password(password, user.password_hash):
            user = self.store.record_failed_attempt(user, self.settings.MAX_LOGIN_ATTEMPTS)
            if user.locked:
                logger.warning(
                    "Account locked after %s failed attempts user_id=%s",
                    user.login_attempts,
                    user.id,
                )
            else:
                logger.info(
                    "Login failed: wrong password user_id=%s attempts=%s",
                    user.id,
                    user.login_attempts,
                )
            raise InvalidCredentialsError()

        user = self.store.reset_login_attempts(user)
        token = self._mint(user.id, user.email, user.role)
        logger.info("Login succeeded user_id=%s", user.id)
        return LoginResult(token=token, user=user)

    def refresh(self, claims: TokenClaims, current_token: str) -> str:
        """
        Mint a new token from already-verified claims and revoke the presented one.

        Trusts the caller's authentication: neither the password nor the
        account's current lock state is re-checked.
        The revoked check (in the gate) and the add below are not atomic, so two
        concurrent refreshes of one token can both succeed.
        """
        new_token = self._mint(claims.user_id, claims.email, claims.role)
        self.revocations.add(current_token)
        logger.info("Token refreshed user_id=%s", claims.user_id)
        return new_token

    def logout(self, token: str) -> None:
        """Revoke token. Idempotent."""
        self.revocations.add(token)
        logger.info("Token revoked on logout")

    def is_revoked(self, token: str) -> bool:
        return self.revocations.contains(token)

    def _mint(self, user_id: int, email: str, role: Role) -> str:
        return create_access_token(
            sub=user_id,
            email=email,
            role=role.value,
            expires_minutes=self.settings.JWT_EXPIRE_MINUTES,
        )
