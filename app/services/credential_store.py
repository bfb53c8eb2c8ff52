"""Persistence of user credentials and lockout counters over SQLAlchemy."""

import logging

from sqlalchemy import Update, case, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Role, User
from app.services.errors import DuplicateEmailError, StoreUnavailableError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Identity key for an email: trimmed and lowercased."""
    return email.strip().lower()


class CredentialStore:
    """
    User record access for the session engine.

    Email uniqueness is enforced by the database's unique index, not by a
    find-then-insert in this class. Attempt counters are changed with
    single UPDATE statements so concurrent logins cannot lose increments.
    Any database failure other than a duplicate email surfaces as
    StoreUnavailableError.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_email(self, email: str) -> User | None:
        try:
            return (
                self.session.query(User)
                .filter(User.email == normalize_email(email))
                .first()
            )
        except SQLAlchemyError as e:
            raise self._unavailable("find_by_email", e) from e

    def find_by_id(self, user_id: int) -> User | None:
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as e:
            raise self._unavailable("find_by_id", e) from e

    def list_users(self) -> list[User]:
        try:
            return self.session.query(User).order_by(User.id).all()
        except SQLAlchemyError as e:
            raise self._unavailable("list_users", e) from e

    def create(
        self,
        email: str,
        password_hash: str,
        name: str,
        role: Role = Role.USER,
    ) -> User:
        """Insert a new user. Raises DuplicateEmailError if the email is taken."""
        user = User(
            email=normalize_email(email),
            password_hash=password_hash,
            name=name.strip(),
            role=role,
            login_attempts=0,
            locked=False,
        )
        try:
            self.session.add(user)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateEmailError() from e
        except SQLAlchemyError as e:
            raise self._unavailable("create", e) from e
        self.session.refresh(user)
        return user

    def save(self, user: User) -> User:
        try:
            self.session.add(user)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._unavailable("save", e) from e
        self.session.refresh(user)
        return user

    def record_failed_attempt(self, user: User, max_attempts: int) -> User:
        """
        Increment login_attempts and lock when it reaches max_attempts, in one statement.

        Right-hand expressions see the pre-update row, so login_attempts + 1 is
        the new count in both columns. Rows that are already locked are untouched.
        """
        stmt = (
            update(User)
            .where(User.id == user.id, User.locked.is_(False))
            .values(
                login_attempts=User.login_attempts + 1,
                locked=case(
                    (User.login_attempts + 1 >= max_attempts, True),
                    else_=User.locked,
                ),
            )
        )
        return self._execute_update(stmt, user, "record_failed_attempt")

    def reset_login_attempts(self, user: User) -> User:
        stmt = update(User).where(User.id == user.id).values(login_attempts=0)
        return self._execute_update(stmt, user, "reset_login_attempts")

    def unlock(self, user: User) -> User:
        """Operator reset of a locked account. Not reachable from the HTTP API."""
        stmt = (
            update(User)
            .where(User.id == user.id)
            .values(locked=False, login_attempts=0)
        )
        return self._execute_update(stmt, user, "unlock")

    def _execute_update(self, stmt: Update, user: User, operation: str) -> User:
        try:
            self.session.execute(stmt.execution_options(synchronize_session=False))
            self.session.commit()
            self.session.refresh(user)
        except SQLAlchemyError as e:
            raise self._unavailable(operation, e) from e
        return user

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailableError:
        logger.exception("Credential store %s failed: %s", operation, exc)
        try:
            self.session.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback after failed %s also failed", operation)
        return StoreUnavailableError()
