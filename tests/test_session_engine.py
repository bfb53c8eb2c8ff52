"""Tests for app.services.session_engine and credential_store against in-memory SQLite."""

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.security import verify_access_token, verify_password
from app.models import Base, Role, User
from app.schemas.auth import TokenClaims
from app.services.authorization import AuthorizationGate
from app.services.credential_store import CredentialStore, normalize_email
from app.services.errors import (
    AccountLockedError,
    DuplicateEmailError,
    InvalidCredentialsError,
    StoreUnavailableError,
    WeakPasswordError,
)
from app.services.revocation import InMemoryRevocationStore
from app.services.session_engine import SessionEngine

PASSWORD = "Sup3r$ecret"


def _test_settings(**overrides: object) -> Settings:
    values = {"BCRYPT_ROUNDS": 4, "MAX_LOGIN_ATTEMPTS": 5, "JWT_EXPIRE_MINUTES": 60}
    values.update(overrides)
    return Settings(**values)


def _sqlite_sessionmaker() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class EngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = _sqlite_sessionmaker()
        self.db = self.session_factory()
        self.store = CredentialStore(self.db)
        self.revocations = InMemoryRevocationStore()
        self.settings = _test_settings()
        self.engine = SessionEngine(self.store, self.revocations, self.settings)

    def tearDown(self) -> None:
        self.db.close()

    def count_users(self, email: str) -> int:
        return self.db.query(User).filter(User.email == normalize_email(email)).count()


class TestRegister(EngineTestCase):
    def test_creates_user_with_defaults(self) -> None:
        user_id = self.engine.register("  A@X.com ", PASSWORD, "A")
        user = self.store.find_by_id(user_id)
        self.assertEqual(user.email, "a@x.com")
        self.assertEqual(user.name, "A")
        self.assertEqual(user.role, Role.USER)
        self.assertEqual(user.login_attempts, 0)
        self.assertFalse(user.locked)
        self.assertIsNotNone(user.created_at)
        self.assertNotEqual(user.password_hash, PASSWORD)
        self.assertTrue(verify_password(PASSWORD, user.password_hash))

    def test_duplicate_email(self) -> None:
        self.engine.register("a@x.com", PASSWORD, "A")
        with self.assertRaises(DuplicateEmailError):
            self.engine.register("A@x.com", "0ther$ecret", "B")
        self.assertEqual(self.count_users("a@x.com"), 1)

    def test_duplicate_reported_before_weak_password(self) -> None:
        self.engine.register("a@x.com", PASSWORD, "A")
        with self.assertRaises(DuplicateEmailError):
            self.engine.register("a@x.com", "weak", "B")

    def test_weak_password_carries_reasons(self) -> None:
        with self.assertRaises(WeakPasswordError) as ctx:
            self.engine.register("a@x.com", "password", "A")
        self.assertEqual(len(ctx.exception.reasons), 4)
        self.assertEqual(self.count_users("a@x.com"), 0)

    def test_race_falls_back_to_unique_index(self) -> None:
        # Simulate another request inserting between the fast-path lookup and the insert.
        self.engine.register("a@x.com", PASSWORD, "A")
        with patch.object(self.store, "find_by_email", return_value=None):
            with self.assertRaises(DuplicateEmailError):
                self.engine.register("a@x.com", PASSWORD, "B")
        self.assertEqual(self.count_users("a@x.com"), 1)
        # Session is still usable after the rollback.
        self.assertIsNotNone(self.store.find_by_email("a@x.com"))

    def test_admin_role(self) -> None:
        user_id = self.engine.register("root@x.com", PASSWORD, "Root", role=Role.ADMIN)
        self.assertEqual(self.store.find_by_id(user_id).role, Role.ADMIN)


class TestLogin(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.engine.register("a@x.com", PASSWORD, "A")

    def test_success_returns_token_with_user_claims(self) -> None:
        result = self.engine.login("a@x.com", PASSWORD)
        payload = verify_access_token(result.token).payload
        self.assertEqual(payload["sub"], str(self.user_id))
        self.assertEqual(payload["email"], "a@x.com")
        self.assertEqual(payload["role"], "user")
        self.assertEqual(payload["exp"] - payload["iat"], 60 * 60)
        self.assertEqual(result.user.id, self.user_id)

    def test_email_lookup_is_case_insensitive(self) -> None:
        self.assertEqual(self.engine.login(" A@X.COM", PASSWORD).user.id, self.user_id)

    def test_unknown_email_same_error_as_wrong_password(self) -> None:
        with self.assertRaises(InvalidCredentialsError) as unknown:
            self.engine.login("nobody@x.com", PASSWORD)
        with self.assertRaises(InvalidCredentialsError) as wrong:
            self.engine.login("a@x.com", "wrong")
        self.assertEqual(unknown.exception.message, wrong.exception.message)
        self.assertEqual(unknown.exception.status_code, wrong.exception.status_code)

    def test_unknown_email_still_runs_password_check(self) -> None:
        with patch(
            "app.services.session_engine.verify_password", wraps=verify_password
        ) as verify:
            with self.assertRaises(InvalidCredentialsError):
                self.engine.login("nobody@x.com", PASSWORD)
            self.assertEqual(verify.call_count, 1)
            with self.assertRaises(InvalidCredentialsError):
                self.engine.login("a@x.com", "Wr0ng$pass")
            self.assertEqual(verify.call_count, 2)

    def test_failure_increments_and_success_resets(self) -> None:
        for expected in (1, 2, 3):
            with self.assertRaises(InvalidCredentialsError):
                self.engine.login("a@x.com", "wrong")
            self.assertEqual(self.store.find_by_id(self.user_id).login_attempts, expected)
        self.engine.login("a@x.com", PASSWORD)
        user = self.store.find_by_id(self.user_id)
        self.assertEqual(user.login_attempts, 0)
        self.assertFalse(user.locked)

    def test_lockout_after_max_attempts(self) -> None:
        for _ in range(self.settings.MAX_LOGIN_ATTEMPTS):
            with self.assertRaises(InvalidCredentialsError):
                self.engine.login("a@x.com", "wrong")
        user = self.store.find_by_id(self.user_id)
        self.assertTrue(user.locked)
        self.assertEqual(user.login_attempts, self.settings.MAX_LOGIN_ATTEMPTS)

        with self.assertRaises(AccountLockedError):
            self.engine.login("a@x.com", PASSWORD)
        with self.assertRaises(AccountLockedError):
            self.engine.login("a@x.com", "wrong")
        self.assertEqual(
            self.store.find_by_id(self.user_id).login_attempts,
            self.settings.MAX_LOGIN_ATTEMPTS,
        )

    def test_lock_checked_before_password(self) -> None:
        user = self.store.find_by_id(self.user_id)
        user.locked = True
        self.store.save(user)
        with patch("app.services.session_engine.verify_password") as verify:
            with self.assertRaises(AccountLockedError):
                self.engine.login("a@x.com", PASSWORD)
        verify.assert_not_called()

    def test_custom_threshold(self) -> None:
        engine = SessionEngine(self.store, self.revocations, _test_settings(MAX_LOGIN_ATTEMPTS=2))
        for _ in range(2):
            with self.assertRaises(InvalidCredentialsError):
                engine.login("a@x.com", "wrong")
        self.assertTrue(self.store.find_by_id(self.user_id).locked)


class TestFailedAttemptCounter(EngineTestCase):
    """record_failed_attempt increments in the database, not from the in-memory value."""

    def test_stale_object_does_not_lose_updates(self) -> None:
        user_id = self.engine.register("a@x.com", PASSWORD, "A")
        stale = self.store.find_by_id(user_id)
        # Another worker, with its own session, already recorded three failures.
        other_db = self.session_factory()
        other_db.query(User).filter(User.id == user_id).update({User.login_attempts: 3})
        other_db.commit()
        other_db.close()
        self.assertEqual(stale.login_attempts, 0)
        updated = self.store.record_failed_attempt(stale, max_attempts=5)
        self.assertEqual(updated.login_attempts, 4)
        self.assertFalse(updated.locked)
        updated = self.store.record_failed_attempt(updated, max_attempts=5)
        self.assertEqual(updated.login_attempts, 5)
        self.assertTrue(updated.locked)

    def test_locked_rows_are_not_incremented(self) -> None:
        user_id = self.engine.register("a@x.com", PASSWORD, "A")
        user = self.store.find_by_id(user_id)
        for _ in range(3):
            user = self.store.record_failed_attempt(user, max_attempts=2)
        self.assertEqual(user.login_attempts, 2)
        self.assertTrue(user.locked)

    def test_unlock_is_manual_reset(self) -> None:
        user_id = self.engine.register("a@x.com", PASSWORD, "A")
        user = self.store.find_by_id(user_id)
        for _ in range(5):
            user = self.store.record_failed_attempt(user, max_attempts=5)
        user = self.store.unlock(user)
        self.assertFalse(user.locked)
        self.assertEqual(user.login_attempts, 0)
        self.assertEqual(self.engine.login("a@x.com", PASSWORD).user.id, user_id)


class TestRefreshAndLogout(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.engine.register("a@x.com", PASSWORD, "A")
        self.token = self.engine.login("a@x.com", PASSWORD).token
        self.gate = AuthorizationGate(self.revocations)

    def test_refresh_revokes_old_and_new_is_accepted(self) -> None:
        claims = self.gate.authenticate(self.token)
        new_token = self.engine.refresh(claims, self.token)
        self.assertNotEqual(new_token, self.token)
        self.assertTrue(self.engine.is_revoked(self.token))
        self.assertFalse(self.engine.is_revoked(new_token))
        new_claims = self.gate.authenticate(new_token)
        self.assertEqual(
            (new_claims.user_id, new_claims.email, new_claims.role),
            (claims.user_id, claims.email, claims.role),
        )

    def test_refresh_does_not_consult_store(self) -> None:
        store = MagicMock()
        engine = SessionEngine(store, self.revocations, self.settings)
        claims = TokenClaims(user_id=99, email="gone@x.com", role=Role.ADMIN)
        token = engine.refresh(claims, "old-token")
        store.assert_not_called()
        self.assertEqual(store.method_calls, [])
        self.assertEqual(verify_access_token(token).payload["role"], "admin")

    def test_logout_is_idempotent(self) -> None:
        self.assertFalse(self.engine.is_revoked(self.token))
        self.engine.logout(self.token)
        self.assertTrue(self.engine.is_revoked(self.token))
        self.engine.logout(self.token)
        self.assertTrue(self.engine.is_revoked(self.token))
        self.assertEqual(len(self.revocations), 1)


class TestStoreUnavailable(unittest.TestCase):
    def test_database_errors_are_wrapped(self) -> None:
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        store = CredentialStore(session)
        with self.assertRaises(StoreUnavailableError):
            store.find_by_email("a@x.com")
        session.rollback.assert_called_once()

    def test_engine_propagates_store_failure(self) -> None:
        store = MagicMock()
        store.find_by_email.side_effect = StoreUnavailableError()
        engine = SessionEngine(store, InMemoryRevocationStore(), _test_settings())
        with self.assertRaises(StoreUnavailableError):
            engine.login("a@x.com", PASSWORD)
