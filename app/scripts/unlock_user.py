"""
Unlock an account locked by repeated failed logins. Run from project root:
  python -m app.scripts.unlock_user EMAIL
The API has no unlock path; this is the operator reset.
"""
import argparse
import logging
import sys

from app.core.database import SessionLocal
from app.services.credential_store import CredentialStore
from app.services.errors import AuthServiceError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reset lockout state for an Authgate user.")
    parser.add_argument("email", help="Email of the locked account")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        store = CredentialStore(db)
        user = store.find_by_email(args.email)
        if user is None:
            print(f"No user with email '{args.email}'.", file=sys.stderr)
            return 1
        if not user.locked and user.login_attempts == 0:
            print(f"User '{user.email}' is not locked.")
            return 0
        store.unlock(user)
        logger.info("Unlocked user_id=%s", user.id)
        print(f"Unlocked user '{user.email}'.")
        return 0
    except AuthServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
