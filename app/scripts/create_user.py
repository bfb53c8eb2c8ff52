"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com 'Sup3r$ecret' Admin admin
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.models import Role
from app.services.credential_store import CredentialStore
from app.services.errors import AuthServiceError, WeakPasswordError
from app.services.revocation import get_revocation_store
from app.services.session_engine import SessionEngine


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Authgate user (admins cannot self-register).")
    parser.add_argument("email", help="Email (login identity)")
    parser.add_argument("password", help="Password (must satisfy the strength policy)")
    parser.add_argument("name", help="Display name")
    parser.add_argument("role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role])
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        engine = SessionEngine(CredentialStore(db), get_revocation_store(), get_settings())
        user_id = engine.register(args.email, args.password, args.name, role=Role(args.role))
    except WeakPasswordError as e:
        print(e.message + ":", file=sys.stderr)
        for reason in e.reasons:
            print(f"  - {reason}", file=sys.stderr)
        return 1
    except AuthServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{args.email.strip().lower()}' (id={user_id}) with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
