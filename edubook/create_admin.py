"""Create an admin account.

Usage:
    python -m edubook.create_admin EMAIL PASSWORD NAME
"""
import argparse
import sys

from edubook.core.errors import DomainError
from edubook.database import SessionLocal, engine
from edubook.models.document import Base
from edubook.services.accounts import AccountService
from edubook.store.documents import DocumentStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Create an edubook admin account.')
    parser.add_argument('email')
    parser.add_argument('password')
    parser.add_argument('name')
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = AccountService(DocumentStore(db)).create_admin(args.email, args.password, args.name)
    except DomainError as exc:
        print(f'Could not create admin: {exc.message}', file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f'Created admin {admin.email} ({admin.id})')
    return 0


if __name__ == '__main__':
    sys.exit(main())
