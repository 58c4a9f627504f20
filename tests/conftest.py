import itertools
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from edubook.database import Base  # noqa: E402
from edubook.models.account import Actor  # noqa: E402
from edubook.models.document import Document  # noqa: E402
from edubook.services.accounts import AccountService  # noqa: E402
from edubook.store.documents import DocumentStore  # noqa: E402
from edubook.store.live import ListenerHub  # noqa: E402

DEFAULT_PASSWORD = 'secret123'


@pytest.fixture
def document_db():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[Document.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[Document.__table__])


@pytest.fixture
def hub() -> ListenerHub:
    return ListenerHub()


@pytest.fixture
def store(document_db, hub) -> DocumentStore:
    return DocumentStore(document_db, hub)


@pytest.fixture
def register(store):
    """Create an account through registration and return its actor."""
    counter = itertools.count(1)
    service = AccountService(store)

    def _register(role: str = 'student', name: str | None = None, email: str | None = None, **profile) -> Actor:
        number = next(counter)
        if role == 'teacher':
            profile.setdefault('department', 'Science')
        account = service.register(
            email or f'{role}{number}@school.edu',
            DEFAULT_PASSWORD,
            name or f'{role.title()} {number}',
            role,
            **profile,
        )
        return Actor.from_account(account)

    return _register


@pytest.fixture
def admin(store) -> Actor:
    account = AccountService(store).create_admin('admin@school.edu', DEFAULT_PASSWORD, 'Site Admin')
    return Actor.from_account(account)
