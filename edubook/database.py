from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from edubook.core import config


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_document_schema_checked = False


def ensure_document_schema() -> None:
    global _document_schema_checked

    if _document_schema_checked:
        return

    with _schema_lock:
        if _document_schema_checked:
            return

        inspector = inspect(engine)

        if 'documents' not in inspector.get_table_names():
            _document_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_documents_collection_seq ON documents(collection, seq)')
            )

        _document_schema_checked = True
