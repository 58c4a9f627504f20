from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from edubook.auth.identity import IdentityProvider
from edubook.core.errors import AuthError
from edubook.database import SessionLocal
from edubook.models.account import Actor
from edubook.store.collections import USERS
from edubook.store.documents import DocumentStore

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store),
) -> Actor:
    token = credentials.credentials
    try:
        identity = IdentityProvider(store).resolve(token)
    except AuthError as exc:
        raise exc.to_http_exception() from exc

    account = store.get(USERS, identity.uid)
    if account is None:
        raise HTTPException(status_code=401, detail="User profile not found")
    return Actor(id=identity.uid, role=account["role"], email=account.get("email"), name=account.get("name"))
