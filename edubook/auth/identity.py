"""
Email/password identity provider.

Identities live in the ``identities`` collection with an argon2 hash. Every
successful sign-in opens a row in ``sessions`` whose id is carried in the
bearer token, so signing out revokes the token and wakes anyone watching
``identity_changes`` for that account.
"""

import logging
import re
import uuid

import jwt
from pydantic import BaseModel

from edubook.auth import jwt_handler
from edubook.auth.passwords import hash_password, needs_rehash, verify_password
from edubook.core import config
from edubook.core.clock import now_timestamp
from edubook.core.errors import AuthError
from edubook.store.collections import IDENTITIES, SESSIONS
from edubook.store.documents import DocumentStore
from edubook.store.live import Subscription

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class Identity(BaseModel):
    uid: str
    email: str


def normalize_email(email: str) -> str:
    normalized = (email or '').strip().lower()
    if not _EMAIL_PATTERN.match(normalized):
        raise AuthError('auth/invalid-email')
    return normalized


class IdentityProvider:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _find_by_email(self, email: str) -> dict | None:
        matches = self.store.query(IDENTITIES, {'email': email})
        return matches[0] if matches else None

    def get_identity(self, uid: str) -> Identity:
        document = self.store.get(IDENTITIES, uid)
        if document is None:
            raise AuthError('auth/user-not-found')
        return Identity(uid=uid, email=document['email'])

    def create_account(self, email: str, password: str) -> Identity:
        email = normalize_email(email)
        if len(password or '') < config.MIN_PASSWORD_LENGTH:
            raise AuthError(
                'auth/weak-password',
                f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters long',
            )
        if self._find_by_email(email) is not None:
            raise AuthError('auth/email-already-in-use')

        uid = self.store.add(IDENTITIES, {
            'email': email,
            'password_hash': hash_password(password),
            'disabled': False,
            'created_at': now_timestamp(),
        })
        logger.info('Created identity %s for %s', uid, email)
        return Identity(uid=uid, email=email)

    def authenticate(self, email: str, password: str) -> tuple[Identity, str]:
        email = normalize_email(email)
        document = self._find_by_email(email)
        if document is None:
            raise AuthError('auth/user-not-found')
        if document.get('disabled'):
            raise AuthError('auth/user-disabled')
        if not verify_password(document['password_hash'], password):
            raise AuthError('auth/wrong-password')

        if needs_rehash(document['password_hash']):
            self.store.update(IDENTITIES, document['id'], {'password_hash': hash_password(password)})

        session_id = uuid.uuid4().hex
        self.store.put(SESSIONS, session_id, {
            'account_id': document['id'],
            'active': True,
            'created_at': now_timestamp(),
        })
        token = jwt_handler.create_access_token(subject=document['id'], session_id=session_id)
        logger.info('Identity %s signed in', document['id'])
        return Identity(uid=document['id'], email=email), token

    def _decode(self, token: str) -> dict:
        try:
            payload = jwt_handler.decode_access_token(token)
        except jwt.PyJWTError as exc:
            raise AuthError('auth/invalid-token') from exc

        if not payload.get('sub') or not payload.get('sid'):
            raise AuthError('auth/invalid-token')
        return payload

    def resolve(self, token: str) -> Identity:
        payload = self._decode(token)
        session = self.store.get(SESSIONS, payload['sid'])
        if session is None or not session.get('active') or session.get('account_id') != payload['sub']:
            raise AuthError('auth/invalid-token')
        return self.get_identity(payload['sub'])

    def sign_out(self, token: str) -> None:
        payload = self._decode(token)
        if self.store.get(SESSIONS, payload['sid']) is None:
            raise AuthError('auth/invalid-token')
        self.store.update(SESSIONS, payload['sid'], {'active': False, 'ended_at': now_timestamp()})
        logger.info('Identity %s signed out', payload['sub'])

    def identity_changes(self, uid: str) -> Subscription:
        """Stream the signed-in identity for ``uid``, or None while signed out.

        Each call starts a fresh subscription from the current state.
        """
        identity = self.get_identity(uid)

        def current(sessions: list[dict]) -> Identity | None:
            return identity if any(session.get('active') for session in sessions) else None

        return self.store.add_live_listener(SESSIONS, {'account_id': uid}, transform=current)
