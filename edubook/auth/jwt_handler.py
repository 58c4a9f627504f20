"""Bearer tokens bound to a sign-in session.

Every token names the account (``sub``) and the session it was issued for
(``sid``); revoking the session invalidates the token before it expires.
"""

from datetime import datetime, timedelta, timezone

import jwt

from edubook.core import config

REQUIRED_CLAIMS = ['sub', 'sid', 'exp', 'iat']


def create_access_token(subject: str, session_id: str, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    claims = {
        'sub': subject,
        'sid': session_id,
        'iat': issued_at,
        'exp': issued_at + lifetime,
    }
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={'require': REQUIRED_CLAIMS},
    )
