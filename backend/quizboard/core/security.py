"""Session credential encoding.

The engine does not authenticate anyone. A session is an opaque
``{username, loginTime}`` pair issued elsewhere; over HTTP it travels as a
signed JWT so that handlers can trust the username they are given.
"""

from datetime import datetime, timezone

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from quizboard.config import settings
from quizboard.schemas.session import SessionRead


def create_session_token(username: str, login_time: datetime | None = None) -> str:
    """Sign a session credential for *username*.

    Used by the external session issuer and by tests.
    """
    login_time = login_time or datetime.now(timezone.utc)
    claims = {"sub": username, "loginTime": login_time.isoformat()}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> SessionRead | None:
    """Decode and validate a session credential. Returns None on failure."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    try:
        return SessionRead(username=payload.get("sub"), login_time=payload.get("loginTime"))
    except PydanticValidationError:
        return None
