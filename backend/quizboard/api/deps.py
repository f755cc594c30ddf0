"""FastAPI dependencies shared across routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from quizboard.core.security import decode_session_token
from quizboard.schemas.session import SessionRead

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionRead:
    """Decode the session credential, or 401.

    The username is trusted as-is; no user lookup happens here.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session credential",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session = decode_session_token(credentials.credentials)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session credential",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
