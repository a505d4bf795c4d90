import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from database import get_store
from models.user import Role
from utils.access_gate import (
    Authenticated,
    LOGIN_PATH,
    Pending,
    RedirectTo,
    SessionState,
    Unauthenticated,
    authorize,
)
from utils.errors import TransientError
from utils.jwt import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "access_token"
SESSION_ERROR_HEADER = "X-Session-Error"


@dataclass
class SessionContext:
    state: SessionState
    user: Optional[dict] = None
    claims: dict = field(default_factory=dict)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def load_session(token: Optional[str], store) -> SessionContext:
    """
    Resolve a token into a session state. Fails closed: anything other than
    a valid, unrevoked token for an existing user is Unauthenticated.
    """
    if not token:
        return SessionContext(Unauthenticated())

    try:
        claims = decode_token(token)
    except JWTError:
        return SessionContext(Unauthenticated())

    user_id = claims.get("sub")
    if not user_id:
        return SessionContext(Unauthenticated())

    try:
        jti = claims.get("jti")
        if jti and await store.is_session_revoked(jti):
            return SessionContext(Unauthenticated())

        user = await store.get_user(user_id)
        if not user:
            return SessionContext(Unauthenticated())

        await store.touch_user(user["id"], datetime.utcnow())
    except TransientError as e:
        logger.warning("SESSION_CHECK_FAILED user=%s error=%s", user_id, e.detail)
        return SessionContext(Unauthenticated(error=e.detail))

    # role comes from the store, the token claim is informational only
    try:
        role = Role.parse(user.get("role"))
    except ValueError:
        logger.warning("SESSION_BAD_ROLE user=%s role=%r", user_id, user.get("role"))
        return SessionContext(Unauthenticated())

    return SessionContext(Authenticated(user_id=user["id"], role=role), user=user, claims=claims)


async def get_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store=Depends(get_store),
) -> SessionContext:
    return await load_session(_extract_token(request, credentials), store)


def _enforce(session: SessionContext, roles=None) -> dict:
    decision = authorize(session.state, roles)

    if isinstance(decision, Pending):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session check pending",
        )

    if isinstance(decision, RedirectTo):
        if decision.path == LOGIN_PATH:
            headers = {"WWW-Authenticate": "Bearer"}
            error = getattr(session.state, "error", None)
            if error:
                headers[SESSION_ERROR_HEADER] = error
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers=headers,
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return session.user


async def get_current_user(session: SessionContext = Depends(get_session)):
    return _enforce(session)


def require_role(*required_roles):
    roles = [Role.parse(r) for r in required_roles]

    async def checker(session: SessionContext = Depends(get_session)):
        return _enforce(session, roles)

    return checker
