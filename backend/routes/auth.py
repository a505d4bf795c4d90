from fastapi import APIRouter, Depends, HTTPException, Response
from datetime import datetime

from config.env import ENV, ACCESS_TOKEN_DAYS, LOGIN_MAX_ATTEMPTS, LOGIN_WINDOW_SECONDS
from database import get_store
from models.user import Role, UserCreate, UserLogin
from utils.access_gate import Authenticated, Unauthenticated, dashboard_path
from utils.audit import log_audit
from utils.hash import hash_password, verify_password
from utils.jwt import create_access_token
from utils.rate_limiter import rate_limit, reset_rate_limit
from utils.security import SESSION_COOKIE, SessionContext, get_current_user, get_session
from utils.serializers import serialize_user
from utils.validators import normalize_email

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _issue_session(response: Response, user: dict) -> dict:
    token = create_access_token({
        "sub": user["id"],
        "role": user["role"],
    })

    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=ENV == "production",
        max_age=ACCESS_TOKEN_DAYS * 86400,
    )

    return {
        "access_token": token,
        "token_type": "bearer",
        "role": user["role"],
        "redirect_to": dashboard_path_for(user),
        "user": serialize_user(user),
    }


def dashboard_path_for(user: dict) -> str:
    return dashboard_path(Role.parse(user["role"]))


# ======================
# Sign up
# ======================

@router.post("/signup", status_code=201)
async def signup(data: UserCreate, response: Response, store=Depends(get_store)):
    now = datetime.utcnow()

    user = await store.create_user({
        "email": normalize_email(data.email),
        "full_name": data.full_name.strip(),
        "role": data.role.value,
        "password_hash": hash_password(data.password),
        "created_at": now,
        "last_active_at": now,
    })

    await log_audit(
        store,
        actor_id=user["id"],
        actor_role=user["role"],
        action="USER_SIGNED_UP",
        metadata={"email": user["email"]},
    )

    return _issue_session(response, user)


# ======================
# Sign in
# ======================

@router.post("/login")
async def login(data: UserLogin, response: Response, store=Depends(get_store)):
    email = normalize_email(data.email)
    limiter_key = f"login:{email}"

    rate_limit(
        key=limiter_key,
        max_requests=LOGIN_MAX_ATTEMPTS,
        window_seconds=LOGIN_WINDOW_SECONDS,
    )

    user = await store.get_user_by_email(email)
    if not user or not verify_password(data.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    reset_rate_limit(limiter_key)
    await store.touch_user(user["id"], datetime.utcnow())

    return _issue_session(response, user)


# ======================
# Sign out
# ======================

@router.post("/logout")
async def logout(
    response: Response,
    session: SessionContext = Depends(get_session),
    store=Depends(get_store),
):
    response.delete_cookie(SESSION_COOKIE)

    jti = session.claims.get("jti")
    if isinstance(session.state, Authenticated) and jti:
        exp = session.claims.get("exp")
        expires_at = datetime.utcfromtimestamp(exp) if exp else datetime.utcnow()
        await store.revoke_session(jti, expires_at)

    return {"message": "Signed out"}


# ======================
# Current User
# ======================

@router.get("/me")
async def me(user=Depends(get_current_user)):
    return serialize_user(user)


@router.get("/session")
async def session_state(session: SessionContext = Depends(get_session)):
    """
    Session state for clients deciding what to render; never 401s.
    """
    state = session.state
    if isinstance(state, Authenticated):
        return {
            "status": "authenticated",
            "user_id": state.user_id,
            "role": state.role.value,
        }

    body = {"status": "unauthenticated"}
    if isinstance(state, Unauthenticated) and state.error:
        body["error"] = state.error
    return body
