import pytest

from models.user import Role
from stores.memory import InMemoryStore
from utils.access_gate import (
    Allow,
    Authenticated,
    Pending,
    RedirectTo,
    Unauthenticated,
    Unknown,
    authorize,
    dashboard_path,
)
from utils.errors import TransientError
from utils.jwt import create_access_token
from utils.security import load_session


def test_unknown_session_waits_instead_of_redirecting():
    assert authorize(Unknown(), ["farmer"]) == Pending()


def test_unauthenticated_goes_to_login_not_home():
    assert authorize(Unauthenticated(), ["farmer"]) == RedirectTo("/login")
    assert authorize(Unauthenticated()) == RedirectTo("/login")


def test_wrong_role_goes_home_not_login():
    session = Authenticated(user_id="u1", role=Role.BUYER)
    assert authorize(session, ["farmer"]) == RedirectTo("/")


def test_matching_role_allowed():
    session = Authenticated(user_id="u1", role=Role.FARMER)
    assert authorize(session, ["farmer", "admin"]) == Allow()


def test_no_required_roles_only_needs_a_session():
    for role in Role:
        assert authorize(Authenticated(user_id="u1", role=role)) == Allow()
        assert authorize(Authenticated(user_id="u1", role=role), []) == Allow()


def test_required_roles_are_case_insensitive():
    session = Authenticated(user_id="u1", role=Role.ADMIN)
    assert authorize(session, ["Admin"]) == Allow()
    assert authorize(session, [" ADMIN "]) == Allow()


def test_authorize_leaves_session_untouched():
    session = Authenticated(user_id="u1", role=Role.BUYER)
    authorize(session, ["farmer"])
    assert session == Authenticated(user_id="u1", role=Role.BUYER)


def test_role_parse():
    assert Role.parse("Admin") is Role.ADMIN
    assert Role.parse("farmer") is Role.FARMER
    assert Role.parse(Role.BUYER) is Role.BUYER
    with pytest.raises(ValueError):
        Role.parse("superuser")
    with pytest.raises(ValueError):
        Role.parse(None)


def test_dashboard_path():
    assert dashboard_path(Role.FARMER) == "/dashboard/farmer"


# -------------------------------------------------
# Session resolution
# -------------------------------------------------

class FlakyStore(InMemoryStore):
    async def get_user(self, user_id):
        raise TransientError("Storage backend unavailable")


async def _user(store, role="buyer"):
    return await store.create_user({
        "email": "someone@example.com",
        "full_name": "Someone",
        "role": role,
        "password_hash": "x",
        "created_at": None,
    })


async def test_valid_token_resolves_role_from_store():
    store = InMemoryStore()
    user = await _user(store, role="Farmer")
    token = create_access_token({"sub": user["id"], "role": "buyer"})

    session = await load_session(token, store)

    assert session.state == Authenticated(user_id=user["id"], role=Role.FARMER)
    assert session.user["id"] == user["id"]


async def test_missing_or_garbage_token_is_unauthenticated():
    store = InMemoryStore()
    assert (await load_session(None, store)).state == Unauthenticated()
    assert (await load_session("not-a-jwt", store)).state == Unauthenticated()


async def test_token_for_deleted_user_is_unauthenticated():
    store = InMemoryStore()
    user = await _user(store)
    token = create_access_token({"sub": user["id"], "role": "buyer"})
    await store.delete_user(user["id"])

    assert (await load_session(token, store)).state == Unauthenticated()


async def test_revoked_token_is_unauthenticated():
    store = InMemoryStore()
    user = await _user(store)
    token = create_access_token({"sub": user["id"], "role": "buyer"})

    session = await load_session(token, store)
    await store.revoke_session(session.claims["jti"], session.claims["exp"])

    assert (await load_session(token, store)).state == Unauthenticated()


async def test_backend_failure_fails_closed_with_error():
    token = create_access_token({"sub": "u1", "role": "admin"})

    session = await load_session(token, FlakyStore())

    assert isinstance(session.state, Unauthenticated)
    assert session.state.error == "Storage backend unavailable"
    assert session.user is None


async def test_unknown_stored_role_is_unauthenticated():
    store = InMemoryStore()
    user = await _user(store, role="superuser")
    token = create_access_token({"sub": user["id"]})

    assert (await load_session(token, store)).state == Unauthenticated()
