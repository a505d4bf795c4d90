from collections import Counter

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from config.constants import RECENT_ITEMS_LIMIT
from database import get_store
from models.user import Role
from utils.access_gate import Pending, RedirectTo, authorize, dashboard_path
from utils.purchases import summarize_sales
from utils.security import SESSION_ERROR_HEADER, SessionContext, get_session
from utils.serializers import serialize_sale, serialize_summary

router = APIRouter(prefix="/dashboard", tags=["Dashboards"])


def gate(session: SessionContext, roles=None):
    """
    Response to send instead of the view, or None when the view may render.
    """
    decision = authorize(session.state, roles)

    if isinstance(decision, Pending):
        return JSONResponse(status_code=202, content={"status": "loading"})

    if isinstance(decision, RedirectTo):
        response = RedirectResponse(decision.path, status_code=307)
        error = getattr(session.state, "error", None)
        if error:
            response.headers[SESSION_ERROR_HEADER] = error
        return response

    return None


@router.get("")
async def dashboard_home(session: SessionContext = Depends(get_session)):
    blocked = gate(session)
    if blocked:
        return blocked
    return RedirectResponse(dashboard_path(session.state.role), status_code=307)


# =========================
# FARMER
# =========================

@router.get("/farmer")
async def farmer_dashboard(
    session: SessionContext = Depends(get_session),
    store=Depends(get_store),
):
    blocked = gate(session, [Role.FARMER])
    if blocked:
        return blocked

    farmer = session.user
    listings = await store.list_listings(farmer_id=farmer["id"])
    sales = await store.list_sales(farmer_id=farmer["id"])

    return {
        "view": "farmer",
        "user": {"id": farmer["id"], "full_name": farmer.get("full_name")},
        "listings": {
            "total": len(listings),
            "active": sum(1 for l in listings if l["status"] == "active"),
        },
        "sales": serialize_summary(summarize_sales(sales)),
        "recent_sales": [serialize_sale(s) for s in sales[:RECENT_ITEMS_LIMIT]],
    }


# =========================
# BUYER
# =========================

@router.get("/buyer")
async def buyer_dashboard(
    session: SessionContext = Depends(get_session),
    store=Depends(get_store),
):
    blocked = gate(session, [Role.BUYER])
    if blocked:
        return blocked

    buyer = session.user
    purchases = await store.list_sales(buyer_id=buyer["id"])
    available = await store.list_listings(status="active", in_stock=True)
    summary = summarize_sales(purchases)

    return {
        "view": "buyer",
        "user": {"id": buyer["id"], "full_name": buyer.get("full_name")},
        "purchases": {
            "count": summary["count"],
            "total_spent": float(summary["total_revenue"]),
        },
        "available_listings": len(available),
        "recent_purchases": [serialize_sale(s) for s in purchases[:RECENT_ITEMS_LIMIT]],
    }


# =========================
# ADMIN
# =========================

@router.get("/admin")
async def admin_dashboard(
    session: SessionContext = Depends(get_session),
    store=Depends(get_store),
):
    blocked = gate(session, [Role.ADMIN])
    if blocked:
        return blocked

    users = await store.list_users()
    listings = await store.list_listings()
    sales = await store.list_sales()

    roles = Counter(u.get("role") for u in users)
    statuses = Counter(l["status"] for l in listings)

    return {
        "view": "admin",
        "users": {
            "total": len(users),
            "by_role": {r.value: roles.get(r.value, 0) for r in Role},
        },
        "listings": {
            "total": len(listings),
            "active": statuses.get("active", 0),
            "inactive": statuses.get("inactive", 0),
        },
        "sales": serialize_summary(summarize_sales(sales)),
    }
