from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from decimal import Decimal

from config.constants import AMOUNT_MAX_DIGITS, QUANTITY_DECIMAL_PLACES
from database import get_store
from utils.audit import log_audit
from utils.purchases import purchase, summarize_sales
from utils.security import require_role
from utils.serializers import serialize_sale, serialize_summary

router = APIRouter(prefix="/api", tags=["Purchases"])


# =========================
# SCHEMAS
# =========================

class PurchaseRequest(BaseModel):
    listing_id: str
    # sign is checked by the purchase flow so it can report INVALID_QUANTITY
    quantity: Decimal = Field(..., max_digits=AMOUNT_MAX_DIGITS, decimal_places=QUANTITY_DECIMAL_PLACES)


# ======================================================
# PURCHASE (BUYER)
# ======================================================

@router.post("/purchases", status_code=201)
async def create_purchase(
    data: PurchaseRequest,
    buyer=Depends(require_role("buyer")),
    store=Depends(get_store),
):
    sale = await purchase(
        store,
        listing_id=data.listing_id,
        buyer_id=buyer["id"],
        quantity=data.quantity,
    )

    await log_audit(
        store,
        actor_id=buyer["id"],
        actor_role="buyer",
        action="PURCHASE_COMPLETED",
        metadata={
            "sale_id": sale["id"],
            "listing_id": sale["listing_id"],
            "quantity": str(sale["quantity"]),
            "total": str(sale["total"]),
        },
    )

    return {
        "message": "Purchase successful",
        "sale": serialize_sale(sale),
    }


# ======================================================
# BUYER PURCHASE HISTORY
# ======================================================

@router.get("/purchases")
async def my_purchases(
    buyer=Depends(require_role("buyer")),
    store=Depends(get_store),
):
    sales = await store.list_sales(buyer_id=buyer["id"])
    summary = summarize_sales(sales)

    return {
        "total_spent": float(summary["total_revenue"]),
        "count": summary["count"],
        "purchases": [serialize_sale(s) for s in sales],
    }


# ======================================================
# FARMER SALES HISTORY
# ======================================================

@router.get("/sales")
async def my_sales(
    farmer=Depends(require_role("farmer")),
    store=Depends(get_store),
):
    sales = await store.list_sales(farmer_id=farmer["id"])

    return {
        "summary": serialize_summary(summarize_sales(sales)),
        "sales": [serialize_sale(s) for s in sales],
    }
