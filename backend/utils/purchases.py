import logging
from datetime import datetime
from decimal import Decimal

from utils.errors import PurchaseRejected, RejectReason

logger = logging.getLogger(__name__)


async def purchase(
    store,
    *,
    listing_id: str,
    buyer_id: str,
    quantity: Decimal,
) -> dict:
    """
    Buy `quantity` units of a listing and return the recorded sale.

    Checks run in order and the first failure wins:
    positive quantity, listing exists and is active, enough stock.
    The price is read once, before the decrement, and is the one the
    sale is charged at. The decrement itself is a conditional update in
    the store, so concurrent buyers cannot both take the last units.
    If the sale cannot be written the decrement is given back.
    """
    if quantity is None or quantity <= 0:
        raise PurchaseRejected(RejectReason.INVALID_QUANTITY)

    listing = await store.get_listing(listing_id)
    if not listing or listing.get("status") != "active":
        raise PurchaseRejected(RejectReason.LISTING_UNAVAILABLE)

    if quantity > listing["quantity"]:
        raise PurchaseRejected(RejectReason.INSUFFICIENT_STOCK, available=listing["quantity"])

    unit_price = listing["unit_price"]

    updated = await store.decrement_stock(listing["id"], quantity)
    if updated is None:
        # lost a race against another purchase or an owner edit
        current = await store.get_listing(listing["id"])
        if not current or current.get("status") != "active":
            raise PurchaseRejected(RejectReason.LISTING_UNAVAILABLE)
        logger.info(
            "PURCHASE_CONFLICT listing=%s requested=%s available=%s",
            listing["id"], quantity, current["quantity"],
        )
        raise PurchaseRejected(RejectReason.INSUFFICIENT_STOCK, available=current["quantity"])

    sale = {
        "listing_id": listing["id"],
        "farmer_id": listing["farmer_id"],
        "buyer_id": buyer_id,
        "listing_name": listing.get("name"),
        "unit": listing.get("unit"),
        "quantity": quantity,
        "unit_price": unit_price,
        "total": quantity * unit_price,
        "created_at": datetime.utcnow(),
    }

    try:
        sale = await store.insert_sale(sale)
    except Exception:
        logger.exception("SALE_INSERT_FAILED listing=%s buyer=%s", listing["id"], buyer_id)
        await store.restore_stock(
            listing["id"],
            quantity,
            reactivate=updated.get("status") == "inactive",
        )
        raise

    logger.info(
        "PURCHASE_OK sale=%s listing=%s buyer=%s quantity=%s total=%s",
        sale["id"], listing["id"], buyer_id, quantity, sale["total"],
    )
    return sale


def summarize_sales(sales: list) -> dict:
    revenue = sum((s["total"] for s in sales), Decimal("0"))
    quantity = sum((s["quantity"] for s in sales), Decimal("0"))
    average = revenue / len(sales) if sales else Decimal("0")

    return {
        "count": len(sales),
        "total_revenue": revenue,
        "total_quantity": quantity,
        "average_sale": average,
    }
