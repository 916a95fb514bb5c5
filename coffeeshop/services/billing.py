from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import logging

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coffeeshop.models.core import Order, OrderItem, OrderAdditionalFee

logger = logging.getLogger(__name__)

def _money(x) -> float:
    return float(Decimal(str(x or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))

def item_subtotal(price, quantity) -> float:
    return _money(Decimal(str(price)) * int(quantity))

def compute_total(items: list[dict], fees: list[dict] | None = None) -> float:
    """Order total at creation: sum of item subtotals plus every additional fee.

    ``items`` carry ``price`` and ``quantity``; ``fees`` carry ``fee_amount``.
    """
    total = Decimal("0")
    for it in items:
        total += Decimal(str(it["price"])) * int(it["quantity"])
    for f in fees or []:
        total += Decimal(str(f["fee_amount"]))
    return _money(total)

def order_totals(db: Session, order_id: str) -> dict:
    items = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()
    fees = db.query(OrderAdditionalFee).filter(OrderAdditionalFee.order_id == order_id).all()
    subtotal = sum((Decimal(str(i.subtotal)) for i in items), Decimal("0"))
    fee_total = sum((Decimal(str(f.fee_amount)) for f in fees), Decimal("0"))
    return {
        "items": _money(subtotal),
        "fees": _money(fee_total),
        "total": _money(subtotal + fee_total),
    }

def replace_lines(db: Session, order_id: str, items: list[dict] | None, fees: list[dict] | None) -> None:
    """Swap an order's items and/or fees for new ones. ``None`` leaves that side alone."""
    if items is not None:
        db.query(OrderItem).filter(OrderItem.order_id == order_id).delete()
        for it in items:
            db.add(OrderItem(
                order_id=order_id,
                coffee_id=it.get("coffee_id"),
                variant_id=it.get("variant_id"),
                coffee_name=it["coffee_name"],
                variant_size=it.get("variant_size"),
                price=it["price"],
                quantity=it["quantity"],
                subtotal=item_subtotal(it["price"], it["quantity"]),
                item_notes=it.get("item_notes") or None,
            ))
    if fees is not None:
        db.query(OrderAdditionalFee).filter(OrderAdditionalFee.order_id == order_id).delete()
        for f in fees:
            db.add(OrderAdditionalFee(order_id=order_id, fee_name=f["fee_name"], fee_amount=f["fee_amount"]))

def create_order(db: Session, fields: dict, items: list[dict], fees: list[dict] | None = None) -> Order:
    """Insert an order with its lines under a fresh daily order number.

    The number is a per-day sequence (``ORD-YYYYMMDD-0001``); a collision on
    the unique column is retried a few times before giving up.
    """
    today = datetime.now(timezone.utc).date()
    prefix = f"ORD-{today.strftime('%Y%m%d')}"
    start_n = int(db.query(func.count(Order.id)).filter(Order.order_number.like(f"{prefix}-%")).scalar() or 0)

    for attempt in range(3):
        order_no = f"{prefix}-{start_n + 1 + attempt:04d}"
        try:
            o = Order(order_number=order_no, **fields)
            db.add(o)
            db.flush()
            replace_lines(db, o.id, items, fees)
            db.commit()
            db.refresh(o)
            logger.info("created order %s (%s) total=%s", o.order_number, o.id, o.total_amount)
            return o
        except IntegrityError:
            db.rollback()
            logger.warning("order number %s taken, retrying", order_no)

    raise HTTPException(409, detail="Could not allocate a unique order number")
