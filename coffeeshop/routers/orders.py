import logging
import math
import re
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from coffeeshop.db import get_db
from coffeeshop.deps import require_admin, get_store_config
from coffeeshop.models.core import Order, OrderStatus, OrderItem, OrderAdditionalFee, PaymentMethod
from coffeeshop.schemas.common import StoreSettings
from coffeeshop.schemas.orders import (
    CheckoutIn, FeeIn, ManualOrderIn, OrderItemIn, OrderOut, OrderUpdateIn,
)
from coffeeshop.services import billing, whatsapp

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])

STATUS_VALUES = [s.value for s in OrderStatus]


# ---------- helpers ----------

def _check_customer(name: str | None, phone: str | None, items: List[OrderItemIn]) -> None:
    if not name or not phone or not items:
        raise HTTPException(400, detail="Missing required fields: customer_name, customer_phone, items")
    digits = re.sub(r"\D", "", phone)
    if not 10 <= len(digits) <= 15:
        raise HTTPException(400, detail="Invalid phone number format")
    for it in items:
        if it.quantity < 1 or it.price < 0:
            raise HTTPException(400, detail="Each item needs a quantity of at least 1 and a non-negative price")

def _check_fees(fees: List[FeeIn]) -> None:
    for f in fees:
        if not f.fee_name or f.fee_amount is None or f.fee_amount < 0:
            raise HTTPException(
                400,
                detail="Invalid additional fee. Each fee must have fee_name and a non-negative fee_amount",
            )

def _parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise HTTPException(400, detail="Invalid status. Must be one of: " + ", ".join(STATUS_VALUES))

def _parse_payment(value: str) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        raise HTTPException(400, detail="Invalid payment method. Must be cash or transfer")

def _check_total(claimed: float | None, computed: float) -> None:
    # client totals are advisory; a disagreeing one is rejected rather than stored
    if claimed is not None and abs(Decimal(str(claimed)) - Decimal(str(computed))) > Decimal("0.005"):
        raise HTTPException(400, detail=f"Total amount does not match order lines (expected {computed})")

def _order_out(o: Order, items: List[OrderItem], fees: List[OrderAdditionalFee]) -> OrderOut:
    return OrderOut(
        id=o.id,
        order_number=o.order_number,
        customer_name=o.customer_name,
        customer_phone=o.customer_phone,
        customer_notes=o.customer_notes,
        total_amount=float(o.total_amount or 0),
        status=o.status.value,
        payment_method=o.payment_method.value,
        pickup_time=o.pickup_time,
        whatsapp_sent=bool(o.whatsapp_sent),
        created_at=o.created_at,
        items=[{
            "id": it.id,
            "variant_id": it.variant_id,
            "coffee_name": it.coffee_name,
            "variant_size": it.variant_size,
            "price": float(it.price),
            "quantity": it.quantity,
            "subtotal": float(it.subtotal),
            "item_notes": it.item_notes,
        } for it in items],
        additional_fees=[{"id": f.id, "fee_name": f.fee_name, "fee_amount": float(f.fee_amount)} for f in fees],
    )

def _load_out(db: Session, o: Order) -> OrderOut:
    items = db.query(OrderItem).filter(OrderItem.order_id == o.id).order_by(OrderItem.id).all()
    fees = db.query(OrderAdditionalFee).filter(OrderAdditionalFee.order_id == o.id).order_by(OrderAdditionalFee.id).all()
    return _order_out(o, items, fees)


# ---------- storefront ----------

@router.post("/orders", status_code=201)
def place_order(body: CheckoutIn, db: Session = Depends(get_db), cfg: StoreSettings = Depends(get_store_config)):
    """Checkout from the storefront. Returns the order and a WhatsApp link for the admin chat."""
    _check_customer(body.customer_name, body.customer_phone, body.items)
    items = [it.model_dump() for it in body.items]
    total = billing.compute_total(items)
    _check_total(body.total_amount, total)

    o = billing.create_order(db, {
        "customer_name": body.customer_name,
        "customer_phone": body.customer_phone,
        "customer_notes": body.customer_notes or None,
        "total_amount": total,
        "status": OrderStatus.PENDING,
        "payment_method": PaymentMethod(body.payment_method),
        "pickup_time": body.pickup_time,
        "whatsapp_sent": True,
    }, items)

    text = whatsapp.build_order_message(
        cfg.store_name, cfg.currency, body.customer_name, body.customer_phone, items,
    )
    return {
        "success": True,
        "message": "Order created successfully",
        "order": _load_out(db, o),
        "whatsapp_url": whatsapp.whatsapp_link(cfg.admin_whatsapp, text),
    }


# ---------- admin ----------

@router.get("/admin/orders")
def list_orders(
    page: int = 1,
    limit: int = 10,
    status: str = "all",
    search: str | None = None,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
):
    """Orders newest first, each with its items and fees.

    ``status=all`` disables the status filter; ``search`` matches customer
    name, phone or order number as a case-insensitive substring.
    """
    page = max(page, 1)
    limit = max(min(limit, 100), 1)

    q = db.query(Order)
    if status and status != "all":
        q = q.filter(Order.status == _parse_status(status))
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(or_(
            func.lower(Order.customer_name).like(like),
            func.lower(Order.customer_phone).like(like),
            func.lower(Order.order_number).like(like),
        ))

    total = q.count()
    rows = q.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    ids = [o.id for o in rows]
    items: dict[str, list] = {}
    fees: dict[str, list] = {}
    if ids:
        for it in db.query(OrderItem).filter(OrderItem.order_id.in_(ids)).order_by(OrderItem.id).all():
            items.setdefault(it.order_id, []).append(it)
        for f in db.query(OrderAdditionalFee).filter(OrderAdditionalFee.order_id.in_(ids)).order_by(OrderAdditionalFee.id).all():
            fees.setdefault(f.order_id, []).append(f)

    return {
        "orders": [_order_out(o, items.get(o.id, []), fees.get(o.id, [])) for o in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }

@router.post("/admin/orders", status_code=201)
def create_manual_order(body: ManualOrderIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    """Orders taken by staff (walk-in, phone). Any starting status is allowed."""
    _check_customer(body.customer_name, body.customer_phone, body.items)
    payment = _parse_payment(body.payment_method)
    st = _parse_status(body.status)
    _check_fees(body.additional_fees)

    items = [it.model_dump() for it in body.items]
    fees = [f.model_dump() for f in body.additional_fees]
    total = billing.compute_total(items, fees)
    _check_total(body.total_amount, total)

    o = billing.create_order(db, {
        "customer_name": body.customer_name,
        "customer_phone": body.customer_phone,
        "customer_notes": body.customer_notes or None,
        "total_amount": total,
        "status": st,
        "payment_method": payment,
        "pickup_time": body.pickup_time,
        "whatsapp_sent": False,
    }, items, fees)
    return {"success": True, "message": "Order created successfully", "order": _load_out(db, o)}

@router.put("/admin/orders/{order_id}")
def update_order(order_id: str, body: OrderUpdateIn, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    o = db.get(Order, order_id)
    if not o:
        raise HTTPException(404, detail="Order not found")

    replacing = body.items is not None or body.additional_fees is not None
    if replacing and o.status == OrderStatus.COMPLETED:
        raise HTTPException(400, detail="Cannot edit items for completed orders")

    if body.status is not None:
        new_status = _parse_status(body.status)
        if new_status != o.status:
            logger.info("order %s status %s -> %s", o.order_number, o.status.value, new_status.value)
        o.status = new_status
    if body.payment_method is not None:
        o.payment_method = _parse_payment(body.payment_method)
    if "customer_notes" in body.model_fields_set:
        o.customer_notes = body.customer_notes or None
    if "pickup_time" in body.model_fields_set:
        o.pickup_time = body.pickup_time

    if replacing:
        if body.items is not None and not body.items:
            raise HTTPException(400, detail="An order needs at least one item")
        if body.items is not None:
            for it in body.items:
                if it.quantity < 1 or it.price < 0:
                    raise HTTPException(400, detail="Each item needs a quantity of at least 1 and a non-negative price")
        if body.additional_fees is not None:
            _check_fees(body.additional_fees)
        billing.replace_lines(
            db, o.id,
            [it.model_dump() for it in body.items] if body.items is not None else None,
            [f.model_dump() for f in body.additional_fees] if body.additional_fees is not None else None,
        )
        db.flush()
        o.total_amount = billing.order_totals(db, o.id)["total"]
    elif body.total_amount is not None:
        o.total_amount = body.total_amount

    db.commit(); db.refresh(o)
    return {"success": True, "message": "Order updated successfully", "order": _load_out(db, o)}

@router.delete("/admin/orders/{order_id}")
def delete_order(order_id: str, db: Session = Depends(get_db), admin_id: int = Depends(require_admin)):
    o = db.get(Order, order_id)
    if not o:
        raise HTTPException(404, detail="Order not found")
    number = o.order_number
    db.query(OrderItem).filter(OrderItem.order_id == order_id).delete()
    db.query(OrderAdditionalFee).filter(OrderAdditionalFee.order_id == order_id).delete()
    db.delete(o)
    db.commit()
    logger.info("deleted order %s", number)
    return {"success": True, "message": "Order deleted successfully"}
