import csv
import io
from collections import defaultdict
from datetime import date

from sqlalchemy.orm import Session

from coffeeshop.models.core import Order, OrderItem
from coffeeshop.services.analytics import day_bounds
from coffeeshop.services.billing import _money

EXPORT_COLUMNS = [
    "order_id",
    "order_number",
    "order_date",
    "customer_name",
    "customer_phone",
    "product_name",
    "variant_size",
    "quantity",
    "unit_price",
    "item_total",
    "item_notes",
    "order_total",
    "payment_method",
    "status",
    "order_notes",
]


def _orders_in_range(db: Session, start: date, end: date, newest_first: bool = False) -> list[Order]:
    lo, hi = day_bounds(start, end)
    order_by = Order.created_at.desc() if newest_first else Order.created_at.asc()
    return (
        db.query(Order)
          .filter(Order.created_at >= lo, Order.created_at <= hi)
          .order_by(order_by)
          .all()
    )


def _items_by_order(db: Session, order_ids: list[str]) -> dict[str, list[OrderItem]]:
    out: dict[str, list[OrderItem]] = defaultdict(list)
    if order_ids:
        for it in db.query(OrderItem).filter(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id).all():
            out[it.order_id].append(it)
    return out


def _pct(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def sales_report(db: Session, start: date, end: date) -> dict:
    """Sales overview across every order status in the range."""
    orders = _orders_in_range(db, start, end)
    items = _items_by_order(db, [o.id for o in orders])

    total_orders = len(orders)
    total_revenue = sum(float(o.total_amount or 0) for o in orders)

    products: dict[str, dict] = {}
    for o in orders:
        for it in items.get(o.id, []):
            name = it.coffee_name or "Unknown Product"
            row = products.setdefault(name, {"name": name, "quantity": 0, "revenue": 0.0})
            row["quantity"] += int(it.quantity or 0)
            row["revenue"] += float(it.price or 0) * int(it.quantity or 0)

    daily: dict[str, dict] = {}
    hourly: dict[int, dict] = {}
    statuses: dict[str, int] = defaultdict(int)
    payments: dict[str, dict] = {}
    for o in orders:
        amount = float(o.total_amount or 0)
        d = o.created_at.date().isoformat()
        day = daily.setdefault(d, {"date": d, "revenue": 0.0, "orders": 0})
        day["revenue"] += amount
        day["orders"] += 1

        h = hourly.setdefault(o.created_at.hour, {"hour": o.created_at.hour, "orders": 0, "revenue": 0.0})
        h["orders"] += 1
        h["revenue"] += amount

        statuses[o.status.value] += 1

        method = o.payment_method.value if o.payment_method else "cash"
        p = payments.setdefault(method, {"method": method, "count": 0, "revenue": 0.0})
        p["count"] += 1
        p["revenue"] += amount

    return {
        "total_revenue": _money(total_revenue),
        "total_orders": total_orders,
        "total_customers": len({o.customer_phone for o in orders}),
        "average_order_value": _money(total_revenue / total_orders) if total_orders else 0.0,
        "top_products": sorted(products.values(), key=lambda r: r["revenue"], reverse=True)[:5],
        "daily_sales": sorted(daily.values(), key=lambda r: r["date"]),
        "status_breakdown": [
            {"status": s, "count": c, "percentage": _pct(c, total_orders)} for s, c in statuses.items()
        ],
        "payment_method_breakdown": [
            {**p, "percentage": _pct(p["count"], total_orders)} for p in payments.values()
        ],
        "hourly_sales": sorted(hourly.values(), key=lambda r: r["hour"]),
    }


def export_rows(db: Session, start: date, end: date) -> list[dict]:
    orders = _orders_in_range(db, start, end, newest_first=True)
    items = _items_by_order(db, [o.id for o in orders])
    rows = []
    for o in orders:
        base = {
            "order_id": o.id,
            "order_number": o.order_number,
            "order_date": o.created_at.strftime("%d/%m/%Y %H:%M:%S"),
            "customer_name": o.customer_name or "",
            "customer_phone": o.customer_phone or "",
            "order_total": float(o.total_amount or 0),
            "payment_method": o.payment_method.value if o.payment_method else "cash",
            "status": o.status.value,
            "order_notes": o.customer_notes or "",
        }
        lines = items.get(o.id)
        if not lines:
            rows.append({**base, "product_name": "", "variant_size": "", "quantity": 0,
                         "unit_price": 0, "item_total": 0, "item_notes": ""})
            continue
        for it in lines:
            rows.append({
                **base,
                "product_name": it.coffee_name or "Unknown",
                "variant_size": it.variant_size or "",
                "quantity": it.quantity,
                "unit_price": float(it.price or 0),
                "item_total": float(it.price or 0) * int(it.quantity or 0),
                "item_notes": it.item_notes or "",
            })
    return rows


def to_csv(rows: list[dict]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()
