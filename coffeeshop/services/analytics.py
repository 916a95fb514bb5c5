"""Dashboard numbers, recomputed from orders on every call."""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from coffeeshop.models.core import Coffee, CoffeeVariant, Order, OrderItem, OrderStatus
from coffeeshop.services.billing import _money
from coffeeshop.services.costing import profitability_status

PERIODS = ("daily", "monthly", "yearly")


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    lo = datetime.combine(start, time.min).replace(tzinfo=timezone.utc)
    hi = datetime.combine(end, time.max).replace(tzinfo=timezone.utc)
    return lo, hi


def bucket_key(d: date, period: str) -> str:
    if period == "yearly":
        return d.strftime("%Y")
    if period == "monthly":
        return d.strftime("%Y-%m")
    return d.strftime("%Y-%m-%d")


def _bucket_keys(start: date, end: date, period: str) -> list[str]:
    keys: list[str] = []
    cur = start
    while cur <= end:
        key = bucket_key(cur, period)
        if key not in keys:
            keys.append(key)
        if period == "yearly":
            cur = date(cur.year + 1, 1, 1)
        elif period == "monthly":
            cur = date(cur.year + (cur.month // 12), cur.month % 12 + 1, 1)
        else:
            cur += timedelta(days=1)
    return keys


def growth(today_value, yesterday_value) -> float:
    """Percent change day over day; 0 when there is nothing to compare against."""
    y = float(yesterday_value or 0)
    if y <= 0:
        return 0.0
    return (float(today_value or 0) - y) / y * 100


def margin(profit, revenue) -> float:
    revenue = float(revenue or 0)
    return float(profit or 0) / revenue * 100 if revenue > 0 else 0.0


def _order_lines(db: Session, order_ids: list[str]) -> dict[str, list[tuple[OrderItem, CoffeeVariant | None]]]:
    out: dict[str, list] = defaultdict(list)
    if not order_ids:
        return out
    rows = (
        db.query(OrderItem, CoffeeVariant)
          .outerjoin(CoffeeVariant, CoffeeVariant.id == OrderItem.variant_id)
          .filter(OrderItem.order_id.in_(order_ids))
          .all()
    )
    for item, variant in rows:
        out[item.order_id].append((item, variant))
    return out


def _line_cost_profit(item: OrderItem, variant: CoffeeVariant | None) -> tuple[Decimal, Decimal]:
    qty = int(item.quantity or 0)
    cost = Decimal(str(variant.cost_price or 0)) * qty if variant else Decimal("0")
    revenue = Decimal(str(item.price or 0)) * qty
    return cost, revenue - cost


def product_profitability(db: Session, thresholds=(30, 20, 10, 0)) -> list[dict]:
    rows = (
        db.query(CoffeeVariant, Coffee.name)
          .join(Coffee, Coffee.id == CoffeeVariant.coffee_id)
          .all()
    )
    out = []
    for v, coffee_name in rows:
        pct = float(v.profit_percentage or 0)
        out.append({
            "id": v.id,
            "name": f"{coffee_name} - {v.size}",
            "price": float(v.price or 0),
            "cost_price": float(v.cost_price or 0),
            "profit_amount": float(v.profit_amount or 0),
            "profit_percentage": pct,
            "status": profitability_status(pct, thresholds),
        })
    out.sort(key=lambda r: r["profit_percentage"], reverse=True)
    return out


def top_products(lines: list[tuple[OrderItem, CoffeeVariant | None]], limit: int = 10) -> list[dict]:
    sales: dict[str, dict] = {}
    for item, _variant in lines:
        key = f"{item.coffee_name} - {item.variant_size}" if item.variant_size else item.coffee_name
        row = sales.setdefault(key, {"name": key, "quantity": 0, "revenue": 0.0})
        row["quantity"] += int(item.quantity or 0)
        row["revenue"] += float(item.price or 0) * int(item.quantity or 0)
    return sorted(sales.values(), key=lambda r: r["revenue"], reverse=True)[:limit]


def dashboard(
    db: Session,
    start: date,
    end: date,
    period: str = "daily",
    today: date | None = None,
    thresholds=(30, 20, 10, 0),
) -> dict:
    if period not in PERIODS:
        raise ValueError(f"period must be one of {', '.join(PERIODS)}")
    today = today or datetime.now(timezone.utc).date()
    lo, hi = day_bounds(start, end)

    orders = (
        db.query(Order)
          .filter(Order.created_at >= lo, Order.created_at <= hi)
          .order_by(Order.created_at.asc())
          .all()
    )
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    lines_by_order = _order_lines(db, [o.id for o in completed])

    chart = {k: {"date": k, "revenue": 0.0, "profit": 0.0, "orders": 0, "cost": 0.0}
             for k in _bucket_keys(start, end, period)}

    revenue = Decimal("0")
    total_cost = Decimal("0")
    total_profit = Decimal("0")
    today_orders, today_revenue, yesterday_revenue = 0, Decimal("0"), Decimal("0")
    all_lines = []

    for o in completed:
        amount = Decimal(str(o.total_amount or 0))
        revenue += amount
        order_cost = order_profit = Decimal("0")
        for item, variant in lines_by_order.get(o.id, []):
            cost, profit = _line_cost_profit(item, variant)
            order_cost += cost
            order_profit += profit
            all_lines.append((item, variant))
        total_cost += order_cost
        total_profit += order_profit

        created = o.created_at.date()
        bucket = chart.get(bucket_key(created, period))
        if bucket is not None:
            bucket["revenue"] += float(amount)
            bucket["orders"] += 1
            bucket["cost"] += float(order_cost)
            bucket["profit"] += float(order_profit)

        if created == today:
            today_orders += 1
            today_revenue += amount
        elif created == today - timedelta(days=1):
            yesterday_revenue += amount

    n = len(completed)
    return {
        "summary": {
            "total_orders": n,
            "total_revenue": _money(revenue),
            "total_profit": _money(total_profit),
            "total_cost": _money(total_cost),
            "profit_margin": margin(total_profit, revenue),
            "average_order_value": _money(revenue / n) if n else 0.0,
            "today_orders": today_orders,
            "today_revenue": _money(today_revenue),
            "revenue_growth": growth(today_revenue, yesterday_revenue),
        },
        "chart_data": sorted(chart.values(), key=lambda r: r["date"]),
        "product_profitability": product_profitability(db, thresholds),
        "top_products": top_products(all_lines),
        "period": period,
        "date_range": {"from": start.isoformat(), "to": end.isoformat()},
    }
