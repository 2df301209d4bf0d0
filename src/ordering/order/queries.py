"""Read side of the order lifecycle.

Shoppers fetch one order or their own orders. Staff search every order and
read headline statistics for a recent period.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.cart.totals import ensure_utc
from ordering.order.order import Order, OrderStatus
from ordering.order.transitions import load_order
from shared.errors import Forbidden, NotFound

MAX_PAGE_SIZE = 100

STATS_PERIODS = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}
DEFAULT_STATS_PERIOD = "30d"

# Orders that count as revenue: the goods have left the warehouse
REVENUE_STATUSES = {OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value}

_SORT_KEYS = {
    "placed_at": lambda o: ensure_utc(o.placed_at),
    "total": lambda o: o.summary.total if o.summary else 0.0,
    "order_number": lambda o: o.order_number,
    "status": lambda o: o.status,
}


def _require_staff(actor):
    if actor is None or not actor.is_privileged:
        raise Forbidden({"actor": ["Only staff may search all orders"]}, actor_id=getattr(actor, "id", None))


def _orders(**filters) -> list[Order]:
    return current_domain.repository_for(Order)._dao.query.filter(**filters).all().items


def get_order(order_id, actor=None) -> Order:
    """Return the order. Shoppers only see their own; other orders look missing."""
    order = load_order(current_domain.repository_for(Order), order_id)
    if actor is not None and not actor.is_privileged and str(order.owner_id) != str(actor.id):
        raise NotFound({"order_id": [f"Order {order_id} does not exist"]}, order_id=str(order_id))
    return order


def list_orders(owner_id, status=None) -> list[Order]:
    """The shopper's orders, newest first, optionally narrowed to one status."""
    filters = {"owner_id": owner_id}
    if status:
        filters["status"] = status
    return sorted(_orders(**filters), key=_SORT_KEYS["placed_at"], reverse=True)


@dataclass
class OrderPage:
    orders: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 20


def search_orders(actor, status=None, owner_id=None, sort="-placed_at", page=1, per_page=20) -> OrderPage:
    """Every shopper's orders for staff: filtered, sorted and paginated.

    ``sort`` names one of placed_at, total, order_number or status; a
    leading ``-`` sorts descending.
    """
    _require_staff(actor)

    descending = sort.startswith("-")
    key = _SORT_KEYS.get(sort.lstrip("-"))
    if key is None:
        raise ValidationError({"sort": [f"Cannot sort orders by {sort!r}"]})
    if page < 1:
        raise ValidationError({"page": ["Page numbers start at 1"]})
    if not 1 <= per_page <= MAX_PAGE_SIZE:
        raise ValidationError({"per_page": [f"Page size must be between 1 and {MAX_PAGE_SIZE}"]})

    filters = {}
    if status:
        filters["status"] = status
    if owner_id:
        filters["owner_id"] = owner_id

    orders = sorted(_orders(**filters), key=key, reverse=descending)
    start = (page - 1) * per_page
    return OrderPage(orders=orders[start : start + per_page], total=len(orders), page=page, per_page=per_page)


def order_stats(actor, period=DEFAULT_STATS_PERIOD, now=None, top=10) -> dict:
    """Order counts, status breakdown, revenue and best sellers for staff.

    Unrecognised periods fall back to the last 30 days.
    """
    _require_staff(actor)

    period = period if period in STATS_PERIODS else DEFAULT_STATS_PERIOD
    now = ensure_utc(now) or datetime.now(UTC)
    since = now - STATS_PERIODS[period]

    orders = _orders()
    recent = [o for o in orders if ensure_utc(o.placed_at) >= since]

    breakdown = defaultdict(lambda: {"count": 0, "total_value": 0.0})
    for order in orders:
        breakdown[order.status]["count"] += 1
        breakdown[order.status]["total_value"] += order.summary.total

    earning = [o for o in recent if o.status in REVENUE_STATUSES]
    total_revenue = round(sum(o.summary.total for o in earning), 2)

    daily = defaultdict(lambda: {"revenue": 0.0, "orders": 0})
    for order in earning:
        day = daily[ensure_utc(order.placed_at).date().isoformat()]
        day["revenue"] += order.summary.total
        day["orders"] += 1

    products = {}
    for order in orders:
        for item in order.items:
            entry = products.setdefault(
                str(item.product_id),
                {"product_id": str(item.product_id), "name": item.name, "total_sold": 0, "total_revenue": 0.0},
            )
            entry["total_sold"] += item.quantity
            entry["total_revenue"] += item.line_total

    return {
        "period": period,
        "total_orders": len(orders),
        "recent_orders": len(recent),
        "revenue": {
            "total_revenue": total_revenue,
            "average_order_value": round(total_revenue / len(earning), 2) if earning else 0.0,
            "order_count": len(earning),
        },
        "status_breakdown": [
            {"status": status, "count": values["count"], "total_value": round(values["total_value"], 2)}
            for status, values in sorted(breakdown.items())
        ],
        "daily_revenue": [
            {"date": date, "revenue": round(values["revenue"], 2), "orders": values["orders"]}
            for date, values in sorted(daily.items())
        ],
        "top_products": [
            {**entry, "total_revenue": round(entry["total_revenue"], 2)}
            for entry in sorted(products.values(), key=lambda e: (-e["total_sold"], e["product_id"]))[:top]
        ],
    }
