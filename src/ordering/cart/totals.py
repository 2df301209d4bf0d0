"""Cart totals: a pure recomputation from lines, coupons and pricing policy.

Steps, in order:

1. subtotal over non-expired lines, variant price adjustments included;
2. shipping, free above the threshold and on an empty cart unless the
   policy charges the baseline fee there;
3. each coupon's discount re-derived from its type and value;
4. tax on the subtotal;
5. total, clamped at zero.

All amounts are rounded to two decimal places.
"""

from datetime import UTC, datetime

from protean.fields import Float, Integer

from ordering.cart.coupon_rules import discount_for
from ordering.cart.pricing import PricingPolicy
from ordering.domain import ordering


@ordering.value_object(part_of="ShoppingCart")
class CartTotals:
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    total = Float(default=0.0)
    item_count = Integer(default=0)
    unique_items = Integer(default=0)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Relational providers hand back naive timestamps; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def effective_unit_price(item) -> float:
    return (item.unit_price or 0.0) + (item.variant_price_adjustment or 0.0)


def is_live(item, now: datetime) -> bool:
    expires_at = ensure_utc(item.expires_at)
    return expires_at is None or expires_at > now


def live_items(items, now: datetime) -> list:
    return [item for item in items if is_live(item, now)]


def shipping_for(subtotal: float, has_items: bool, policy: PricingPolicy) -> float:
    if not has_items:
        return policy.shipping_fee if policy.charge_shipping_on_empty_cart else 0.0
    return 0.0 if subtotal > policy.free_shipping_threshold else policy.shipping_fee


def coupon_discounts(coupons, subtotal: float, shipping: float) -> dict[str, float]:
    return {coupon.code: discount_for(coupon.coupon_type, coupon.value, subtotal, shipping) for coupon in coupons}


def recompute_totals(items, coupons, policy: PricingPolicy, now: datetime | None = None) -> CartTotals:
    now = ensure_utc(now) or datetime.now(UTC)
    lines = live_items(items, now)

    subtotal = round(sum(effective_unit_price(item) * item.quantity for item in lines), 2)
    shipping = round(shipping_for(subtotal, bool(lines), policy), 2)
    discount = round(sum(coupon_discounts(coupons, subtotal, shipping).values()), 2)
    tax = round(subtotal * policy.tax_rate, 2)
    total = round(max(0.0, subtotal - discount + tax + shipping), 2)

    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=total,
        item_count=sum(item.quantity for item in lines),
        unique_items=len(lines),
    )
