"""Shopping Cart aggregate (CQRS): one cart per shopper, keyed by the owner.

Lines capture the product's name, SKU and price at the time they are added,
so later catalogue changes do not silently reprice a cart. Totals are never
edited directly; every mutation ends by recomputing them from the lines and
the applied coupons.

A cart that sat idle for longer than the policy's inactivity window is
flagged abandoned when the next activity arrives or when the maintenance
sweep finds it. Abandoned carts are never deleted.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.coupon_rules import CouponType, normalise_code
from ordering.cart.events import (
    CartAbandoned,
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from ordering.cart.totals import CartTotals, coupon_discounts, ensure_utc, live_items, recompute_totals
from ordering.domain import ordering
from shared.errors import EmptyCart, InvalidQuantity, NotFound, ProductUnavailable


@dataclass(frozen=True)
class Variant:
    """A selectable product option such as ``size=L``."""

    name: str
    value: str
    price_adjustment: float = 0.0

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.value)

    @property
    def label(self) -> str:
        return f"{self.name}={self.value}"

    @classmethod
    def from_mapping(cls, data) -> "Variant | None":
        if not data:
            return None
        if isinstance(data, cls):
            return data
        return cls(
            name=data["name"],
            value=data["value"],
            price_adjustment=float(data.get("price_adjustment") or 0.0),
        )


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    position = Integer(default=0)
    product_id = Identifier(required=True)
    name = String(max_length=255)
    sku = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant_name = String(max_length=100)
    variant_value = String(max_length=100)
    variant_price_adjustment = Float(default=0.0)
    in_stock = Boolean(default=True)
    available_quantity = Integer(default=0)
    added_at = DateTime()
    updated_at = DateTime()
    expires_at = DateTime()

    @property
    def variant_key(self) -> tuple[str, str]:
        return (self.variant_name or "", self.variant_value or "")

    @property
    def variant_label(self) -> str | None:
        if not self.variant_name:
            return None
        return f"{self.variant_name}={self.variant_value}"


@ordering.entity(part_of="ShoppingCart")
class AppliedCoupon:
    code = String(required=True, max_length=50)
    coupon_type = String(required=True, choices=CouponType)
    value = Float(default=0.0)
    discount = Float(default=0.0)
    applied_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    owner_id = Identifier(required=True)
    items = HasMany(CartItem)
    applied_coupons = HasMany(AppliedCoupon)
    totals = ValueObject(CartTotals)
    last_activity_at = DateTime()
    is_abandoned = Boolean(default=False)
    abandoned_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id, policy, now=None):
        """A new, empty cart. The owner id doubles as the cart id."""
        now = now or datetime.now(UTC)
        return cls(
            id=owner_id,
            owner_id=owner_id,
            totals=recompute_totals([], [], policy, now),
            last_activity_at=now,
            is_abandoned=False,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list:
        return sorted(self.items, key=lambda item: item.position or 0)

    def live_lines(self, now=None) -> list:
        return live_items(self.lines, ensure_utc(now) or datetime.now(UTC))

    @property
    def coupon_codes(self) -> list[str]:
        return [coupon.code for coupon in self.applied_coupons]

    def find_line(self, product_id, variant=None):
        key = variant.key if variant else ("", "")
        return next(
            (i for i in self.items if str(i.product_id) == str(product_id) and i.variant_key == key),
            None,
        )

    def _resolve_line(self, product_id, variant):
        line = self.find_line(product_id, variant)
        if line is None and variant is None:
            candidates = [i for i in self.items if str(i.product_id) == str(product_id)]
            if len(candidates) == 1:
                line = candidates[0]
        return line

    # -------------------------------------------------------------------
    # Bookkeeping shared by every mutation
    # -------------------------------------------------------------------
    def _touch(self, policy, now):
        previous = ensure_utc(self.last_activity_at)
        if not self.is_abandoned and previous is not None and now - previous > policy.idle_window:
            self.mark_abandoned(previous + policy.idle_window)

        self.last_activity_at = now
        self.updated_at = now

    def recalculate(self, policy, now=None):
        """Recompute totals and each coupon's discount from the current lines."""
        now = ensure_utc(now) or datetime.now(UTC)
        totals = recompute_totals(self.items, self.applied_coupons, policy, now)
        discounts = coupon_discounts(self.applied_coupons, totals.subtotal, totals.shipping)
        for coupon in self.applied_coupons:
            if coupon.discount != discounts[coupon.code]:
                coupon.discount = discounts[coupon.code]
        self.totals = totals

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity, policy, variant=None, now=None):
        """Add ``quantity`` of ``product`` or grow the matching line.

        ``product`` is the catalogue snapshot (name, sku, price, sellable
        quantity) taken just before the call.
        """
        if quantity is None or quantity < 1:
            raise InvalidQuantity({"quantity": ["Quantity must be at least 1"]}, quantity=quantity)

        now = ensure_utc(now) or datetime.now(UTC)
        existing = self.find_line(product.product_id, variant)
        requested = quantity + (existing.quantity if existing else 0)
        if product.sellable < requested:
            raise ProductUnavailable(
                {"quantity": [f"Only {product.sellable} of {product.name} available, {requested} requested"]},
                product_id=str(product.product_id),
                available=product.sellable,
                requested=requested,
            )

        if existing:
            existing.quantity = requested
            existing.in_stock = product.sellable > 0
            existing.available_quantity = product.sellable
            existing.updated_at = now
        else:
            positions = [i.position or 0 for i in self.items]
            self.add_items(
                CartItem(
                    position=max(positions, default=-1) + 1,
                    product_id=product.product_id,
                    name=product.name,
                    sku=product.sku,
                    unit_price=product.price,
                    quantity=quantity,
                    variant_name=variant.name if variant else None,
                    variant_value=variant.value if variant else None,
                    variant_price_adjustment=variant.price_adjustment if variant else 0.0,
                    in_stock=product.sellable > 0,
                    available_quantity=product.sellable,
                    added_at=now,
                    updated_at=now,
                )
            )

        self._touch(policy, now)
        self.recalculate(policy, now)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product.product_id),
                variant=variant.label if variant else None,
                quantity=quantity,
                line_quantity=requested,
            )
        )

    def set_quantity(self, product_id, quantity, policy, variant=None, sellable=None, now=None):
        """Set a line's quantity. Zero or less removes the line, if there is one."""
        now = ensure_utc(now) or datetime.now(UTC)
        line = self._resolve_line(product_id, variant)

        if quantity is None or quantity <= 0:
            if line is not None:
                self._drop_lines([line], policy, now)
            return

        if line is None:
            raise NotFound({"product_id": [f"Product {product_id} is not in the cart"]}, product_id=str(product_id))

        if sellable is not None and sellable < quantity:
            raise ProductUnavailable(
                {"quantity": [f"Only {sellable} of {line.name} available, {quantity} requested"]},
                product_id=str(product_id),
                available=sellable,
                requested=quantity,
            )

        previous_quantity = line.quantity
        line.quantity = quantity
        line.updated_at = now
        if sellable is not None:
            line.in_stock = sellable > 0
            line.available_quantity = sellable

        self._touch(policy, now)
        self.recalculate(policy, now)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant=line.variant_label,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, policy, variant=None, now=None):
        """Remove the matching line, or every variant of the product when ``variant`` is None."""
        now = ensure_utc(now) or datetime.now(UTC)
        if variant is None:
            doomed = [i for i in self.items if str(i.product_id) == str(product_id)]
        else:
            line = self.find_line(product_id, variant)
            doomed = [line] if line else []
        self._drop_lines(doomed, policy, now)

    def _drop_lines(self, lines, policy, now):
        for line in lines:
            self.remove_items(line)

        self._touch(policy, now)
        self.recalculate(policy, now)

        for line in lines:
            self.raise_(
                CartItemRemoved(
                    cart_id=str(self.id),
                    product_id=str(line.product_id),
                    variant=line.variant_label,
                    quantity=line.quantity,
                )
            )

    def clear(self, policy, now=None):
        """Remove every line and coupon and reset the abandonment flag."""
        now = ensure_utc(now) or datetime.now(UTC)
        for item in list(self.items):
            self.remove_items(item)
        for coupon in list(self.applied_coupons):
            self.remove_applied_coupons(coupon)

        self.is_abandoned = False
        self.abandoned_at = None
        self.last_activity_at = now
        self.updated_at = now
        self.recalculate(policy, now)

        self.raise_(CartCleared(cart_id=str(self.id), cleared_at=now))

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, quote, policy, now=None):
        """Apply an evaluated coupon, replacing a previous one with the same code."""
        now = ensure_utc(now) or datetime.now(UTC)
        if not self.live_lines(now):
            raise EmptyCart({"cart": ["Coupons can only be applied to a cart with items"]})

        for coupon in [c for c in self.applied_coupons if c.code == quote.code]:
            self.remove_applied_coupons(coupon)

        self.add_applied_coupons(
            AppliedCoupon(
                code=quote.code,
                coupon_type=quote.coupon_type,
                value=quote.value,
                discount=quote.discount,
                applied_at=now,
            )
        )

        self._touch(policy, now)
        self.recalculate(policy, now)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                code=quote.code,
                coupon_type=quote.coupon_type,
                discount=next(c.discount for c in self.applied_coupons if c.code == quote.code),
            )
        )

    def remove_coupon(self, code, policy, now=None):
        """Drop an applied coupon. Removing a coupon that is not applied changes nothing."""
        normalised = normalise_code(code)
        coupon = next((c for c in self.applied_coupons if c.code == normalised), None)
        if coupon is None:
            return

        now = ensure_utc(now) or datetime.now(UTC)
        self.remove_applied_coupons(coupon)
        self._touch(policy, now)
        self.recalculate(policy, now)

        self.raise_(CartCouponRemoved(cart_id=str(self.id), code=normalised))

    # -------------------------------------------------------------------
    # Abandonment
    # -------------------------------------------------------------------
    def is_idle(self, policy, now) -> bool:
        last_activity = ensure_utc(self.last_activity_at)
        return last_activity is not None and ensure_utc(now) - last_activity > policy.idle_window

    def mark_abandoned(self, abandoned_at):
        """Flag the cart abandoned. The flag stays set until the cart is cleared."""
        if self.is_abandoned:
            return

        self.is_abandoned = True
        self.abandoned_at = abandoned_at

        self.raise_(
            CartAbandoned(
                cart_id=str(self.id),
                owner_id=str(self.owner_id),
                item_count=self.totals.item_count if self.totals else 0,
                total=self.totals.total if self.totals else 0.0,
                abandoned_at=abandoned_at,
            )
        )
