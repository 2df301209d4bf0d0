"""Cart Store: the application service shoppers' cart operations go through.

Catalogue lookups happen here, before a cart command is dispatched, so the
command handler works only on the cart. Every mutation holds the owner's
lock, which checkout holds too; a cart change therefore never interleaves
with a checkout of the same cart.
"""

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.abandonment import AbandonCart, abandonment_candidates
from ordering.cart.cart import ShoppingCart, Variant
from ordering.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, CreateCart, load_cart
from ordering.notifier import notify
from ordering.notifier.port import NotificationKind
from ordering.stock import get_stock_gateway
from shared.errors import InvalidQuantity, ProductUnavailable
from shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

cart_locks = KeyedLocks("cart")


def available_product(gateway, product_id):
    """Look the product up, rejecting missing and inactive products."""
    product = gateway.find(product_id)
    if product is None:
        raise ProductUnavailable({"product_id": [f"Product {product_id} does not exist"]}, product_id=str(product_id))
    if not product.is_active:
        raise ProductUnavailable(
            {"product_id": [f"{product.name} is not available for sale"]},
            product_id=str(product_id),
            status=product.status,
        )
    return product


class CartStore:
    def __init__(self, stock_gateway=None):
        self._stock_gateway = stock_gateway

    @property
    def stock(self):
        return self._stock_gateway or get_stock_gateway()

    def _load(self, owner_id) -> ShoppingCart:
        return load_cart(current_domain.repository_for(ShoppingCart), owner_id)

    def _ensure_cart(self, owner_id):
        current_domain.process(CreateCart(owner_id=owner_id), asynchronous=False)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_or_create(self, owner_id) -> ShoppingCart:
        with cart_locks.hold(owner_id):
            self._ensure_cart(owner_id)
            return self._load(owner_id)

    def summary(self, owner_id) -> dict:
        """Headline numbers for the shopper's cart; zeros when there is none."""
        try:
            cart = current_domain.repository_for(ShoppingCart).get(owner_id)
        except ObjectNotFoundError:
            cart = None

        totals = cart.totals if cart is not None else None
        return {
            "item_count": totals.item_count if totals else 0,
            "unique_items": totals.unique_items if totals else 0,
            "subtotal": totals.subtotal if totals else 0.0,
            "discount": totals.discount if totals else 0.0,
            "tax": totals.tax if totals else 0.0,
            "shipping": totals.shipping if totals else 0.0,
            "total": totals.total if totals else 0.0,
            "coupons": cart.coupon_codes if cart is not None else [],
        }

    # -------------------------------------------------------------------
    # Item operations
    # -------------------------------------------------------------------
    def add_item(self, owner_id, product_id, quantity, variant=None) -> ShoppingCart:
        if quantity is None or quantity < 1:
            raise InvalidQuantity({"quantity": ["Quantity must be at least 1"]}, quantity=quantity)
        variant = Variant.from_mapping(variant)

        with cart_locks.hold(owner_id):
            product = available_product(self.stock, product_id)
            self._ensure_cart(owner_id)
            current_domain.process(
                AddToCart(
                    owner_id=owner_id,
                    product_id=product.product_id,
                    quantity=quantity,
                    name=product.name,
                    sku=product.sku,
                    unit_price=product.price,
                    sellable=product.sellable,
                    variant_name=variant.name if variant else None,
                    variant_value=variant.value if variant else None,
                    variant_price_adjustment=variant.price_adjustment if variant else 0.0,
                ),
                asynchronous=False,
            )
            return self._load(owner_id)

    def update_quantity(self, owner_id, product_id, quantity, variant=None) -> ShoppingCart:
        """Set a line's quantity; zero or less removes the line."""
        variant = Variant.from_mapping(variant)

        with cart_locks.hold(owner_id):
            sellable = None
            if quantity is not None and quantity > 0:
                sellable = available_product(self.stock, product_id).sellable

            self._ensure_cart(owner_id)
            current_domain.process(
                UpdateCartQuantity(
                    owner_id=owner_id,
                    product_id=product_id,
                    quantity=quantity or 0,
                    sellable=sellable,
                    variant_name=variant.name if variant else None,
                    variant_value=variant.value if variant else None,
                ),
                asynchronous=False,
            )
            return self._load(owner_id)

    def remove_item(self, owner_id, product_id, variant=None) -> ShoppingCart:
        variant = Variant.from_mapping(variant)

        with cart_locks.hold(owner_id):
            self._ensure_cart(owner_id)
            current_domain.process(
                RemoveFromCart(
                    owner_id=owner_id,
                    product_id=product_id,
                    variant_name=variant.name if variant else None,
                    variant_value=variant.value if variant else None,
                ),
                asynchronous=False,
            )
            return self._load(owner_id)

    def clear(self, owner_id) -> ShoppingCart:
        with cart_locks.hold(owner_id):
            self._ensure_cart(owner_id)
            current_domain.process(ClearCart(owner_id=owner_id), asynchronous=False)
            return self._load(owner_id)

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, owner_id, code) -> ShoppingCart:
        with cart_locks.hold(owner_id):
            self._ensure_cart(owner_id)
            current_domain.process(ApplyCouponToCart(owner_id=owner_id, code=code), asynchronous=False)
            return self._load(owner_id)

    def remove_coupon(self, owner_id, code) -> ShoppingCart:
        with cart_locks.hold(owner_id):
            self._ensure_cart(owner_id)
            current_domain.process(RemoveCouponFromCart(owner_id=owner_id, code=code), asynchronous=False)
            return self._load(owner_id)

    # -------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------
    def detect_abandoned(self, as_of=None, idle_hours=None) -> list[str]:
        """Flag idle carts and send each newly flagged shopper a recovery reminder.

        Each cart is re-read and flagged under its owner's lock. A cart that
        is busy or changed underneath the sweep is skipped and picked up by
        the next run.
        """
        flagged = []
        for owner_id in abandonment_candidates():
            try:
                with cart_locks.hold(owner_id):
                    abandoned = current_domain.process(
                        AbandonCart(owner_id=owner_id, as_of=as_of, idle_hours=idle_hours),
                        asynchronous=False,
                    )
                    cart = self._load(owner_id) if abandoned else None
            except (ExpectedVersionError, TimeoutError) as exc:
                logger.warning("Skipped cart in abandonment sweep", owner_id=owner_id, error=str(exc))
                continue

            if cart is None:
                continue
            flagged.append(owner_id)
            notify(
                NotificationKind.CART_RECOVERY,
                owner_id,
                item_count=cart.totals.item_count,
                total=cart.totals.total,
                products=[line.name for line in cart.live_lines()],
            )

        logger.info("Cart abandonment detection complete", abandoned_count=len(flagged))
        return flagged
