"""FastAPI routes for the Ordering domain: cart, orders and cart maintenance.

Authentication happens upstream; the caller is identified by the
``X-Actor-Id`` and ``X-Actor-Role`` headers.
"""

from fastapi import APIRouter, Depends, Header, Query

from ordering.api.schemas import (
    AbandonedCartsResponse,
    AddItemRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartLineResponse,
    CartResponse,
    CartSummaryResponse,
    ChangeStatusRequest,
    CouponResponse,
    DetectAbandonedRequest,
    OrderItemResponse,
    OrderPageResponse,
    OrderResponse,
    OrderStatsResponse,
    PlaceOrderRequest,
    StatusChangeResponse,
    TotalsResponse,
    UpdateQuantityRequest,
)
from ordering.cart.store import CartStore
from ordering.checkout.orchestrator import CheckoutService
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.queries import MAX_PAGE_SIZE, get_order, list_orders, order_stats, search_orders
from shared.actor import Actor
from shared.errors import Forbidden


def current_actor(
    x_actor_id: str = Header(...),
    x_actor_role: str = Header(default="customer"),
) -> Actor:
    return Actor(id=x_actor_id, role=x_actor_role.lower())


def _variant(schema):
    return schema.model_dump() if schema else None


def _cart_response(cart) -> CartResponse:
    totals = cart.totals
    return CartResponse(
        owner_id=str(cart.owner_id),
        items=[
            CartLineResponse(
                product_id=str(line.product_id),
                name=line.name,
                sku=line.sku,
                unit_price=line.unit_price,
                quantity=line.quantity,
                variant=line.variant_label,
                in_stock=bool(line.in_stock),
                available_quantity=line.available_quantity or 0,
            )
            for line in cart.lines
        ],
        coupons=[
            CouponResponse(code=c.code, coupon_type=c.coupon_type, discount=c.discount) for c in cart.applied_coupons
        ],
        totals=TotalsResponse(
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            shipping=totals.shipping,
            total=totals.total,
            item_count=totals.item_count,
            unique_items=totals.unique_items,
        ),
        is_abandoned=bool(cart.is_abandoned),
    )


def _order_response(order) -> OrderResponse:
    summary = order.summary
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        owner_id=str(order.owner_id),
        status=order.status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                sku=item.sku,
                unit_price=item.unit_price,
                quantity=item.quantity,
                line_total=item.line_total,
                variant=item.variant,
            )
            for item in order.lines
        ],
        subtotal=summary.subtotal,
        shipping=summary.shipping,
        tax=summary.tax,
        discount=summary.discount,
        total=summary.total,
        currency=summary.currency,
        coupons=order.coupon_codes,
        payment_method=order.payment.method,
        payment_status=order.payment.status,
        tracking_number=order.tracking.number if order.tracking else None,
        refund_status=order.cancellation.refund_status if order.cancellation else None,
        history=[
            StatusChangeResponse(
                status=entry.status,
                note=entry.note,
                actor_id=str(entry.actor_id) if entry.actor_id else None,
                changed_at=entry.changed_at,
            )
            for entry in order.timeline
        ],
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(actor: Actor = Depends(current_actor)) -> CartResponse:
    return _cart_response(CartStore().get_or_create(actor.id))


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def get_cart_summary(actor: Actor = Depends(current_actor)) -> CartSummaryResponse:
    return CartSummaryResponse(**CartStore().summary(actor.id))


@cart_router.post("/items", status_code=201, response_model=CartResponse)
async def add_item(body: AddItemRequest, actor: Actor = Depends(current_actor)) -> CartResponse:
    cart = CartStore().add_item(actor.id, body.product_id, body.quantity, variant=_variant(body.variant))
    return _cart_response(cart)


@cart_router.patch("/items/{product_id}", response_model=CartResponse)
async def update_item(product_id: str, body: UpdateQuantityRequest, actor: Actor = Depends(current_actor)) -> CartResponse:
    cart = CartStore().update_quantity(actor.id, product_id, body.quantity, variant=_variant(body.variant))
    return _cart_response(cart)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: str,
    variant_name: str | None = None,
    variant_value: str | None = None,
    actor: Actor = Depends(current_actor),
) -> CartResponse:
    variant = {"name": variant_name, "value": variant_value or ""} if variant_name else None
    return _cart_response(CartStore().remove_item(actor.id, product_id, variant=variant))


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(actor: Actor = Depends(current_actor)) -> CartResponse:
    return _cart_response(CartStore().clear(actor.id))


@cart_router.post("/coupons", response_model=CartResponse)
async def apply_coupon(body: ApplyCouponRequest, actor: Actor = Depends(current_actor)) -> CartResponse:
    return _cart_response(CartStore().apply_coupon(actor.id, body.code))


@cart_router.delete("/coupons/{code}", response_model=CartResponse)
async def remove_coupon(code: str, actor: Actor = Depends(current_actor)) -> CartResponse:
    return _cart_response(CartStore().remove_coupon(actor.id, code))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(current_actor)) -> OrderResponse:
    order = CheckoutService().place_order(
        owner_id=actor.id,
        shipping_address=body.shipping_address.model_dump(),
        billing_address=body.billing_address.model_dump() if body.billing_address else None,
        payment_method=body.payment_method,
        notes=body.notes,
        actor=actor,
    )
    return _order_response(order)


@order_router.get("", response_model=list[OrderResponse])
async def my_orders(status: str | None = None, actor: Actor = Depends(current_actor)) -> list[OrderResponse]:
    return [_order_response(order) for order in list_orders(actor.id, status=status)]


@order_router.get("/admin", response_model=OrderPageResponse)
async def all_orders(
    status: str | None = None,
    owner_id: str | None = None,
    sort: str = "-placed_at",
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(current_actor),
) -> OrderPageResponse:
    result = search_orders(actor, status=status, owner_id=owner_id, sort=sort, page=page, per_page=per_page)
    return OrderPageResponse(
        orders=[_order_response(order) for order in result.orders],
        results=len(result.orders),
        total=result.total,
        page=result.page,
        per_page=result.per_page,
    )


@order_router.get("/admin/stats", response_model=OrderStatsResponse)
async def stats(period: str = "30d", actor: Actor = Depends(current_actor)) -> OrderStatsResponse:
    return OrderStatsResponse(**order_stats(actor, period=period))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def order_detail(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    return _order_response(get_order(order_id, actor=actor))


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def change_status(order_id: str, body: ChangeStatusRequest, actor: Actor = Depends(current_actor)) -> OrderResponse:
    if not actor.is_privileged:
        raise Forbidden({"actor": ["Only staff may change an order's status"]}, actor_id=actor.id)

    order = OrderLifecycle().set_status(
        order_id,
        body.status,
        note=body.note,
        actor=actor,
        tracking_info=body.tracking.model_dump() if body.tracking else None,
    )
    return _order_response(order)


@order_router.patch("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)) -> OrderResponse:
    return _order_response(OrderLifecycle().cancel(order_id, actor=actor, reason=body.reason))


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/carts/detect-abandoned", response_model=AbandonedCartsResponse)
async def detect_abandoned_carts(body: DetectAbandonedRequest | None = None) -> AbandonedCartsResponse:
    """Flag idle carts. Meant to be called periodically by a scheduler."""
    body = body or DetectAbandonedRequest()
    flagged = CartStore().detect_abandoned(as_of=body.as_of, idle_hours=body.idle_hours)
    return AbandonedCartsResponse(abandoned_count=len(flagged), owner_ids=flagged)
