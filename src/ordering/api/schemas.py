"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class VariantSchema(BaseModel):
    name: str = Field(..., max_length=100)
    value: str = Field(..., max_length=100)
    price_adjustment: float = 0.0


class AddressSchema(BaseModel):
    name: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=30)
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    county: str = Field(..., max_length=100)
    postal_code: str | None = Field(None, max_length=20)


class TrackingSchema(BaseModel):
    number: str = Field(..., max_length=100)
    carrier: str | None = None
    url: str | None = None
    estimated_delivery: datetime | None = None


# ---------------------------------------------------------------------------
# Cart requests
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    product_id: str
    quantity: int = 1
    variant: VariantSchema | None = None


class UpdateQuantityRequest(BaseModel):
    quantity: int
    variant: VariantSchema | None = None


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., max_length=50)


class DetectAbandonedRequest(BaseModel):
    idle_hours: float | None = Field(None, gt=0)
    as_of: datetime | None = None


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "name": "Wanjiru Kamau",
                        "phone": "+254700000001",
                        "street": "12 Moi Avenue",
                        "city": "Nairobi",
                        "county": "Nairobi",
                    },
                    "payment_method": "mpesa",
                }
            ]
        }
    }

    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str
    notes: str | None = None


class ChangeStatusRequest(BaseModel):
    status: str
    note: str | None = Field(None, max_length=500)
    tracking: TrackingSchema | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class TotalsResponse(BaseModel):
    subtotal: float
    discount: float
    tax: float
    shipping: float
    total: float
    item_count: int
    unique_items: int


class CartLineResponse(BaseModel):
    product_id: str
    name: str | None
    sku: str | None
    unit_price: float
    quantity: int
    variant: str | None
    in_stock: bool
    available_quantity: int


class CouponResponse(BaseModel):
    code: str
    coupon_type: str
    discount: float


class CartResponse(BaseModel):
    owner_id: str
    items: list[CartLineResponse]
    coupons: list[CouponResponse]
    totals: TotalsResponse
    is_abandoned: bool


class CartSummaryResponse(BaseModel):
    item_count: int
    unique_items: int
    subtotal: float
    discount: float
    tax: float
    shipping: float
    total: float
    coupons: list[str]


class AbandonedCartsResponse(BaseModel):
    abandoned_count: int
    owner_ids: list[str]


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    sku: str | None
    unit_price: float
    quantity: int
    line_total: float
    variant: str | None


class StatusChangeResponse(BaseModel):
    status: str
    note: str | None
    actor_id: str | None
    changed_at: datetime


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    owner_id: str
    status: str
    items: list[OrderItemResponse]
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    currency: str
    coupons: list[str]
    payment_method: str
    payment_status: str
    tracking_number: str | None = None
    refund_status: str | None = None
    history: list[StatusChangeResponse]


class OrderPageResponse(BaseModel):
    orders: list[OrderResponse]
    results: int
    total: int
    page: int
    per_page: int


class RevenueResponse(BaseModel):
    total_revenue: float
    average_order_value: float
    order_count: int


class StatusBreakdownResponse(BaseModel):
    status: str
    count: int
    total_value: float


class DailyRevenueResponse(BaseModel):
    date: str
    revenue: float
    orders: int


class TopProductResponse(BaseModel):
    product_id: str
    name: str
    total_sold: int
    total_revenue: float


class OrderStatsResponse(BaseModel):
    period: str
    total_orders: int
    recent_orders: int
    revenue: RevenueResponse
    status_breakdown: list[StatusBreakdownResponse]
    daily_revenue: list[DailyRevenueResponse]
    top_products: list[TopProductResponse]
