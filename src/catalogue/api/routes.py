"""FastAPI endpoints for catalogue administration."""

from uuid import uuid4

from fastapi import APIRouter
from protean.utils.globals import current_domain

from catalogue.api.schemas import (
    ChangeProductStatusRequest,
    ProductIdResponse,
    ProductResponse,
    ReceiveStockRequest,
    RegisterProductRequest,
    StatusResponse,
)
from catalogue.product.ledger import find_product
from catalogue.product.registration import ChangeProductStatus, RegisterProduct, receive_stock
from shared.errors import NotFound

product_router = APIRouter(prefix="/products", tags=["products"])


def _product_response(product) -> ProductResponse:
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        sku=product.sku,
        price=product.price,
        currency=product.currency,
        status=product.status,
        on_hand=product.on_hand,
        reserved=product.reserved,
        sellable=product.sellable,
        total_sold=product.total_sold,
        revenue=product.revenue,
    )


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        product_id=body.product_id or str(uuid4()),
        name=body.name,
        sku=body.sku,
        price=body.price,
        currency=body.currency,
        on_hand=body.on_hand,
        status=body.status,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    product = find_product(product_id)
    if product is None:
        raise NotFound({"product_id": [f"Product {product_id} does not exist"]})
    return _product_response(product)


@product_router.put("/{product_id}/status", response_model=StatusResponse)
async def change_product_status(product_id: str, body: ChangeProductStatusRequest) -> StatusResponse:
    current_domain.process(ChangeProductStatus(product_id=product_id, status=body.status), asynchronous=False)
    return StatusResponse()


@product_router.post("/{product_id}/stock", response_model=ProductResponse)
async def receive_product_stock(product_id: str, body: ReceiveStockRequest) -> ProductResponse:
    receive_stock(product_id, body.quantity)
    return _product_response(find_product(product_id))
