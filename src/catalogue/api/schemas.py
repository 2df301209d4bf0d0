"""Pydantic request/response schemas for the Catalogue API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterProductRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-kettle-1",
                    "name": "Electric Kettle 1.7L",
                    "sku": "KET-17-BLK",
                    "price": 1000.0,
                    "on_hand": 25,
                    "status": "active",
                }
            ]
        }
    }

    product_id: str | None = Field(None, max_length=255)
    name: str = Field(..., max_length=255)
    sku: str = Field(..., max_length=50)
    price: float = Field(..., ge=0)
    currency: str = Field("KES", max_length=3)
    on_hand: int = Field(0, ge=0)
    status: str = "draft"


class ChangeProductStatusRequest(BaseModel):
    status: str


class ReceiveStockRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    name: str
    sku: str
    price: float
    currency: str
    status: str
    on_hand: int
    reserved: int
    sellable: int
    total_sold: int
    revenue: float


class StatusResponse(BaseModel):
    status: str = "ok"
