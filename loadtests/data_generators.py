"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that match the field names expected by
the API's Pydantic request schemas and pass the domain's validation.
"""

import random
import uuid

from faker import Faker

fake = Faker()

KENYAN_COUNTIES = ["Nairobi", "Mombasa", "Kisumu", "Nakuru", "Kiambu", "Uasin Gishu", "Machakos"]
COUPON_CODES = ["SAVE10", "NEWUSER", "FREESHIP"]


# ---------- Identities ----------


def shopper_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:10]}"


def shopper_headers(actor_id: str) -> dict:
    return {"X-Actor-Id": actor_id}


def staff_headers() -> dict:
    return {"X-Actor-Id": f"staff-lt-{uuid.uuid4().hex[:6]}", "X-Actor-Role": "admin"}


# ---------- Catalogue ----------


def valid_sku(prefix: str = "LT") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def product_data(on_hand: int | None = None) -> dict:
    """Generate a RegisterProductRequest payload for an active product."""
    return {
        "product_id": f"prod-lt-{uuid.uuid4().hex[:10]}",
        "name": f"{fake.word().capitalize()} {fake.word()}"[:255],
        "sku": valid_sku("PROD"),
        "price": round(random.uniform(150.0, 4500.0), 2),
        "on_hand": on_hand if on_hand is not None else random.randint(50, 500),
        "status": "active",
    }


# ---------- Cart ----------


def cart_item_data(product_id: str, max_quantity: int = 3) -> dict:
    """Generate an AddItemRequest payload, with a variant some of the time."""
    payload = {"product_id": product_id, "quantity": random.randint(1, max_quantity)}
    if random.random() < 0.3:
        payload["variant"] = {
            "name": "size",
            "value": random.choice(["S", "M", "L", "XL"]),
            "price_adjustment": random.choice([0.0, 100.0, 250.0]),
        }
    return payload


def coupon_code() -> str:
    return random.choice(COUPON_CODES)


# ---------- Checkout and orders ----------


def address_data() -> dict:
    county = random.choice(KENYAN_COUNTIES)
    return {
        "name": fake.name()[:255],
        "phone": f"+2547{random.randint(10000000, 99999999)}",
        "street": fake.street_address()[:255],
        "city": county,
        "county": county,
        "postal_code": f"{random.randint(100, 99999):05d}",
    }


def checkout_data() -> dict:
    """Generate a PlaceOrderRequest payload."""
    return {
        "shipping_address": address_data(),
        "payment_method": random.choice(["mpesa", "card", "cod"]),
        "notes": fake.sentence()[:200] if random.random() < 0.2 else None,
    }


def tracking_data() -> dict:
    return {
        "number": f"TRK-{uuid.uuid4().hex[:10].upper()}",
        "carrier": random.choice(["G4S", "Sendy", "Fargo Courier"]),
    }


def cancel_reason() -> str:
    return random.choice(["Ordered by mistake", "Found a better price", "Delivery too slow"])
