"""Storefront load test scenarios.

ShopperJourney browses, fills a cart, applies a coupon and checks out.
StaffJourney places an order and walks it through to delivery, so both
reservation and commit paths of the inventory ledger are exercised.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    cancel_reason,
    cart_item_data,
    checkout_data,
    coupon_code,
    product_data,
    shopper_headers,
    shopper_id,
    staff_headers,
    tracking_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState, ShopperState


def _register_products(client, count: int) -> list[str]:
    product_ids = []
    for _ in range(count):
        payload = product_data()
        with client.post("/products", json=payload, catch_response=True, name="POST /products") as resp:
            if resp.status_code == 201:
                product_ids.append(resp.json()["product_id"])
            else:
                resp.failure(f"Register product failed: {resp.status_code} — {extract_error_detail(resp)}")
    return product_ids


class ShopperJourney(SequentialTaskSet):
    """Add items -> Update quantity -> Apply coupon -> Summary -> Checkout -> Cancel (sometimes)."""

    def on_start(self):
        self.state = ShopperState(actor_id=shopper_id())
        self.state.product_ids = _register_products(self.client, 3)
        if not self.state.product_ids:
            self.interrupt()

    @property
    def headers(self):
        return shopper_headers(self.state.actor_id)

    @task
    def add_items(self):
        for product_id in self.state.product_ids:
            with self.client.post(
                "/cart/items",
                json=cart_item_data(product_id),
                headers=self.headers,
                catch_response=True,
                name="POST /cart/items",
            ) as resp:
                if resp.status_code == 201:
                    self.state.line_count += 1
                else:
                    resp.failure(f"Add cart item failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def update_quantity(self):
        product_id = random.choice(self.state.product_ids)
        with self.client.patch(
            f"/cart/items/{product_id}",
            json={"quantity": random.randint(1, 4)},
            headers=self.headers,
            catch_response=True,
            name="PATCH /cart/items/{id}",
        ) as resp:
            # A variant line cannot be matched by product alone once there are two
            if resp.status_code in (200, 404):
                resp.success()
            else:
                resp.failure(f"Update quantity failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def apply_coupon(self):
        with self.client.post(
            "/cart/coupons",
            json={"code": coupon_code()},
            headers=self.headers,
            catch_response=True,
            name="POST /cart/coupons",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Apply coupon failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def view_summary(self):
        self.client.get("/cart/summary", headers=self.headers, name="GET /cart/summary")

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def maybe_cancel(self):
        if random.random() < 0.25:
            with self.client.patch(
                f"/orders/{self.state.order_id}/cancel",
                json={"reason": cancel_reason()},
                headers=self.headers,
                catch_response=True,
                name="PATCH /orders/{id}/cancel",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Cancel failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class StaffJourney(SequentialTaskSet):
    """Place an order -> Confirm -> Processing -> Ship -> Deliver."""

    def on_start(self):
        owner_id = shopper_id()
        self.state = OrderState(owner_id=owner_id)
        self.staff = staff_headers()
        product_ids = _register_products(self.client, 1)
        if not product_ids:
            self.interrupt()
        self.client.post(
            "/cart/items",
            json={"product_id": product_ids[0], "quantity": 1},
            headers=shopper_headers(owner_id),
            name="POST /cart/items",
        )
        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=shopper_headers(owner_id),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    def _move(self, status, **extra):
        with self.client.patch(
            f"/orders/{self.state.order_id}/status",
            json={"status": status, **extra},
            headers=self.staff,
            catch_response=True,
            name=f"PATCH /orders/{{id}}/status [{status}]",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Move to {status} failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def confirm(self):
        self._move("confirmed", note="Payment received")

    @task
    def process(self):
        self._move("processing")

    @task
    def ship(self):
        self._move("shipped", tracking=tracking_data())

    @task
    def deliver(self):
        self._move("delivered")

    @task
    def done(self):
        self.interrupt()


class ShopperUser(HttpUser):
    tasks = [ShopperJourney]
    wait_time = between(1, 3)


class StaffUser(HttpUser):
    tasks = [StaffJourney]
    wait_time = between(2, 5)
    weight = 1
