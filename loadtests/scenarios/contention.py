"""Contention scenario: many shoppers racing for a handful of units.

All users share one scarce product per test run. The interesting numbers
are the ratio of 201 to 409 responses on checkout and the product's
``reserved`` counter, which must never exceed its ``on_hand``.
"""

from locust import HttpUser, constant, events, task

from loadtests.data_generators import checkout_data, product_data, shopper_headers, shopper_id
from loadtests.helpers.response import error_code, extract_error_detail

SCARCE_UNITS = 20

_scarce: dict = {}


@events.test_start.add_listener
def pick_scarce_product(**_kwargs):
    _scarce.update(product_data(on_hand=SCARCE_UNITS))


class LastUnitUser(HttpUser):
    """Adds one unit of the scarce product and tries to check out."""

    wait_time = constant(0.5)

    def on_start(self):
        # Every user tries to register it; only the first registration wins
        with self.client.post("/products", json=_scarce, catch_response=True, name="POST /products [scarce]") as resp:
            if resp.status_code in (201, 400):
                resp.success()

    @task
    def grab_last_unit(self):
        headers = shopper_headers(shopper_id())
        with self.client.post(
            "/cart/items",
            json={"product_id": _scarce["product_id"], "quantity": 1},
            headers=headers,
            catch_response=True,
            name="POST /cart/items [scarce]",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
                return
            if resp.status_code != 201:
                resp.failure(f"Add scarce item failed: {resp.status_code} — {extract_error_detail(resp)}")
                return

        with self.client.post(
            "/orders",
            json=checkout_data(),
            headers=headers,
            catch_response=True,
            name="POST /orders [scarce]",
        ) as resp:
            if resp.status_code == 201 or error_code(resp) == "ProductUnavailable":
                resp.success()
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
