"""Tests for reading the pricing policy from the environment."""

from datetime import timedelta

from ordering.cart.pricing import PricingPolicy, get_pricing_policy, reset_pricing_policy, set_pricing_policy


class TestPricingPolicy:
    def test_defaults(self):
        policy = PricingPolicy.from_env({})
        assert policy.tax_rate == 0.16
        assert policy.shipping_fee == 300.0
        assert policy.free_shipping_threshold == 5000.0
        assert policy.charge_shipping_on_empty_cart is False
        assert policy.currency == "KES"
        assert policy.idle_window == timedelta(hours=1)

    def test_overrides(self):
        policy = PricingPolicy.from_env(
            {
                "STOREFRONT_TAX_RATE": "0.1",
                "STOREFRONT_SHIPPING_FEE": "250",
                "STOREFRONT_FREE_SHIPPING_THRESHOLD": "10000",
                "STOREFRONT_CHARGE_SHIPPING_ON_EMPTY_CART": "yes",
                "STOREFRONT_CURRENCY": "USD",
                "STOREFRONT_CART_IDLE_HOURS": "0.5",
            }
        )
        assert policy.tax_rate == 0.1
        assert policy.shipping_fee == 250.0
        assert policy.free_shipping_threshold == 10000.0
        assert policy.charge_shipping_on_empty_cart is True
        assert policy.currency == "USD"
        assert policy.idle_window == timedelta(minutes=30)

    def test_set_and_reset(self):
        custom = PricingPolicy(tax_rate=0.0)
        set_pricing_policy(custom)
        assert get_pricing_policy() is custom

        reset_pricing_policy()
        assert get_pricing_policy() is not custom
