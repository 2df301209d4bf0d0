"""Business settings for cart pricing, read from the environment.

    STOREFRONT_TAX_RATE                       0.16
    STOREFRONT_SHIPPING_FEE                   300
    STOREFRONT_FREE_SHIPPING_THRESHOLD        5000
    STOREFRONT_CHARGE_SHIPPING_ON_EMPTY_CART  false
    STOREFRONT_CURRENCY                       KES
    STOREFRONT_CART_IDLE_HOURS                1
"""

import os
from dataclasses import dataclass
from datetime import timedelta

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: float = 0.16
    shipping_fee: float = 300.0
    free_shipping_threshold: float = 5000.0
    charge_shipping_on_empty_cart: bool = False
    currency: str = "KES"
    cart_idle_hours: float = 1.0

    @property
    def idle_window(self) -> timedelta:
        return timedelta(hours=self.cart_idle_hours)

    @classmethod
    def from_env(cls, environ=None) -> "PricingPolicy":
        environ = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            tax_rate=float(environ.get("STOREFRONT_TAX_RATE", defaults.tax_rate)),
            shipping_fee=float(environ.get("STOREFRONT_SHIPPING_FEE", defaults.shipping_fee)),
            free_shipping_threshold=float(
                environ.get("STOREFRONT_FREE_SHIPPING_THRESHOLD", defaults.free_shipping_threshold)
            ),
            charge_shipping_on_empty_cart=str(environ.get("STOREFRONT_CHARGE_SHIPPING_ON_EMPTY_CART", "false")).lower()
            in _TRUTHY,
            currency=environ.get("STOREFRONT_CURRENCY", defaults.currency),
            cart_idle_hours=float(environ.get("STOREFRONT_CART_IDLE_HOURS", defaults.cart_idle_hours)),
        )


_policy: PricingPolicy | None = None


def get_pricing_policy() -> PricingPolicy:
    global _policy
    if _policy is None:
        _policy = PricingPolicy.from_env()
    return _policy


def set_pricing_policy(policy: PricingPolicy) -> None:
    """Replace the active policy (used by tests and configuration overrides)."""
    global _policy
    _policy = policy


def reset_pricing_policy() -> None:
    global _policy
    _policy = None
