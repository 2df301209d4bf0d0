"""Coupon evaluation: turn a coupon code into a discount quote.

Codes are case-insensitive and normalised to upper case. The evaluator is
swappable through ``set_coupon_evaluator()`` so a different rule source can
be plugged in without touching the cart.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from shared.errors import InvalidCoupon


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    SHIPPING = "shipping"


@dataclass(frozen=True)
class CouponRule:
    code: str
    coupon_type: CouponType
    value: float = 0.0


@dataclass(frozen=True)
class CouponQuote:
    code: str
    coupon_type: str
    value: float
    discount: float


def normalise_code(code: str | None) -> str:
    return (code or "").strip().upper()


def discount_for(coupon_type, value: float, subtotal: float, shipping: float) -> float:
    """Discount granted by a coupon of ``coupon_type`` against the given amounts."""
    coupon_type = CouponType(coupon_type)
    if coupon_type is CouponType.PERCENTAGE:
        discount = subtotal * (value or 0.0) / 100
    elif coupon_type is CouponType.FIXED:
        discount = value or 0.0
    else:
        discount = shipping
    return round(max(0.0, discount), 2)


class CouponEvaluator(ABC):
    @abstractmethod
    def evaluate(self, code: str, subtotal: float, shipping: float) -> CouponQuote:
        """Quote ``code`` against the cart amounts or raise ``InvalidCoupon``."""


DEFAULT_RULES = (
    CouponRule("SAVE10", CouponType.PERCENTAGE, 10),
    CouponRule("NEWUSER", CouponType.FIXED, 500),
    CouponRule("FREESHIP", CouponType.SHIPPING),
)


class StaticCouponTable(CouponEvaluator):
    """Evaluates codes against a fixed in-memory rule table."""

    def __init__(self, rules=DEFAULT_RULES):
        self._rules = {normalise_code(rule.code): rule for rule in rules}

    def evaluate(self, code: str, subtotal: float, shipping: float) -> CouponQuote:
        normalised = normalise_code(code)
        rule = self._rules.get(normalised)
        if rule is None:
            raise InvalidCoupon({"code": [f"Coupon code {code!r} is not valid"]}, code=normalised)

        return CouponQuote(
            code=normalised,
            coupon_type=rule.coupon_type.value,
            value=float(rule.value),
            discount=discount_for(rule.coupon_type, rule.value, subtotal, shipping),
        )


_current_evaluator: CouponEvaluator | None = None


def get_coupon_evaluator() -> CouponEvaluator:
    """Return the active evaluator. Defaults to the built-in coupon table."""
    global _current_evaluator
    if _current_evaluator is None:
        _current_evaluator = StaticCouponTable()
    return _current_evaluator


def set_coupon_evaluator(evaluator: CouponEvaluator) -> None:
    global _current_evaluator
    _current_evaluator = evaluator


def reset_coupon_evaluator() -> None:
    global _current_evaluator
    _current_evaluator = None
