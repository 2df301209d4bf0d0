"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across
users. State tracks the ids returned by earlier requests so follow-up
requests can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks one simulated shopper from browsing to checkout."""

    actor_id: str | None = None
    product_ids: list[str] = field(default_factory=list)
    line_count: int = 0
    order_id: str | None = None


@dataclass
class OrderState:
    """Tracks one order as staff move it through its lifecycle."""

    order_id: str | None = None
    owner_id: str | None = None
    current_status: str = "pending"
