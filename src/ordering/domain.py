"""Ordering bounded context: shopping carts, checkout and the order lifecycle.

Carts are plain CQRS aggregates whose totals are recomputed after every
change. Checkout turns a cart into an Order while holding stock in the
catalogue's inventory ledger, and the order lifecycle commits or releases
that stock as the order moves through its statuses.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
