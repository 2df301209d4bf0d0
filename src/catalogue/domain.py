"""Catalogue bounded context: product records and the inventory ledger.

Owns price, name, SKU and status for each product together with its stock
counters. Other contexts read products and move stock only through the
ledger in ``catalogue.product.ledger``.
"""

import structlog
from protean.domain import Domain

catalogue = Domain(name="catalogue")

logger = structlog.get_logger(__name__)
