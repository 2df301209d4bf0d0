"""Stock gateway factory.

Provides get_stock_gateway() / set_stock_gateway() so tests can swap the
catalogue-backed gateway for one that fails on demand.
"""

from ordering.stock.catalogue_adapter import CatalogueStockGateway
from ordering.stock.port import StockGateway

_current_gateway: StockGateway | None = None


def get_stock_gateway() -> StockGateway:
    """Return the current stock gateway. Defaults to the catalogue domain."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = CatalogueStockGateway()
    return _current_gateway


def set_stock_gateway(gateway: StockGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_stock_gateway() -> None:
    global _current_gateway
    _current_gateway = None
