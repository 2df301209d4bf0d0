"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from catalogue.domain import catalogue


@catalogue.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    sku: String(required=True)
    name: String(required=True)
    price: Float(required=True)
    on_hand: Integer()
    status: String(required=True)
    registered_at: DateTime(required=True)


@catalogue.event(part_of="Product")
class ProductStatusChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    previous_status: String(required=True)
    new_status: String(required=True)
    changed_at: DateTime(required=True)


@catalogue.event(part_of="Product")
class StockReceived:
    """Units arrived in the warehouse."""

    __version__ = 1

    product_id: Identifier(required=True)
    quantity: Integer(required=True)
    on_hand: Integer(required=True)
    received_at: DateTime(required=True)


@catalogue.event(part_of="Product")
class StockReserved:
    """Units were held for an order that has not shipped yet."""

    __version__ = 1

    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True)
    reserved: Integer(required=True)
    sellable: Integer(required=True)
    reserved_at: DateTime(required=True)


@catalogue.event(part_of="Product")
class StockReleased:
    """Held units went back to the sellable pool."""

    __version__ = 1

    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True)
    reserved: Integer(required=True)
    released_at: DateTime(required=True)


@catalogue.event(part_of="Product")
class StockCommitted:
    """Held units left the warehouse as a completed sale."""

    __version__ = 1

    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True)
    on_hand: Integer(required=True)
    reserved: Integer(required=True)
    committed_at: DateTime(required=True)
