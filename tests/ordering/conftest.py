import pytest


@pytest.fixture(autouse=True)
def _ctx():
    from ordering.domain import ordering

    with ordering.domain_context():
        yield


@pytest.fixture
def register_product():
    """Register a catalogue product and return its id."""
    from catalogue.domain import catalogue
    from catalogue.product.registration import RegisterProduct

    def _register(product_id, name="Test Product", sku=None, price=1000.0, on_hand=10, status="active"):
        with catalogue.domain_context():
            catalogue.process(
                RegisterProduct(
                    product_id=product_id,
                    name=name,
                    sku=sku or f"SKU-{product_id}",
                    price=price,
                    on_hand=on_hand,
                    status=status,
                ),
                asynchronous=False,
            )
        return product_id

    return _register


@pytest.fixture
def product_state():
    """Read a product's current counters straight from the catalogue."""
    from catalogue.domain import catalogue
    from catalogue.product.ledger import find_product

    def _state(product_id):
        with catalogue.domain_context():
            return find_product(product_id)

    return _state


@pytest.fixture
def notifier():
    from ordering.notifier import set_notifier
    from ordering.notifier.fake_adapter import FakeNotifier

    fake = FakeNotifier()
    set_notifier(fake)
    return fake


@pytest.fixture
def address():
    return {
        "name": "Jane Wanjiku",
        "phone": "+254712345678",
        "street": "12 Moi Avenue",
        "city": "Nairobi",
        "county": "Nairobi",
        "postal_code": "00100",
    }
