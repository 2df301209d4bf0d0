"""Tests for the storefront error taxonomy and the actor model."""

from protean.exceptions import ValidationError
from shared.actor import Actor
from shared.errors import EmptyCart, Forbidden, IllegalTransition, NotFound, ProductUnavailable, StockReleaseFailed


class TestStorefrontErrors:
    def test_errors_are_validation_errors(self):
        assert isinstance(EmptyCart({"cart": ["empty"]}), ValidationError)

    def test_code_is_the_class_name(self):
        assert ProductUnavailable({"items": ["gone"]}).code == "ProductUnavailable"

    def test_status_codes(self):
        assert NotFound({}).status_code == 404
        assert EmptyCart({}).status_code == 400
        assert IllegalTransition({}).status_code == 409
        assert StockReleaseFailed({}).status_code == 503
        assert Forbidden({}).status_code == 403

    def test_context_is_kept(self):
        exc = ProductUnavailable({"items": ["gone"]}, product_id="prod-1", available=0)
        assert exc.context == {"product_id": "prod-1", "available": 0}
        assert exc.messages == {"items": ["gone"]}


class TestActor:
    def test_customers_are_not_privileged(self):
        assert Actor(id="cust-1").is_privileged is False

    def test_staff_roles_are_privileged(self):
        assert Actor(id="s-1", role="admin").is_privileged is True
        assert Actor(id="s-2", role="super_admin").is_privileged is True
        assert Actor.system().is_privileged is True
