import pytest


@pytest.fixture(autouse=True)
def _ctx():
    from catalogue.domain import catalogue

    with catalogue.domain_context():
        yield
