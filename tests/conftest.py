import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialize both domains once; each test directory pushes the context of
    the domain it exercises.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from catalogue.domain import catalogue
    from ordering.domain import ordering

    catalogue.init()
    ordering.init()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    from catalogue.domain import catalogue
    from ordering.domain import ordering
    from shared.db import drop_db, setup_db

    for domain in (catalogue, ordering):
        setup_db(domain)

    yield

    for domain in (catalogue, ordering):
        drop_db(domain)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from catalogue.domain import catalogue
    from ordering.cart.coupon_rules import reset_coupon_evaluator
    from ordering.cart.pricing import reset_pricing_policy
    from ordering.domain import ordering
    from ordering.notifier import reset_notifier
    from ordering.stock import reset_stock_gateway

    for domain in (catalogue, ordering):
        with domain.domain_context():
            for _, provider in domain.providers.items():
                provider._data_reset()

            for _, broker in domain.brokers.items():
                broker._data_reset()

            domain.event_store.store._data_reset()

    reset_notifier()
    reset_stock_gateway()
    reset_pricing_policy()
    reset_coupon_evaluator()
