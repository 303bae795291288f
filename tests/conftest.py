import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the configuration environment before the domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Shared collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    from checkout.config import Settings

    return Settings(environment="test")


@pytest.fixture()
def gateway(settings):
    from checkout.payment.gateway import FakeGateway

    return FakeGateway(key_id=settings.gateway_key_id, key_secret=settings.gateway_key_secret)


@pytest.fixture()
def notifier():
    from checkout.notifications import FakeNotificationService

    return FakeNotificationService()


@pytest.fixture()
def services(settings, gateway, notifier):
    from checkout.services import build_services

    return build_services(settings, gateway=gateway, notifier=notifier)


@pytest.fixture()
def owner():
    from checkout.shared.owner import Owner

    return Owner.user("user-001")


@pytest.fixture()
def shipping_address():
    return {
        "full_name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9800000000",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
    }


@pytest.fixture()
def make_product():
    """Register a product through the catalogue command and return it."""
    from protean import current_domain

    from checkout.inventory.catalogue import RegisterProduct
    from checkout.inventory.product import Product

    def _make(name="Notebook", price=100.0, stock=10, **overrides):
        product_id = current_domain.process(
            RegisterProduct(name=name, price=price, stock=stock, **overrides),
            asynchronous=False,
        )
        return current_domain.repository_for(Product).get(product_id)

    return _make


@pytest.fixture()
def fill_cart():
    """Add ``quantity`` of each product to the owner's active cart."""
    from protean import current_domain

    from checkout.cart.items import AddToCart

    def _fill(owner, *lines):
        cart_id = None
        for product, quantity in lines:
            cart_id = current_domain.process(
                AddToCart(owner_kind=owner.kind, owner_id=owner.id, product_id=str(product.id), quantity=quantity),
                asynchronous=False,
            )
        return cart_id

    return _fill


@pytest.fixture()
def pay(services, gateway, owner):
    """Verify a checkout result with the signature the gateway would produce."""

    def _pay(result, payment_id="pay_001", payer=None):
        signature = gateway.sign(result.gateway_order_id, payment_id)
        return services.verifier.verify(
            result.gateway_order_id,
            payment_id,
            signature,
            result.order_id,
            payer or owner,
        )

    return _pay
