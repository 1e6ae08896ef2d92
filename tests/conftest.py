"""Shared fixtures: temp SQLite database, seeded catalog, services, clients."""

import pytest

from client.api import LocalCartApi
from common.db import session as db
from common.services.cart_service import CartService
from common.services.catalog_service import CatalogService
from common.services.page_cache import PageCache

from .helpers import USER, Identity


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'storefront.db'}"


@pytest.fixture
def database(database_url):
    db.configure(database_url)
    db.init_db()
    yield db.get_session
    db.engine.dispose()


@pytest.fixture
def catalog(database):
    return CatalogService(database)


@pytest.fixture
def variants(catalog):
    """Variant ids keyed by short names used throughout the tests.

    A: 10.00 red/42, B: 120.00 on sale at 99.50 blue/43, C: 5.00 socks.
    """
    runner = catalog.create_product(
        name="Air Runner",
        description="Road running shoe",
        images=[{"url": "/img/runner.jpg", "alt": "Air Runner"}],
        variants=[
            {"sku": "RUN-RED-42", "price": "10.00", "color": "Red", "size": "42"},
            {
                "sku": "RUN-BLU-43",
                "price": "120.00",
                "sale_price": "99.50",
                "color": "Blue",
                "size": "43",
                "images": [{"url": "/img/runner-blue.jpg", "alt": "blue"}],
            },
        ],
    )
    socks = catalog.create_product(name="Trail Sock", variants=[{"sku": "SOCK-M", "price": "5.00", "size": "M"}])
    retired = catalog.create_product(
        name="Old Model", variants=[{"sku": "OLD-1", "price": "1.00", "is_active": False}]
    )
    return {
        "A": runner["variants"]["RUN-RED-42"],
        "B": runner["variants"]["RUN-BLU-43"],
        "C": socks["variants"]["SOCK-M"],
        "retired": retired["variants"]["OLD-1"],
        "runner_product": runner["product_id"],
    }


@pytest.fixture
def page_cache():
    return PageCache(ttl_seconds=60)


@pytest.fixture
def cart_service(database, catalog, page_cache):
    return CartService(database, catalog=catalog, page_cache=page_cache)


@pytest.fixture
def identity():
    return Identity(USER)


@pytest.fixture
def local_api(cart_service, identity):
    return LocalCartApi(cart_service, identity)


@pytest.fixture
def app(database_url, monkeypatch):
    from app import create_app
    from config import StorefrontConfig

    monkeypatch.setenv("SHIPPING_FEE", "2.00")
    monkeypatch.setenv("CURRENCY", "USD")
    application = create_app(StorefrontConfig.load(database_url=database_url))
    application.config["TESTING"] = True
    yield application
    db.engine.dispose()


@pytest.fixture
def app_catalog(app):
    return app.extensions["storefront_components"]["catalog_service"]


@pytest.fixture
def app_variants(app_catalog):
    seeded = app_catalog.create_product(
        name="Air Runner",
        images=[{"url": "/img/runner.jpg", "alt": "Air Runner"}],
        variants=[
            {"sku": "RUN-RED-42", "price": "10.00", "color": "Red", "size": "42"},
            {"sku": "RUN-BLU-43", "price": "120.00", "sale_price": "99.50", "color": "Blue", "size": "43"},
        ],
    )
    return {"A": seeded["variants"]["RUN-RED-42"], "B": seeded["variants"]["RUN-BLU-43"], "product": seeded["product_id"]}


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def signed_in(http):
    with http.session_transaction() as sess:
        sess["user_id"] = USER
    return http
