"""HTTP transport of the cart client, driven against the Flask app in-process."""

from decimal import Decimal
from urllib.parse import urlsplit

import pytest
import requests

from client.api import CartApi, HttpCartApi
from client.session import CartSession
from client.store import CartStore
from common.errors import CartError, NetworkFailure, Unauthenticated, ValidationError

from .helpers import USER


class _Response:
    def __init__(self, resp):
        self.status_code = resp.status_code
        self._resp = resp

    def json(self):
        payload = self._resp.get_json(silent=True)
        if payload is None:
            raise ValueError("not JSON")
        return payload


class FlaskTransport:
    """Quacks like ``requests.Session`` for the calls ``HttpCartApi`` makes."""

    def __init__(self, client):
        self.client = client
        self.timeouts = []

    def request(self, method, url, timeout=None, params=None, json=None):
        self.timeouts.append(timeout)
        resp = self.client.open(urlsplit(url).path, method=method, query_string=params, json=json)
        return _Response(resp)


class UnreachableSession:
    def request(self, method, url, **kwargs):
        raise requests.ConnectionError(f"cannot reach {url}")


class _GatewayResponse:
    status_code = 502

    def json(self):
        return {"error": "Bad Gateway"}


class BadGatewaySession:
    def request(self, method, url, **kwargs):
        return _GatewayResponse()


@pytest.fixture
def user_api(signed_in):
    return HttpCartApi("http://storefront.test/", timeout=3.5, session=FlaskTransport(signed_in))


@pytest.fixture
def guest_api(app):
    # separate cookie jar from the signed-in client
    return HttpCartApi("http://storefront.test", session=FlaskTransport(app.test_client()))


class TestHttpCartApi:
    def test_round_trip_of_cart_operations(self, user_api, app_variants):
        assert user_api.add_to_cart(app_variants["A"], 2)["quantity"] == 2
        cart = user_api.get_or_create_cart()
        assert cart["user_id"] == USER
        (item,) = cart["items"]
        assert item["kind"] == "light"

        assert user_api.update_cart_item_quantity(item["id"], 5)["quantity"] == 5
        assert user_api.get_cart_item_count() == 5
        assert user_api.remove_from_cart(item["id"])["removed"] is True
        assert user_api.clear_cart() == {"success": True, "removed": 0}

    def test_detail_flag(self, user_api, app_variants):
        user_api.add_to_cart(app_variants["B"])
        (item,) = user_api.get_or_create_cart(detail=True)["items"]
        assert item["kind"] == "detailed"

    def test_timeout_is_passed_through(self, user_api):
        user_api.get_cart_item_count()
        assert user_api._session.timeouts == [3.5]

    def test_guest_cart_is_none(self, guest_api):
        assert guest_api.get_or_create_cart() is None

    def test_error_bodies_map_to_error_types(self, guest_api, user_api, app_variants):
        with pytest.raises(Unauthenticated):
            guest_api.add_to_cart(app_variants["A"])
        with pytest.raises(ValidationError):
            user_api.add_to_cart("missing")

    def test_unknown_route_is_cart_error(self, signed_in):
        api = HttpCartApi("http://storefront.test", session=FlaskTransport(signed_in))
        with pytest.raises(CartError):
            api._request("GET", "nowhere")

    def test_transport_failure_is_network_failure(self):
        api = HttpCartApi("http://storefront.test", session=UnreachableSession())
        with pytest.raises(NetworkFailure):
            api.get_cart_item_count()

    def test_string_error_body_is_cart_error(self):
        api = HttpCartApi("http://storefront.test", session=BadGatewaySession())
        with pytest.raises(CartError) as excinfo:
            api.add_to_cart("A")
        assert excinfo.value.message == "Bad Gateway"

    def test_migrate(self, user_api, app_variants):
        result = user_api.migrate_guest_cart([{"variant_id": app_variants["A"], "quantity": 1}])
        assert result["success"] is True


class TestCartApiContract:
    def test_every_operation_is_documented(self):
        assert CartApi.__abstractmethods__
        for name in CartApi.__abstractmethods__:
            assert getattr(CartApi, name).__doc__, name


class TestSessionOverHttp:
    def test_sync_over_http(self, user_api, app_variants):
        session = CartSession(user_api, signed_in=True)
        user_api.add_to_cart(app_variants["B"], 2)
        assert session.mount() is True
        assert session.store.total == Decimal("199.00")
        assert session.cart_count() == 2

    def test_unreachable_server_keeps_local_cart(self):
        api = HttpCartApi("http://storefront.test", session=UnreachableSession())
        session = CartSession(api, signed_in=True)
        product = {"id": "p1", "name": "Air Runner", "variants": [{"id": "A", "price": "10.00"}]}
        assert session.add_to_bag(product) is True
        assert session.store.get_item_count() == 1
        assert session.sync.error
        assert session.cart_count() == 1

    def test_gateway_error_keeps_optimistic_line(self):
        store = CartStore(HttpCartApi("http://storefront.test", session=BadGatewaySession()))
        store.add_item("A", name="Air Runner", price="10.00")
        (item,) = store.items
        assert item.quantity == 1
        assert store.is_loading is False
