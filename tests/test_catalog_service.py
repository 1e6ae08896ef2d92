"""Catalog lookups feeding the cart."""

import pytest

from common.models.product import Product
from common.services.catalog_service import CatalogService


class TestCatalogService:
    def test_variants_keyed_by_id(self, catalog, database, variants):
        with database() as session:
            found = catalog.get_variants([variants["A"], variants["B"], "missing"], session=session)
            assert set(found) == {variants["A"], variants["B"]}
            assert str(found[variants["B"]].sale_price) == "99.50"
            assert found[variants["A"]].product.name == "Air Runner"

    def test_inactive_variants_are_hidden(self, catalog, database, variants):
        with database() as session:
            assert catalog.get_variants([variants["retired"]], session=session) == {}
            assert catalog.get_variants([], session=session) == {}

    def test_product_detail(self, catalog, variants):
        product = catalog.get_product(variants["runner_product"])
        assert product["name"] == "Air Runner"
        assert product["description"] == "Road running shoe"
        assert len(product["variants"]) == 2

    def test_unknown_product(self, catalog):
        assert catalog.get_product("missing") == {}

    def test_product_name_required(self, catalog):
        with pytest.raises(ValueError):
            catalog.create_product(name="")

    def test_product_cache_is_per_instance(self, catalog, database, variants):
        assert catalog.get_product(variants["runner_product"])["name"] == "Air Runner"
        with database() as session:
            session.query(Product).filter(Product.id == variants["runner_product"]).update({"is_active": False})

        assert catalog.get_product(variants["runner_product"])["name"] == "Air Runner"
        assert CatalogService(database).get_product(variants["runner_product"]) == {}
