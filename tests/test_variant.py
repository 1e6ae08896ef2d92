"""Variant selection and add-to-bag payload resolution."""

from decimal import Decimal

from client.variant import VariantSelection, resolve_add_to_bag


PRODUCT = {
    "id": "p1",
    "name": "Air Runner",
    "images": [{"url": "/img/runner.jpg", "alt": ""}],
    "variants": [
        {"id": "A", "price": "10.00", "sale_price": None, "color": "Red", "size": "42", "images": []},
        {
            "id": "B",
            "price": "120.00",
            "sale_price": "99.50",
            "color": "Blue",
            "size": "43",
            "images": [{"url": "", "alt": ""}, {"url": "/img/blue.jpg", "alt": ""}],
        },
    ],
}


class TestVariantSelection:
    def test_defaults_to_fallback(self):
        selection = VariantSelection()
        assert selection.get_selected("p1") == 0
        assert selection.get_selected("p1", fallback=2) == 2

    def test_selection_is_per_product(self):
        selection = VariantSelection()
        selection.set_selected("p1", 1)
        assert selection.get_selected("p1") == 1
        assert selection.get_selected("p2") == 0


class TestResolveAddToBag:
    def test_first_variant_by_default(self):
        payload = resolve_add_to_bag(PRODUCT, VariantSelection())
        assert payload.variant_id == "A"
        assert payload.price == Decimal("10.00")
        assert payload.image == "/img/runner.jpg"
        assert (payload.color, payload.size) == ("Red", "42")

    def test_selected_variant_uses_sale_price_and_own_image(self):
        selection = VariantSelection()
        selection.set_selected("p1", 1)
        payload = resolve_add_to_bag(PRODUCT, selection)
        assert payload.variant_id == "B"
        assert payload.price == Decimal("99.50")
        assert payload.image == "/img/blue.jpg"
        assert payload.name == "Air Runner"

    def test_out_of_range_selection_falls_back(self):
        selection = VariantSelection()
        selection.set_selected("p1", 7)
        assert resolve_add_to_bag(PRODUCT, selection).variant_id == "A"

    def test_product_without_variants(self):
        assert resolve_add_to_bag({"id": "p2", "name": "Gift card", "variants": []}, VariantSelection()) is None
