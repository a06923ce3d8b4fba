# tests/test_cart.py
"""
Unit tests for the cart calculator and catalog.
"""
import pytest

from app.api.models.shop import Product
from app.services.cart import (
    UNKNOWN_PRODUCT_NAME,
    InvalidItemsFormatError,
    ItemsNotAListError,
    calculate_cart,
    coerce_quantity,
    parse_cart_items,
)
from app.services.catalog import PPV_CONTENT, PRODUCTS, get_ppv_content, get_product


class TestCatalog:
    """Test the static catalog."""

    def test_products(self):
        """Catalog holds the three demo products with unique ids."""
        assert [p.id for p in PRODUCTS] == ["p1", "p2", "p3"]
        assert get_product("p3").priceUSD == 1.25
        assert get_product("nope") is None
        assert get_product(42) is None

    def test_products_are_immutable(self):
        """Products cannot be modified after startup."""
        with pytest.raises(Exception):
            PRODUCTS[0].priceUSD = 0

    def test_ppv_content(self):
        """PPV catalog holds a song and a video."""
        assert {c.id for c in PPV_CONTENT} == {"song", "video"}
        assert get_ppv_content("video").priceUSD == 0.25
        assert get_ppv_content("missing") is None


class TestCalculateCart:
    """Test cart pricing."""

    def test_two_products(self):
        """p1 x2 and p2 x1 cost 0.70."""
        cart = calculate_cart([{"id": "p1", "qty": 2}, {"id": "p2", "qty": 1}])

        assert cart.subtotal == 0.70
        assert [(li.id, li.lineTotalUSD) for li in cart.lineItems] == [("p1", 0.2), ("p2", 0.5)]
        assert cart.lineItems[0].name == "Alpha Sticker"
        assert cart.lineItems[0].unitPriceUSD == 0.1
        assert cart.lineItems[0].qty == 2

    def test_unknown_product_is_zeroed(self):
        """Unknown ids become a zero-value UNKNOWN line instead of an error."""
        cart = calculate_cart([{"id": "unknown", "qty": 5}])

        assert cart.subtotal == 0
        line = cart.lineItems[0]
        assert line.id == "unknown"
        assert line.name == UNKNOWN_PRODUCT_NAME
        assert line.unitPriceUSD == 0
        assert line.lineTotalUSD == 0
        assert line.qty == 5

    def test_line_order_matches_input(self):
        """Line items keep the order of the input."""
        items = [{"id": "p3", "qty": 1}, {"id": "x", "qty": 1}, {"id": "p1", "qty": 1}]
        cart = calculate_cart(items)
        assert [li.id for li in cart.lineItems] == ["p3", "x", "p1"]

    @pytest.mark.parametrize("qty", [-3, "abc", None, float("nan"), float("inf"), [], {}])
    def test_bad_quantities_clamped_to_zero(self, qty):
        """Negative or non-numeric quantities become 0."""
        cart = calculate_cart([{"id": "p3", "qty": qty}])
        assert cart.lineItems[0].qty == 0
        assert cart.subtotal == 0

    def test_numeric_string_quantity(self):
        """Numeric strings are accepted as quantities."""
        cart = calculate_cart([{"id": "p3", "qty": "2"}])
        assert cart.lineItems[0].qty == 2
        assert cart.subtotal == 2.5

    def test_non_mapping_entries(self):
        """Entries that are not objects become zero-value UNKNOWN lines."""
        cart = calculate_cart(["p1", 7, {"id": "p2", "qty": 1}])
        assert [li.name for li in cart.lineItems] == ["UNKNOWN", "UNKNOWN", "Beta T-shirt"]
        assert cart.subtotal == 0.5

    def test_subtotal_matches_rounded_sum(self):
        """subtotal == round(sum(unit price x qty), 2)."""
        items = [{"id": "p1", "qty": 7}, {"id": "p2", "qty": 3}, {"id": "p3", "qty": 11}]
        cart = calculate_cart(items)
        expected = round(0.1 * 7 + 0.5 * 3 + 1.25 * 11, 2)
        assert cart.subtotal == expected

    def test_deterministic(self):
        """Same input gives the same cart regardless of what ran before."""
        items = [{"id": "p1", "qty": 3}, {"id": "p3", "qty": 1}]
        first = calculate_cart(items)
        calculate_cart([{"id": "p2", "qty": 9}])
        assert calculate_cart(items) == first

    def test_custom_catalog(self):
        """A catalog can be injected."""
        catalog = {"x": Product(id="x", name="Thing", priceUSD=0.333333333)}
        cart = calculate_cart([{"id": "x", "qty": 3}], catalog=catalog)
        assert cart.lineItems[0].lineTotalUSD == 1.0
        assert cart.subtotal == 1.0

    def test_empty_cart(self):
        cart = calculate_cart([])
        assert cart.subtotal == 0
        assert cart.lineItems == []

    def test_fractional_quantity_below_one_is_free(self):
        """Quantities are whole units: 0.4 of a mug buys nothing."""
        cart = calculate_cart([{"id": "p3", "qty": 0.4}])
        assert cart.lineItems[0].qty == 0
        assert cart.subtotal == 0


class TestCoerceQuantity:
    """Test quantity clamping."""

    def test_fraction_truncated(self):
        assert coerce_quantity(2.7) == 2

    def test_zero(self):
        assert coerce_quantity(0) == 0

    def test_positive_int(self):
        assert coerce_quantity(4) == 4


class TestParseCartItems:
    """Test normalization of the items field."""

    def test_list_passes_through(self):
        items = [{"id": "p1", "qty": 1}]
        assert parse_cart_items(items) is items

    def test_json_string(self):
        assert parse_cart_items('[{"id": "p1", "qty": 1}]') == [{"id": "p1", "qty": 1}]

    def test_invalid_json(self):
        with pytest.raises(InvalidItemsFormatError):
            parse_cart_items("[{not json")

    @pytest.mark.parametrize("raw", [None, {"id": "p1"}, '{"id": "p1"}', 5])
    def test_not_a_list(self, raw):
        with pytest.raises(ItemsNotAListError):
            parse_cart_items(raw)
