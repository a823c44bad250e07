import pytest

from pdv_acai.models.entities import Product, ProductType, SaleItem
from pdv_acai.services.pricing import addons_total, collection_total, item_total


def test_unit_item_total(picole):
    item = SaleItem(product=picole, quantity=3)
    assert item_total(item) == pytest.approx(13.5)


def test_weight_item_total(acai):
    item = SaleItem(product=acai, weight=500)
    assert item_total(item) == pytest.approx(23.5)


def test_addons_scale_with_quantity(picole, granola):
    item = SaleItem(product=picole, quantity=2, addons=[granola])
    assert item_total(item) == pytest.approx(9 + 6)
    assert addons_total(item) == pytest.approx(6)


def test_addons_on_weight_item_count_once(acai, granola, leite_ninho):
    item = SaleItem(product=acai, weight=300, addons=[granola, leite_ninho])
    assert item_total(item) == pytest.approx(47 * 0.3 + 5.5)


def test_missing_quantity_counts_as_one(picole):
    assert item_total(SaleItem(product=picole)) == pytest.approx(4.5)


def test_weight_product_without_weight_falls_back_to_unit_price(acai):
    assert item_total(SaleItem(product=acai, quantity=2)) == pytest.approx(94.0)


def test_missing_item_or_product_is_zero():
    assert item_total(None) == 0
    assert item_total(SaleItem(product=None, quantity=4)) == 0


@pytest.mark.parametrize('weight', [1, 137, 500, 999, 2500, 10000])
def test_weight_pricing_is_linear(acai, weight):
    per_gram = item_total(SaleItem(product=acai, weight=weight)) / weight
    assert per_gram == pytest.approx(47 / 1000)


def test_option_product_priced_per_unit(milkshake):
    item = SaleItem(product=milkshake, quantity=2)
    assert item_total(item) == pytest.approx(36.0)


def test_collection_total_sums_line_totals(picole, acai, granola):
    items = [
        SaleItem(product=picole, quantity=3),
        SaleItem(product=acai, weight=500),
        SaleItem(product=picole, quantity=2, addons=[granola]),
    ]
    assert collection_total(items) == pytest.approx(13.5 + 23.5 + 15)


def test_collection_total_empty():
    assert collection_total([]) == 0
    assert collection_total(None) == 0


def test_no_rounding_applied():
    product = Product(id=99, name='Bala', price=0.333, type=ProductType.UNIT)
    assert item_total(SaleItem(product=product, quantity=3)) == pytest.approx(0.999)
