from decimal import Decimal

import pytest

from pizzeria.core.errors import ProductUnavailable, SizeUnavailable, ValidationError
from pizzeria.models import Product, ProductCategory
from pizzeria.schemas import ModifierSelection, OrderItemCreate
from pizzeria.services.catalog import options_to_json
from pizzeria.services.pricing import find_option, price_items, price_line_item, price_order
from pizzeria.services import catalog

from tests.conftest import margherita


def make_product(**overrides) -> Product:
    data = margherita()
    values = dict(
        id=1,
        name=data.name,
        category=ProductCategory.PIZZA,
        sizes=options_to_json(data.sizes),
        crusts=options_to_json(data.crusts),
        addons=options_to_json(data.addons),
        available=True,
    )
    values.update(overrides)
    return Product(**values)


def item(**overrides) -> OrderItemCreate:
    values = dict(product_id=1, quantity=1, size="grande")
    values.update(overrides)
    return OrderItemCreate(**values)


def test_single_large_pizza_costs_its_size_price():
    line = price_line_item(make_product(), item())

    assert line.price == Decimal("45.90")
    assert line.size_price == Decimal("45.90")
    assert line.crust_name is None
    assert line.addons == []


def test_quantity_multiplies_size_crust_and_addons():
    requested = item(
        quantity=2,
        crust=ModifierSelection(name="catupiry"),
        addons=[ModifierSelection(name="olives"), ModifierSelection(name="oregano")],
    )

    line = price_line_item(make_product(), requested)

    # (45.90 + 5.00 + 2.00 + 1.00) x 2
    assert line.price == Decimal("107.80")
    assert line.crust_name == "catupiry"
    assert line.crust_price == Decimal("5.00")
    assert [(a.name, a.price) for a in line.addons] == [
        ("olives", Decimal("2.00")),
        ("oregano", Decimal("1.00")),
    ]


def test_unavailable_crust_and_addons_are_dropped_silently():
    requested = item(
        crust=ModifierSelection(name="cheddar"),
        addons=[ModifierSelection(name="bacon"), ModifierSelection(name="pineapple")],
    )

    line = price_line_item(make_product(), requested)

    assert line.price == Decimal("45.90")
    assert line.crust_name is None
    assert line.crust_price is None
    assert line.addons == []


def test_missing_product_is_rejected():
    with pytest.raises(ProductUnavailable):
        price_line_item(None, item())


def test_unavailable_product_is_rejected():
    with pytest.raises(ProductUnavailable) as exc:
        price_line_item(make_product(available=False), item())
    assert exc.value.status_code == 400
    assert isinstance(exc.value, ValidationError)


@pytest.mark.parametrize("size", ["gigante", "familia"])
def test_unavailable_or_unknown_size_is_rejected(size):
    with pytest.raises(SizeUnavailable) as exc:
        price_line_item(make_product(), item(size=size))
    assert size in exc.value.message


def test_order_total_is_exact_sum_of_lines():
    products = {1: make_product()}
    priced = price_items(products, [
        item(size="pequena"),
        item(size="media", quantity=3, addons=[ModifierSelection(name="oregano")]),
    ])

    # 25.90 + (35.90 + 1.00) x 3
    assert priced.total == Decimal("136.60")
    assert len(priced.items) == 2


def test_first_failing_line_aborts_pricing():
    with pytest.raises(ProductUnavailable):
        price_items({1: make_product()}, [item(), item(product_id=99)])


def test_prices_stored_as_floats_are_read_exactly():
    product = make_product(sizes=[{"name": "grande", "price": 45.9, "available": True}])
    assert price_line_item(product, item()).price == Decimal("45.9")


def test_find_option_matches_exact_name():
    options = [{"name": "grande"}, {"name": "media"}]
    assert find_option(options, "media") == {"name": "media"}
    assert find_option(options, "Media") is None
    assert find_option(None, "media") is None


async def test_price_order_loads_products_from_database(db):
    product = await catalog.create_product(db, margherita())

    priced = await price_order(db, [item(product_id=product.id, crust=ModifierSelection(name="catupiry"))])

    assert priced.total == Decimal("50.90")
    assert priced.items[0].product_name == "Pizza Margherita"
