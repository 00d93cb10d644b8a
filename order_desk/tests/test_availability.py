import pytest

from order_desk.errors import (
    InsufficientStockError,
    ProductReferenceError,
    SizeNotAvailableError,
    VariantNotFoundError,
)
from order_desk.models.entities import OrderItem, Product, VariantGroup
from order_desk.services.availability_service import check_availability


@pytest.fixture
def product():
    return Product(
        id=7,
        name='Tee',
        code='TEE',
        variant_groups=[
            VariantGroup(color='Black', sizes=['M', 'L', 'XL'], quantities={'M': 5, 'L': 1}),
        ],
    )


@pytest.mark.parametrize('color,size,qty,available,available_qty,outcome', [
    ('Black', 'M', 5, True, 5, 'ok'),
    ('black', 'M', 1, True, 5, 'ok'),
    ('Black', 'L', 2, False, 1, 'insufficient'),
    ('Black', 'XL', 1, False, 0, 'insufficient'),
    ('Blue', 'M', 1, False, 0, 'variant_not_found'),
    ('Black', 'S', 1, False, 0, 'size_not_available'),
])
def test_check_availability_outcomes(product, color, size, qty, available, available_qty, outcome):
    result = check_availability(product, color, size, qty)
    assert result.available is available
    assert result.available_qty == available_qty
    assert result.outcome == outcome


@pytest.mark.parametrize('color,size', [(None, 'M'), ('Black', None), (None, None)])
def test_missing_color_or_size_is_legacy(product, color, size):
    result = check_availability(product, color, size, 1000)
    assert result.available is True
    assert result.available_qty is None
    assert result.outcome == 'legacy'


def test_product_without_variants_has_no_ceiling():
    result = check_availability(Product(id=1, name='Mug', code='MUG'), 'Black', 'M', 1000)
    assert result.available is True
    assert result.outcome == 'legacy'


def test_messages_name_the_cell(product):
    assert check_availability(product, 'Blue', 'M', 1).reason == "Color 'Blue' not found for product"
    assert check_availability(product, 'Black', 'S', 1).reason == "Size 'S' not available for color 'Black'"
    assert check_availability(product, 'Black', 'L', 2).reason == "Only 1 items available for Tee (Black, L)"


def _item(product_id, color, size, qty):
    return OrderItem(
        product_id=product_id,
        product_name_snapshot='Tee',
        qty=qty,
        sell_price_bdt_snapshot=None,
        color_snapshot=color,
        size_snapshot=size,
    )


def test_gate_raises_typed_errors(container, tee):
    gate = container.availability_service
    with pytest.raises(InsufficientStockError) as exc:
        gate.ensure_items_available([_item(tee['id'], 'Black', 'L', 2)])
    assert exc.value.available_qty == 1
    assert exc.value.to_dict() == {
        'error': 'Only 1 items available for Tee (Black, L)',
        'product_id': tee['id'],
        'color': 'Black',
        'size': 'L',
        'available_quantity': 1,
    }

    with pytest.raises(VariantNotFoundError):
        gate.ensure_items_available([_item(tee['id'], 'Green', 'M', 1)])
    with pytest.raises(SizeNotAvailableError):
        gate.ensure_items_available([_item(tee['id'], 'Black', 'XS', 1)])


def test_gate_sums_repeated_cells(container, tee):
    gate = container.availability_service
    gate.ensure_items_available([_item(tee['id'], 'Black', 'M', 3)])
    with pytest.raises(InsufficientStockError):
        gate.ensure_items_available([
            _item(tee['id'], 'Black', 'M', 3),
            _item(tee['id'], 'black', 'M', 3),
        ])


def test_gate_rejects_unknown_product(container):
    with pytest.raises(ProductReferenceError):
        container.availability_service.ensure_items_available([_item(999, 'Black', 'M', 1)])


def test_dry_run_reports_every_item(container, tee):
    report = container.availability_service.dry_run([
        _item(tee['id'], 'Black', 'M', 1),
        _item(tee['id'], 'Red', 'S', 1),
    ])
    assert [r['available'] for r in report] == [True, False]
    assert report[1]['available_quantity'] == 0
    assert report[1]['color'] == 'Red'


def test_dry_run_sums_repeated_cells(container, tee):
    report = container.availability_service.dry_run([
        _item(tee['id'], 'Black', 'L', 1),
        _item(tee['id'], 'Black', 'L', 1),
        _item(tee['id'], 'Black', 'M', 2),
    ])
    assert [r['available'] for r in report] == [False, False, True]
    assert report[0]['qty'] == 1
    assert report[0]['reason'] == 'Only 1 items available for Tee (Black, L)'


def test_stock_gate_boundaries():
    product = Product(
        id=1,
        name='Tee',
        code='TEE',
        variant_groups=[VariantGroup(color='Black', sizes=['M', 'L'], quantities={'M': 5, 'L': 0})],
    )
    assert check_availability(product, 'Black', 'M', 5).available is True
    assert check_availability(product, 'Black', 'M', 6).available_qty == 5
    assert check_availability(product, 'Black', 'L', 1).available_qty == 0
    assert check_availability(product, 'Black', 'XL', 1).outcome == 'size_not_available'
