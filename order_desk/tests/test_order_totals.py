from decimal import Decimal

import pytest

from order_desk.models.entities import OrderItem
from order_desk.services.order_totals import calculate_totals


def _line(price, qty):
    return OrderItem(product_id=1, product_name_snapshot='X', qty=qty, sell_price_bdt_snapshot=Decimal(str(price)))


@pytest.mark.parametrize('lines,delivery,advance,subtotal,total,due,count', [
    ([(450, 2)], 60, 500, 900, 960, 460, 2),
    ([(450, 2), (150, 1)], 120, 0, 1050, 1170, 1170, 3),
    ([(99.5, 3)], 0, 0, Decimal('298.5'), Decimal('298.5'), Decimal('298.5'), 3),
    ([(100, 1)], 60, 500, 100, 160, -340, 1),
    ([], 60, 0, 0, 60, 60, 0),
])
def test_calculate_totals(lines, delivery, advance, subtotal, total, due, count):
    totals = calculate_totals([_line(p, q) for p, q in lines], delivery, advance)
    assert totals.subtotal == Decimal(str(subtotal))
    assert totals.total == Decimal(str(total))
    assert totals.due == Decimal(str(due))
    assert totals.total_items == count


def test_decimal_arithmetic_has_no_float_drift():
    totals = calculate_totals([_line('0.1', 3)], '0.2', 0)
    assert totals.total == Decimal('0.5')


def test_to_dict_uses_plain_numbers():
    totals = calculate_totals([_line(450, 2)], 60, 500)
    assert totals.to_dict() == {'subtotal': 900, 'total': 960, 'due': 460, 'total_items': 2}


def test_same_input_gives_identical_totals():
    lines = [_line(450, 2), _line('99.5', 3)]
    first = calculate_totals(lines, 60, 500)
    second = calculate_totals(lines, 60, 500)
    assert first == second
    assert first.to_dict() == second.to_dict()
    assert [line.qty for line in lines] == [2, 3]
