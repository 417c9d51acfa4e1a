# tests/test_calculos.py

from decimal import Decimal

import pytest

from beneficios.vouchers.calculos import (
    BASE_VALE_MERCADO, MarketAllocationStatus, MealLineCategory, MealLineKind, MealLinePart,
    default_market_allocation, resolve_market_amount, market_split,
    calc_from_employee20, summarize_meal_lines, coffee_per_employee, reconcile,
)


@pytest.mark.parametrize('employee20', ['0', '0.01', '33.33', '100', '123.45', '0.07'])
def test_meal_split_multiples(employee20):
    calc = calc_from_employee20(Decimal(employee20))
    e20 = calc['employee20']
    assert calc['total100'] == e20 * 5
    assert calc['company80'] == e20 * 4
    assert calc['total100'] == calc['company80'] + e20


def test_every_line_kind_has_a_category():
    assert {kind.category for kind in MealLineKind} == set(MealLineCategory)


def test_default_market_allocation_respects_exclusion_flag():
    assert default_market_allocation(False) == (BASE_VALE_MERCADO, MarketAllocationStatus.DEFAULT)
    assert default_market_allocation(True) == (Decimal('0.00'), MarketAllocationStatus.EXCLUIDO)


@pytest.mark.parametrize('status, amount, expected', [
    (MarketAllocationStatus.FALTA, Decimal('541.00'), Decimal('0.00')),
    (MarketAllocationStatus.EXCLUIDO, Decimal('100.00'), Decimal('0.00')),
    (MarketAllocationStatus.PROPORCIONAL, Decimal('270.50'), Decimal('270.50')),
    (MarketAllocationStatus.DEFAULT, None, Decimal('541.00')),
    (MarketAllocationStatus.DEFAULT, Decimal('500.00'), Decimal('500.00')),
])
def test_resolve_market_amount(status, amount, expected):
    assert resolve_market_amount(status, amount) == expected


def test_market_split():
    split = market_split(Decimal('1082.00'))
    assert split == {'company95': Decimal('1027.90'), 'employees5': Decimal('54.10')}


def test_summarize_meal_lines_groups_by_part_and_category():
    summary = summarize_meal_lines([
        (MealLineKind.MEAL_LUNCH, MealLinePart.SECOND_HALF, Decimal('300.00')),
        (MealLineKind.MEAL_LUNCH, MealLinePart.FIRST_HALF_NEXT, Decimal('200.00')),
        (MealLineKind.COFFEE_SANDWICH, MealLinePart.SECOND_HALF, Decimal('40.00')),
        (MealLineKind.SPECIAL_SERVICE, MealLinePart.FIRST_HALF_NEXT, Decimal('10.00')),
        (MealLineKind.MEAL_LUNCH_DONATION, MealLinePart.SECOND_HALF, Decimal('15.50')),
    ])
    assert summary['second_half'] == Decimal('355.50')
    assert summary['first_half_next'] == Decimal('210.00')
    assert summary['lunch'] == Decimal('500.00')
    assert summary['coffee'] == Decimal('50.00')
    assert summary['third_party'] == Decimal('15.50')
    assert summary['third_party_by_kind'] == {
        'VISITORS': Decimal('0.00'), 'THIRD_PARTY': Decimal('0.00'), 'DONATION': Decimal('15.50'),
    }


def test_coffee_per_employee():
    assert coffee_per_employee(Decimal('100.00'), 3) == Decimal('33.33')
    assert coffee_per_employee(Decimal('100.00'), 0) == Decimal('0.00')


def test_reconcile_tolerance():
    diff, ok = reconcile(Decimal('1000.00'), Decimal('999.99'))
    assert diff == Decimal('0.01')
    assert ok is False

    diff, ok = reconcile(Decimal('1000.00'), Decimal('1000.00'))
    assert diff == Decimal('0.00')
    assert ok is True
