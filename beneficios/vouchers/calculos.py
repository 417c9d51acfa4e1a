# beneficios/vouchers/calculos.py
"""
Regras fixas de rateio dos vales.

Vale Mercado: valor base por funcionário, nota dividida 95% empresa / 5% funcionários.
Vale Refeição: o funcionário informa os 20% dele; empresa paga 80% (x4) e o total é x5.
"""

import enum
from decimal import Decimal

from ..utils import round_money

# --- CONSTANTES DE NEGÓCIO ---
BASE_VALE_MERCADO = Decimal('541.00')
MARKET_COMPANY_SHARE = Decimal('0.95')
MARKET_EMPLOYEE_SHARE = Decimal('0.05')

MEAL_TOTAL_MULTIPLIER = 5
MEAL_COMPANY_MULTIPLIER = 4

# Filial 2 nunca entra no Vale Refeição
MEAL_EXCLUDED_BRANCHES = frozenset({'2'})

# Tolerância de fechamento (1 centavo)
CLOSE_TOLERANCE = Decimal('0.01')

ZERO = Decimal('0.00')


class InvoiceStatus(enum.Enum):
    DRAFT = 'DRAFT'
    CLOSED = 'CLOSED'


class MarketAllocationStatus(enum.Enum):
    DEFAULT = 'DEFAULT'
    FALTA = 'FALTA'
    PROPORCIONAL = 'PROPORCIONAL'
    EXCLUIDO = 'EXCLUIDO'


class MealLinePart(enum.Enum):
    SECOND_HALF = 'SECOND_HALF'              # 2ª quinzena do mês
    FIRST_HALF_NEXT = 'FIRST_HALF_NEXT'      # 1ª quinzena do mês seguinte


class MealLineCategory(enum.Enum):
    LUNCH = 'LUNCH'
    COFFEE = 'COFFEE'
    THIRD_PARTY = 'THIRD_PARTY'


class MealLineKind(enum.Enum):
    MEAL_LUNCH = 'MEAL_LUNCH'
    COFFEE_SANDWICH = 'COFFEE_SANDWICH'
    COFFEE_COFFEE_LITER = 'COFFEE_COFFEE_LITER'
    COFFEE_COFFEE_MILK_LITER = 'COFFEE_COFFEE_MILK_LITER'
    COFFEE_MILK_LITER = 'COFFEE_MILK_LITER'
    SPECIAL_SERVICE = 'SPECIAL_SERVICE'
    MEAL_LUNCH_VISITORS = 'MEAL_LUNCH_VISITORS'
    MEAL_LUNCH_THIRD_PARTY = 'MEAL_LUNCH_THIRD_PARTY'
    MEAL_LUNCH_DONATION = 'MEAL_LUNCH_DONATION'

    @property
    def category(self):
        return LINE_CATEGORY[self]


LINE_CATEGORY = {
    MealLineKind.MEAL_LUNCH: MealLineCategory.LUNCH,
    MealLineKind.COFFEE_SANDWICH: MealLineCategory.COFFEE,
    MealLineKind.COFFEE_COFFEE_LITER: MealLineCategory.COFFEE,
    MealLineKind.COFFEE_COFFEE_MILK_LITER: MealLineCategory.COFFEE,
    MealLineKind.COFFEE_MILK_LITER: MealLineCategory.COFFEE,
    MealLineKind.SPECIAL_SERVICE: MealLineCategory.COFFEE,
    MealLineKind.MEAL_LUNCH_VISITORS: MealLineCategory.THIRD_PARTY,
    MealLineKind.MEAL_LUNCH_THIRD_PARTY: MealLineCategory.THIRD_PARTY,
    MealLineKind.MEAL_LUNCH_DONATION: MealLineCategory.THIRD_PARTY,
}

# Chaves usadas no resumo de terceiros
THIRD_PARTY_LABELS = {
    MealLineKind.MEAL_LUNCH_VISITORS: 'VISITORS',
    MealLineKind.MEAL_LUNCH_THIRD_PARTY: 'THIRD_PARTY',
    MealLineKind.MEAL_LUNCH_DONATION: 'DONATION',
}


# --- VALE MERCADO ---

def default_market_allocation(excluded):
    """Lançamento inicial do mês, respeitando a flag persistente de exclusão."""
    if excluded:
        return ZERO, MarketAllocationStatus.EXCLUIDO
    return BASE_VALE_MERCADO, MarketAllocationStatus.DEFAULT


def resolve_market_amount(status, amount=None):
    """FALTA e EXCLUIDO zeram o valor; DEFAULT e PROPORCIONAL usam o valor informado."""
    if status in (MarketAllocationStatus.FALTA, MarketAllocationStatus.EXCLUIDO):
        return ZERO
    if amount is None:
        return BASE_VALE_MERCADO if status is MarketAllocationStatus.DEFAULT else ZERO
    return round_money(amount)


def market_split(invoice_value):
    """Divisão informativa da nota: 95% empresa / 5% funcionários."""
    value = round_money(invoice_value)
    return {
        'company95': round_money(value * MARKET_COMPANY_SHARE),
        'employees5': round_money(value * MARKET_EMPLOYEE_SHARE),
    }


# --- VALE REFEIÇÃO ---

def calc_from_employee20(employee20):
    """20% -> 100% = x5; 80% = x4. Sempre recalculados juntos."""
    e20 = round_money(employee20)
    return {
        'employee20': e20,
        'company80': round_money(e20 * MEAL_COMPANY_MULTIPLIER),
        'total100': round_money(e20 * MEAL_TOTAL_MULTIPLIER),
    }


def summarize_meal_lines(lines):
    """Soma as linhas da nota por parte e por categoria.

    ``lines`` é um iterável de tuplas (kind, part, amount).
    """
    by_part = {part: ZERO for part in MealLinePart}
    by_category = {category: ZERO for category in MealLineCategory}
    third_party = {label: ZERO for label in THIRD_PARTY_LABELS.values()}

    for kind, part, amount in lines:
        amount = round_money(amount)
        by_part[part] += amount
        category = kind.category
        by_category[category] += amount
        if category is MealLineCategory.THIRD_PARTY:
            third_party[THIRD_PARTY_LABELS[kind]] += amount

    return {
        'second_half': round_money(by_part[MealLinePart.SECOND_HALF]),
        'first_half_next': round_money(by_part[MealLinePart.FIRST_HALF_NEXT]),
        'lunch': round_money(by_category[MealLineCategory.LUNCH]),
        'coffee': round_money(by_category[MealLineCategory.COFFEE]),
        'third_party': round_money(by_category[MealLineCategory.THIRD_PARTY]),
        'third_party_by_kind': {k: round_money(v) for k, v in third_party.items()},
    }


def coffee_per_employee(coffee_total, employee_count):
    # Café é 100% empresa, rateado igualmente entre os colaboradores listados
    if not employee_count:
        return ZERO
    return round_money(Decimal(coffee_total) / employee_count)


# --- CONCILIAÇÃO ---

def reconcile(invoice_total, allocations_total):
    """Retorna (diff, ok). ok quando |diff| fica abaixo de 1 centavo."""
    diff = round_money(Decimal(invoice_total) - Decimal(allocations_total))
    return diff, abs(diff) < CLOSE_TOLERANCE
