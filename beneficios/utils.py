# beneficios/utils.py
"""Funções de competência (mês) e de dinheiro usadas por todos os cálculos."""

import re
from collections import namedtuple
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from flask import request

from .errors import BeneficiosError, InvalidFormat, InvalidAmount

CENTAVOS = Decimal('0.01')
# Limite das colunas Numeric(12, 2)
MAX_MONEY = Decimal('10000000000')

_MONTH_RE = re.compile(r'^(\d{4})-(\d{2})$')
_ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_COMPACT_DATE_RE = re.compile(r'^\d{8}$')

MonthRange = namedtuple('MonthRange', ['start', 'end'])


# --- COMPETÊNCIA ---

def parse_month(value):
    """Converte "YYYY-MM" no primeiro dia do mês.

    Retorna um ``date`` puro (sem fuso), comparável direto com colunas DATE.
    """
    if not isinstance(value, str):
        raise InvalidFormat('Formato de mês inválido. Use YYYY-MM')

    match = _MONTH_RE.match(value.strip())
    if not match:
        raise InvalidFormat('Formato de mês inválido. Use YYYY-MM')

    year, month = int(match.group(1)), int(match.group(2))
    if month < 1 or month > 12:
        raise InvalidFormat('Mês inválido')

    return date(year, month, 1)


def month_arg():
    """Lê o parâmetro obrigatório ?month=YYYY-MM da requisição atual."""
    month = (request.args.get('month') or '').strip()
    if not month:
        raise BeneficiosError('month é obrigatório (YYYY-MM)')
    return parse_month(month)


def month_range(month_start):
    """Intervalo fechado [primeiro dia, último dia] do mês."""
    start = date(month_start.year, month_start.month, 1)
    if start.month == 12:
        next_month = date(start.year + 1, 1, 1)
    else:
        next_month = date(start.year, start.month + 1, 1)
    return MonthRange(start=start, end=next_month - timedelta(days=1))


def format_month(value):
    return f'{value.year:04d}-{value.month:02d}'


def parse_date_flexible(value):
    """Aceita "YYYY-MM-DD" ou "YYYYMMDD"."""
    v = str(value or '').strip()
    try:
        if _ISO_DATE_RE.match(v):
            return date(int(v[0:4]), int(v[5:7]), int(v[8:10]))
        if _COMPACT_DATE_RE.match(v):
            return date(int(v[0:4]), int(v[4:6]), int(v[6:8]))
    except ValueError:
        raise InvalidFormat('Data inválida')
    raise InvalidFormat('Formato de data inválido. Use YYYY-MM-DD ou YYYYMMDD.')


def normalize_name(value):
    # Remove espaços duplicados e trim
    return re.sub(r'\s+', ' ', value).strip()


def normalize_simple(value):
    return value.strip()


# --- DINHEIRO ---

def to_money(value):
    """Converte número ou texto ("12,5" / "12.5") em Decimal com 2 casas (half-up)."""
    if isinstance(value, bool) or value is None:
        raise InvalidAmount('Valor inválido')

    if isinstance(value, str):
        value = value.strip().replace(',', '.')
        if not value:
            raise InvalidAmount('Valor inválido')

    try:
        # float passa por str() para não herdar o ruído binário (0.1 -> 0.1000000000000000055...)
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount('Valor inválido')

    if not amount.is_finite():
        raise InvalidAmount('Valor inválido')

    try:
        amount = amount.quantize(CENTAVOS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount('Valor inválido')

    if abs(amount) >= MAX_MONEY:
        raise InvalidAmount('Valor fora do limite permitido')

    return amount


def round_money(value):
    # "+ 0" normaliza -0.00 para 0.00
    return Decimal(value).quantize(CENTAVOS, rounding=ROUND_HALF_UP) + 0


def money_str(value):
    return str(round_money(value if value is not None else 0))


def date_str(value):
    return value.isoformat() if value else None
