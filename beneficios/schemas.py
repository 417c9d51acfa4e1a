# beneficios/schemas.py
"""
Validação dos corpos das requisições.

Cada rota converte o JSON recebido num destes modelos antes de qualquer regra
de negócio. Campos desconhecidos são rejeitados.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import parse_date_flexible, parse_month, to_money, normalize_name, normalize_simple
from .vouchers.calculos import MarketAllocationStatus, MealLineKind, MealLinePart


class Command(BaseModel):
    model_config = ConfigDict(extra='forbid', populate_by_name=True)


def non_negative_money(value):
    if value is None:
        return None
    amount = to_money(value)
    if amount < 0:
        raise ValueError('Valor não pode ser negativo')
    return amount


def check_unique_employees(items):
    ids = [item.employee_id for item in items or []]
    if len(ids) != len(set(ids)):
        raise ValueError('Funcionário repetido na lista de lançamentos')


def check_unique_lines(lines):
    keys = [(line.kind, line.part) for line in lines or []]
    if len(keys) != len(set(keys)):
        raise ValueError('Linha da nota repetida (mesma categoria e quinzena)')


# --- FUNCIONÁRIOS ---

class EmployeeCreate(Command):
    name: str
    matricula: str
    cost_center: str = Field(alias='costCenter')
    branch: str
    admission_date: date = Field(alias='admissionDate')
    termination_date: Optional[date] = Field(default=None, alias='terminationDate')

    @field_validator('admission_date', mode='before')
    @classmethod
    def parse_admission(cls, value):
        return parse_date_flexible(value)

    @field_validator('termination_date', mode='before')
    @classmethod
    def parse_termination(cls, value):
        return parse_date_flexible(value) if value else None

    @field_validator('name')
    @classmethod
    def clean_name(cls, value):
        value = normalize_name(value)
        if not value:
            raise ValueError('Nome obrigatório')
        return value

    @field_validator('matricula', 'cost_center', 'branch')
    @classmethod
    def clean_required(cls, value):
        value = normalize_simple(value)
        if not value:
            raise ValueError('Campo obrigatório')
        return value


class EmployeeUpdate(Command):
    """Atualização parcial: só os campos enviados são aplicados (``model_fields_set``)."""
    name: Optional[str] = None
    cost_center: Optional[str] = Field(default=None, alias='costCenter')
    branch: Optional[str] = None
    admission_date: Optional[date] = Field(default=None, alias='admissionDate')
    termination_date: Optional[date] = Field(default=None, alias='terminationDate')
    voucher_market_excluded: Optional[bool] = Field(default=None, alias='voucherMarketExcluded')
    voucher_meal_excluded: Optional[bool] = Field(default=None, alias='voucherMealExcluded')

    @field_validator('admission_date', 'termination_date', mode='before')
    @classmethod
    def parse_dates(cls, value):
        return parse_date_flexible(value) if value else None

    @field_validator('name')
    @classmethod
    def clean_name(cls, value):
        if value is None:
            return None
        value = normalize_name(value)
        if not value:
            raise ValueError('Nome obrigatório')
        return value

    @field_validator('cost_center', 'branch')
    @classmethod
    def clean_simple(cls, value):
        if value is None:
            return None
        value = normalize_simple(value)
        if not value:
            raise ValueError('Campo obrigatório')
        return value

    @model_validator(mode='after')
    def required_not_null(self):
        # Só a demissão aceita null (reativação); o resto não pode ser apagado
        for field in ('name', 'cost_center', 'branch', 'admission_date',
                      'voucher_market_excluded', 'voucher_meal_excluded'):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f'Campo {field} não pode ser nulo')
        return self


class EmployeeTerminate(Command):
    termination_date: date = Field(alias='terminationDate')

    @field_validator('termination_date', mode='before')
    @classmethod
    def parse_termination(cls, value):
        return parse_date_flexible(value)


# --- VALE MERCADO ---

class MarketInvoiceCreate(Command):
    month: date
    invoice_number: str = Field(alias='invoiceNumber', max_length=50)
    invoice_value: Decimal = Field(alias='invoiceValue')

    @field_validator('month', mode='before')
    @classmethod
    def parse_competence(cls, value):
        return parse_month(value)

    @field_validator('invoice_value', mode='before')
    @classmethod
    def parse_value(cls, value):
        return non_negative_money(value)

    @field_validator('invoice_number')
    @classmethod
    def clean_number(cls, value):
        return value.strip()


class MarketInvoiceUpdate(Command):
    invoice_number: Optional[str] = Field(default=None, alias='invoiceNumber', max_length=50)
    invoice_value: Optional[Decimal] = Field(default=None, alias='invoiceValue')

    @field_validator('invoice_value', mode='before')
    @classmethod
    def parse_value(cls, value):
        return non_negative_money(value)

    @field_validator('invoice_number')
    @classmethod
    def clean_number(cls, value):
        return value.strip() if value is not None else None


class MarketAllocationUpdate(Command):
    status: MarketAllocationStatus
    amount: Optional[Decimal] = None
    note: Optional[str] = Field(default=None, max_length=255)

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value):
        return non_negative_money(value)


class MarketAllocationSnapshot(Command):
    employee_id: int = Field(alias='employeeId', gt=0)
    amount: Decimal
    status: MarketAllocationStatus

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value):
        return non_negative_money(value)


class MarketInvoiceClose(Command):
    invoice_number: str = Field(alias='invoiceNumber', min_length=1, max_length=50)
    invoice_value: Decimal = Field(alias='invoiceValue')
    allocations: List[MarketAllocationSnapshot]

    @field_validator('invoice_value', mode='before')
    @classmethod
    def parse_value(cls, value):
        return non_negative_money(value)

    @field_validator('invoice_number')
    @classmethod
    def clean_number(cls, value):
        value = value.strip()
        if not value:
            raise ValueError('Informe o número da nota fiscal.')
        return value

    @model_validator(mode='after')
    def unique_employees(self):
        check_unique_employees(self.allocations)
        return self


# --- VALE REFEIÇÃO ---

class MealLineInput(Command):
    kind: MealLineKind
    part: MealLinePart
    amount: Decimal

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, value):
        return non_negative_money(value)


class MealInvoiceCreate(Command):
    month: date
    branch: str = '1'
    invoice_second_half_number: str = Field(default='', alias='invoiceSecondHalfNumber', max_length=50)
    invoice_first_half_next_number: str = Field(default='', alias='invoiceFirstHalfNextNumber', max_length=50)
    lines: Optional[List[MealLineInput]] = None

    @field_validator('month', mode='before')
    @classmethod
    def parse_competence(cls, value):
        return parse_month(value)

    @field_validator('branch', 'invoice_second_half_number', 'invoice_first_half_next_number')
    @classmethod
    def strip_text(cls, value):
        return value.strip()

    @model_validator(mode='after')
    def check_lines(self):
        if not self.branch:
            raise ValueError('Filial obrigatória')
        check_unique_lines(self.lines)
        return self


class MealInvoiceUpdate(Command):
    invoice_second_half_number: Optional[str] = Field(default=None, alias='invoiceSecondHalfNumber', max_length=50)
    invoice_first_half_next_number: Optional[str] = Field(default=None, alias='invoiceFirstHalfNextNumber', max_length=50)
    lines: Optional[List[MealLineInput]] = None

    @model_validator(mode='after')
    def check_lines(self):
        check_unique_lines(self.lines)
        return self


class MealAllocationUpdate(Command):
    employee20: Decimal

    @field_validator('employee20', mode='before')
    @classmethod
    def parse_employee20(cls, value):
        return non_negative_money(value)


class MealAllocationSnapshot(Command):
    employee_id: int = Field(alias='employeeId', gt=0)
    employee20: Decimal

    @field_validator('employee20', mode='before')
    @classmethod
    def parse_employee20(cls, value):
        return non_negative_money(value)


class MealInvoiceClose(Command):
    lines: Optional[List[MealLineInput]] = None
    allocations: Optional[List[MealAllocationSnapshot]] = None

    @model_validator(mode='after')
    def check_snapshot(self):
        check_unique_lines(self.lines)
        check_unique_employees(self.allocations)
        return self
