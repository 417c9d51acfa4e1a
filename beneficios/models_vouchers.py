# beneficios/models_vouchers.py

from . import db
from .models import BaseModel
from .utils import money_str, date_str
from .vouchers.calculos import (
    InvoiceStatus, MarketAllocationStatus, MealLineKind, MealLinePart,
)


def _enum(enum_cls, name):
    # VARCHAR + CHECK: mesmo schema em Postgres, MySQL e SQLite
    return db.Enum(enum_cls, name=name, native_enum=False, create_constraint=True)


class VoucherInvoiceMixin:
    """Campos e regras comuns às notas de Vale Mercado e Vale Refeição."""
    competence = db.Column(db.Date, nullable=False)
    closed_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_closed(self):
        return self.status is InvoiceStatus.CLOSED


# --- VALE MERCADO ---

class VoucherMarketInvoice(VoucherInvoiceMixin, BaseModel):
    __tablename__ = 'voucher_market_invoices'
    __table_args__ = (
        db.UniqueConstraint('competence', name='uq_voucher_market_invoices_competence'),
    )
    invoice_number = db.Column(db.String(50), nullable=False, default='')
    invoice_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(_enum(InvoiceStatus, 'voucher_market_invoice_status'),
                       nullable=False, default=InvoiceStatus.DRAFT)

    allocations = db.relationship('VoucherMarketAllocation', backref='invoice', lazy=True,
                                  cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'competence': date_str(self.competence),
            'invoiceNumber': self.invoice_number,
            'invoiceValue': money_str(self.invoice_value),
            'status': self.status.value,
            'closedAt': self.closed_at.isoformat() if self.closed_at else None,
        }


class VoucherMarketAllocation(BaseModel):
    __tablename__ = 'voucher_market_allocations'
    __table_args__ = (
        db.UniqueConstraint('invoice_id', 'employee_id', name='uq_voucher_market_allocation_employee'),
    )
    invoice_id = db.Column(db.Integer, db.ForeignKey('voucher_market_invoices.id'), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(_enum(MarketAllocationStatus, 'voucher_market_allocation_status'),
                       nullable=False, default=MarketAllocationStatus.DEFAULT)
    note = db.Column(db.String(255), nullable=True)

    employee = db.relationship('Employee')

    def to_dict(self):
        return {
            'id': self.id,
            'employeeId': self.employee_id,
            'amount': money_str(self.amount),
            'status': self.status.value,
            'note': self.note,
            'employee': self.employee.to_summary(),
        }


# --- VALE REFEIÇÃO ---

class VoucherMealInvoice(VoucherInvoiceMixin, BaseModel):
    __tablename__ = 'voucher_meal_invoices'
    __table_args__ = (
        db.UniqueConstraint('competence', 'branch', name='uq_voucher_meal_invoices_competence_branch'),
    )
    branch = db.Column(db.String(20), nullable=False, default='1')
    invoice_second_half_number = db.Column(db.String(50), nullable=False, default='')
    invoice_first_half_next_number = db.Column(db.String(50), nullable=False, default='')
    # Somas das linhas de cada nota; nunca informadas diretamente
    invoice_second_half = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    invoice_first_half_next = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(_enum(InvoiceStatus, 'voucher_meal_invoice_status'),
                       nullable=False, default=InvoiceStatus.DRAFT)

    lines = db.relationship('VoucherMealInvoiceLine', backref='invoice', lazy=True,
                            cascade='all, delete-orphan')
    allocations = db.relationship('VoucherMealAllocation', backref='invoice', lazy=True,
                                  cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'competence': date_str(self.competence),
            'branch': self.branch,
            'invoiceSecondHalfNumber': self.invoice_second_half_number,
            'invoiceFirstHalfNextNumber': self.invoice_first_half_next_number,
            'invoiceSecondHalf': money_str(self.invoice_second_half),
            'invoiceFirstHalfNext': money_str(self.invoice_first_half_next),
            'status': self.status.value,
            'closedAt': self.closed_at.isoformat() if self.closed_at else None,
        }


class VoucherMealInvoiceLine(BaseModel):
    __tablename__ = 'voucher_meal_invoice_lines'
    __table_args__ = (
        db.UniqueConstraint('invoice_id', 'kind', 'part', name='uq_voucher_meal_line_kind_part'),
    )
    invoice_id = db.Column(db.Integer, db.ForeignKey('voucher_meal_invoices.id'), nullable=False)
    kind = db.Column(_enum(MealLineKind, 'voucher_meal_line_kind'), nullable=False)
    part = db.Column(_enum(MealLinePart, 'voucher_meal_line_part'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'part': self.part.value,
            'category': self.kind.category.value,
            'amount': money_str(self.amount),
        }


class VoucherMealAllocation(BaseModel):
    __tablename__ = 'voucher_meal_allocations'
    __table_args__ = (
        db.UniqueConstraint('invoice_id', 'employee_id', name='uq_voucher_meal_allocation_employee'),
    )
    invoice_id = db.Column(db.Integer, db.ForeignKey('voucher_meal_invoices.id'), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    # Único campo editável; os outros dois são derivados dele
    employee20 = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    company80 = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total100 = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    employee = db.relationship('Employee')

    def to_dict(self):
        return {
            'id': self.id,
            'employeeId': self.employee_id,
            'employee20': money_str(self.employee20),
            'company80': money_str(self.company80),
            'total100': money_str(self.total100),
            'employee': self.employee.to_summary(),
        }
