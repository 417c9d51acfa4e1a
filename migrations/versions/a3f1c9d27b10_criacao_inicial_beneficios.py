"""Criação inicial das tabelas de funcionários e vales

Revision ID: a3f1c9d27b10
Revises:
Create Date: 2026-10-19 09:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a3f1c9d27b10'
down_revision = None
branch_labels = None
depends_on = None

INVOICE_STATUS = ('DRAFT', 'CLOSED')
MARKET_ALLOCATION_STATUS = ('DEFAULT', 'FALTA', 'PROPORCIONAL', 'EXCLUIDO')
MEAL_LINE_KIND = (
    'MEAL_LUNCH', 'COFFEE_SANDWICH', 'COFFEE_COFFEE_LITER', 'COFFEE_COFFEE_MILK_LITER',
    'COFFEE_MILK_LITER', 'SPECIAL_SERVICE', 'MEAL_LUNCH_VISITORS', 'MEAL_LUNCH_THIRD_PARTY',
    'MEAL_LUNCH_DONATION',
)
MEAL_LINE_PART = ('SECOND_HALF', 'FIRST_HALF_NEXT')


def _enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True)


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    # 1. Tabela 'employees' (sem dependências)
    op.create_table('employees',
        *_timestamps(),
        sa.Column('matricula', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('cost_center', sa.String(length=50), nullable=False),
        sa.Column('branch', sa.String(length=20), nullable=False),
        sa.Column('admission_date', sa.Date(), nullable=False),
        sa.Column('termination_date', sa.Date(), nullable=True),
        sa.Column('voucher_market_excluded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('voucher_meal_excluded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('matricula')
    )

    # 2. Vale Mercado
    op.create_table('voucher_market_invoices',
        *_timestamps(),
        sa.Column('competence', sa.Date(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('invoice_value', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', _enum(INVOICE_STATUS, 'voucher_market_invoice_status'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('competence', name='uq_voucher_market_invoices_competence')
    )
    op.create_table('voucher_market_allocations',
        *_timestamps(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', _enum(MARKET_ALLOCATION_STATUS, 'voucher_market_allocation_status'), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['voucher_market_invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_id', 'employee_id', name='uq_voucher_market_allocation_employee')
    )

    # 3. Vale Refeição
    op.create_table('voucher_meal_invoices',
        *_timestamps(),
        sa.Column('competence', sa.Date(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('branch', sa.String(length=20), nullable=False),
        sa.Column('invoice_second_half_number', sa.String(length=50), nullable=False),
        sa.Column('invoice_first_half_next_number', sa.String(length=50), nullable=False),
        sa.Column('invoice_second_half', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('invoice_first_half_next', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', _enum(INVOICE_STATUS, 'voucher_meal_invoice_status'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('competence', 'branch', name='uq_voucher_meal_invoices_competence_branch')
    )
    op.create_table('voucher_meal_invoice_lines',
        *_timestamps(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('kind', _enum(MEAL_LINE_KIND, 'voucher_meal_line_kind'), nullable=False),
        sa.Column('part', _enum(MEAL_LINE_PART, 'voucher_meal_line_part'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['voucher_meal_invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_id', 'kind', 'part', name='uq_voucher_meal_line_kind_part')
    )
    op.create_table('voucher_meal_allocations',
        *_timestamps(),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('employee20', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('company80', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total100', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['voucher_meal_invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_id', 'employee_id', name='uq_voucher_meal_allocation_employee')
    )


def downgrade():
    # ### Comandos para reverter na ordem inversa ###
    op.drop_table('voucher_meal_allocations')
    op.drop_table('voucher_meal_invoice_lines')
    op.drop_table('voucher_meal_invoices')
    op.drop_table('voucher_market_allocations')
    op.drop_table('voucher_market_invoices')
    op.drop_table('employees')
