# beneficios/vouchers/services.py
"""
Ciclo de vida das notas mensais de Vale Mercado e Vale Refeição.

Cada competência (mês) tem uma nota em DRAFT que pode ser editada livremente,
fechada quando a soma dos funcionários bate com a nota e reaberta depois.
As rotas só validam a entrada e chamam as funções daqui.
"""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from .. import db
from ..errors import NotFound, InvoiceClosed, EmployeeNotEligible, ReconciliationMismatch
from ..models import Employee, utcnow
from ..models_vouchers import (
    VoucherMarketInvoice, VoucherMarketAllocation,
    VoucherMealInvoice, VoucherMealInvoiceLine, VoucherMealAllocation,
)
from ..utils import month_range, money_str, round_money, format_month
from .calculos import (
    BASE_VALE_MERCADO, MEAL_EXCLUDED_BRANCHES, ZERO,
    InvoiceStatus, MarketAllocationStatus, MealLineKind, MealLinePart,
    default_market_allocation, resolve_market_amount, market_split,
    calc_from_employee20, summarize_meal_lines, coffee_per_employee, reconcile,
)

logger = logging.getLogger(__name__)

PART_ORDER = list(MealLinePart)
KIND_ORDER = list(MealLineKind)


# --- ELEGIBILIDADE ---

def active_in_month(competence):
    """Filtro SQL: admitido até o fim do mês e não demitido antes do início."""
    start, end = month_range(competence)
    return and_(
        Employee.admission_date <= end,
        or_(Employee.termination_date.is_(None), Employee.termination_date >= start),
    )


def is_active_in_month(employee, competence):
    start, end = month_range(competence)
    if employee.admission_date > end:
        return False
    return employee.termination_date is None or employee.termination_date >= start


def employees_active_in_month(competence):
    return Employee.query.filter(active_in_month(competence)).order_by(Employee.name, Employee.id).all()


def meal_eligible(competence, branch):
    return and_(
        active_in_month(competence),
        Employee.voucher_meal_excluded.is_(False),
        Employee.branch == branch,
        Employee.branch.not_in(sorted(MEAL_EXCLUDED_BRANCHES)),
    )


def is_meal_eligible(employee, competence, branch):
    return (
        is_active_in_month(employee, competence)
        and not employee.voucher_meal_excluded
        and employee.branch == branch
        and employee.branch not in MEAL_EXCLUDED_BRANCHES
    )


def meal_eligible_employees(invoice):
    return (Employee.query
            .filter(meal_eligible(invoice.competence, invoice.branch))
            .order_by(Employee.name, Employee.id)
            .all())


# --- HELPERS DE PERSISTÊNCIA ---

def insert_ignore(model, rows):
    """INSERT em lote ignorando linhas que violem unique (skip duplicates)."""
    if not rows:
        return
    table = model.__table__
    dialect = db.engine.dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
        stmt = insert(table).on_conflict_do_nothing()
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
        stmt = insert(table).on_conflict_do_nothing()
    elif dialect in ('mysql', 'mariadb'):
        stmt = table.insert().prefix_with('IGNORE')
    else:
        raise RuntimeError(f'insert_ignore não suporta o banco {dialect}')
    db.session.execute(stmt, rows)


def ensure_draft(invoice):
    if invoice.is_closed:
        raise InvoiceClosed()


def reopen_invoice(invoice):
    """CLOSED -> DRAFT. Em DRAFT não faz nada."""
    if invoice.is_closed:
        invoice.status = InvoiceStatus.DRAFT
        invoice.closed_at = None
        db.session.commit()
        logger.info(f'Nota {invoice.__tablename__}#{invoice.id} reaberta')
    return invoice


def _sum(values):
    return round_money(sum(values, ZERO))


# --- VALE MERCADO ---

def find_market_invoice(competence):
    return VoucherMarketInvoice.query.filter_by(competence=competence).first()


def get_market_invoice(invoice_id):
    invoice = db.session.get(VoucherMarketInvoice, invoice_id)
    if invoice is None:
        raise NotFound('Nota não encontrada')
    return invoice


def top_up_market_allocations(invoice):
    """Cria o lançamento padrão de quem ainda não tem, respeitando a flag de exclusão."""
    rows = []
    for employee in employees_active_in_month(invoice.competence):
        amount, status = default_market_allocation(employee.voucher_market_excluded)
        rows.append({
            'invoice_id': invoice.id,
            'employee_id': employee.id,
            'amount': amount,
            'status': status,
            'note': None,
        })
    insert_ignore(VoucherMarketAllocation, rows)


def create_market_month(competence, invoice_number, invoice_value):
    """Cria a nota do mês ou devolve a existente. Retorna (invoice, existed)."""
    invoice = find_market_invoice(competence)
    existed = invoice is not None

    if not existed:
        invoice = VoucherMarketInvoice(
            competence=competence,
            invoice_number=invoice_number,
            invoice_value=invoice_value,
            status=InvoiceStatus.DRAFT,
        )
        db.session.add(invoice)
        try:
            db.session.commit()
            logger.info(f'Vale Mercado {format_month(competence)} criado (nota #{invoice.id})')
        except IntegrityError:
            # Outra requisição criou o mesmo mês entre a busca e o insert
            db.session.rollback()
            invoice = VoucherMarketInvoice.query.filter_by(competence=competence).one()
            existed = True
            logger.info(f'Vale Mercado {format_month(competence)} criado em paralelo; usando nota #{invoice.id}')

    if not invoice.is_closed:
        top_up_market_allocations(invoice)
        db.session.commit()

    return invoice, existed


def update_market_header(invoice, command):
    ensure_draft(invoice)
    fields = command.model_fields_set
    if 'invoice_number' in fields and command.invoice_number is not None:
        invoice.invoice_number = command.invoice_number
    if 'invoice_value' in fields and command.invoice_value is not None:
        invoice.invoice_value = command.invoice_value
    db.session.commit()
    return invoice


def update_market_allocation(invoice, employee_id, command):
    ensure_draft(invoice)
    allocation = VoucherMarketAllocation.query.filter_by(
        invoice_id=invoice.id, employee_id=employee_id).first()
    if allocation is None:
        raise NotFound('Lançamento não encontrado para este funcionário.')
    if not is_active_in_month(allocation.employee, invoice.competence):
        raise EmployeeNotEligible('Funcionário não trabalhou nesta competência.')

    allocation.status = command.status
    allocation.amount = resolve_market_amount(command.status, command.amount)
    if 'note' in command.model_fields_set:
        allocation.note = command.note
    db.session.commit()
    return allocation


def market_allocations(invoice):
    return (VoucherMarketAllocation.query
            .join(VoucherMarketAllocation.employee)
            .filter(VoucherMarketAllocation.invoice_id == invoice.id)
            .order_by(Employee.name, Employee.id)
            .all())


def market_totals(invoice, allocations):
    sum_allocations = _sum(a.amount for a in allocations)
    diff, _ = reconcile(invoice.invoice_value, sum_allocations)
    split = market_split(invoice.invoice_value)
    return {
        'sumAllocations': money_str(sum_allocations),
        'diff': money_str(diff),
        'company95': money_str(split['company95']),
        'employees5': money_str(split['employees5']),
    }


def market_detail(invoice):
    allocations = market_allocations(invoice)
    return {
        'invoice': invoice.to_dict(),
        'baseValue': money_str(BASE_VALE_MERCADO),
        'allocations': [a.to_dict() for a in allocations],
        'totals': market_totals(invoice, allocations),
    }


def close_market_invoice(invoice, command):
    """Fecha o mês com o snapshot enviado pela tela.

    A soma conferida é a dos lançamentos gravados sobrescritos pelo snapshot.
    Ao fechar, a situação EXCLUIDO de cada funcionário do snapshot vira a flag
    persistente usada no mês seguinte. Retorna False se a nota já estava fechada.
    """
    if invoice.is_closed:
        return False

    try:
        stored = {a.employee_id: a for a in invoice.allocations}
        snapshot = {s.employee_id: s for s in command.allocations}

        missing = [eid for eid in snapshot if eid not in stored]
        if missing:
            found = {e.id: e for e in Employee.query.filter(Employee.id.in_(missing)).all()}
            for eid in missing:
                employee = found.get(eid)
                if employee is None or not is_active_in_month(employee, invoice.competence):
                    raise EmployeeNotEligible(f'Funcionário {eid} não pertence a esta competência.')

        amounts = {eid: a.amount for eid, a in stored.items()}
        for eid, item in snapshot.items():
            amounts[eid] = resolve_market_amount(item.status, item.amount)

        total = _sum(amounts.values())
        diff, ok = reconcile(command.invoice_value, total)
        if not ok:
            raise ReconciliationMismatch(money_str(diff), money_str(total), money_str(command.invoice_value))

        invoice.invoice_number = command.invoice_number
        invoice.invoice_value = command.invoice_value
        for eid, item in snapshot.items():
            allocation = stored.get(eid)
            if allocation is None:
                allocation = VoucherMarketAllocation(employee_id=eid)
                invoice.allocations.append(allocation)
            allocation.status = item.status
            allocation.amount = amounts[eid]

        # --- Persistência da exclusão para o próximo mês ---
        excluded = [eid for eid, item in snapshot.items() if item.status is MarketAllocationStatus.EXCLUIDO]
        included = [eid for eid, item in snapshot.items() if item.status is not MarketAllocationStatus.EXCLUIDO]
        if excluded:
            Employee.query.filter(Employee.id.in_(excluded)).update(
                {Employee.voucher_market_excluded: True}, synchronize_session=False)
        if included:
            Employee.query.filter(Employee.id.in_(included)).update(
                {Employee.voucher_market_excluded: False}, synchronize_session=False)

        invoice.status = InvoiceStatus.CLOSED
        invoice.closed_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f'Vale Mercado {format_month(invoice.competence)} fechado (nota #{invoice.id}, total {money_str(total)})')
    return True


# --- VALE REFEIÇÃO ---

def ensure_meal_branch(branch):
    if branch in MEAL_EXCLUDED_BRANCHES:
        raise EmployeeNotEligible(f'Filial {branch} não participa do Vale Refeição.')


def find_meal_invoice(competence, branch):
    return VoucherMealInvoice.query.filter_by(competence=competence, branch=branch).first()


def get_meal_invoice(invoice_id):
    invoice = db.session.get(VoucherMealInvoice, invoice_id)
    if invoice is None:
        raise NotFound('Mês não encontrado')
    return invoice


def top_up_meal_allocations(invoice):
    rows = [
        {
            'invoice_id': invoice.id,
            'employee_id': employee.id,
            'employee20': ZERO,
            'company80': ZERO,
            'total100': ZERO,
        }
        for employee in meal_eligible_employees(invoice)
    ]
    insert_ignore(VoucherMealAllocation, rows)


def meal_line_summary(invoice):
    return summarize_meal_lines((line.kind, line.part, line.amount) for line in invoice.lines)


def apply_meal_lines(invoice, lines):
    """Upsert das linhas por (categoria, quinzena) e recálculo das somas do cabeçalho."""
    existing = {(line.kind, line.part): line for line in invoice.lines}
    for item in lines:
        line = existing.get((item.kind, item.part))
        if line is None:
            line = VoucherMealInvoiceLine(kind=item.kind, part=item.part)
            invoice.lines.append(line)
            existing[(item.kind, item.part)] = line
        line.amount = item.amount

    summary = meal_line_summary(invoice)
    invoice.invoice_second_half = summary['second_half']
    invoice.invoice_first_half_next = summary['first_half_next']


def create_meal_month(competence, branch, second_half_number='', first_half_next_number='', lines=None):
    """Cria a nota do mês/filial ou devolve a existente. Retorna (invoice, existed)."""
    ensure_meal_branch(branch)

    invoice = find_meal_invoice(competence, branch)
    existed = invoice is not None

    if not existed:
        invoice = VoucherMealInvoice(
            competence=competence,
            branch=branch,
            invoice_second_half_number=second_half_number,
            invoice_first_half_next_number=first_half_next_number,
            status=InvoiceStatus.DRAFT,
        )
        db.session.add(invoice)
        apply_meal_lines(invoice, lines or [])
        try:
            db.session.commit()
            logger.info(f'Vale Refeição {format_month(competence)} filial {branch} criado (nota #{invoice.id})')
        except IntegrityError:
            db.session.rollback()
            invoice = VoucherMealInvoice.query.filter_by(competence=competence, branch=branch).one()
            existed = True
            logger.info(f'Vale Refeição {format_month(competence)} criado em paralelo; usando nota #{invoice.id}')

    if not invoice.is_closed:
        top_up_meal_allocations(invoice)
        db.session.commit()

    return invoice, existed


def update_meal_invoice(invoice, command):
    ensure_draft(invoice)
    fields = command.model_fields_set
    if 'invoice_second_half_number' in fields and command.invoice_second_half_number is not None:
        invoice.invoice_second_half_number = command.invoice_second_half_number.strip()
    if 'invoice_first_half_next_number' in fields and command.invoice_first_half_next_number is not None:
        invoice.invoice_first_half_next_number = command.invoice_first_half_next_number.strip()
    if command.lines is not None:
        apply_meal_lines(invoice, command.lines)
    db.session.commit()
    return invoice


def meal_allocations(invoice):
    """Somente os lançamentos de funcionários elegíveis hoje aparecem e entram nas somas."""
    return (VoucherMealAllocation.query
            .join(VoucherMealAllocation.employee)
            .filter(VoucherMealAllocation.invoice_id == invoice.id)
            .filter(meal_eligible(invoice.competence, invoice.branch))
            .order_by(Employee.name, Employee.id)
            .all())


def update_meal_allocation(invoice, employee_id, employee20):
    ensure_draft(invoice)
    allocation = VoucherMealAllocation.query.filter_by(
        invoice_id=invoice.id, employee_id=employee_id).first()
    if allocation is None:
        raise NotFound('Lançamento não encontrado para este funcionário.')
    if not is_meal_eligible(allocation.employee, invoice.competence, invoice.branch):
        raise EmployeeNotEligible('Funcionário não participa do Vale Refeição nesta filial.')

    _apply_employee20(allocation, employee20)
    db.session.commit()
    return allocation


def _apply_employee20(allocation, employee20):
    calc = calc_from_employee20(employee20)
    allocation.employee20 = calc['employee20']
    allocation.company80 = calc['company80']
    allocation.total100 = calc['total100']


def meal_totals(invoice, allocations):
    summary = meal_line_summary(invoice)
    invoice_total = round_money(invoice.invoice_second_half + invoice.invoice_first_half_next)
    sum_employee20 = _sum(a.employee20 for a in allocations)
    sum_company80 = _sum(a.company80 for a in allocations)
    sum_total100 = _sum(a.total100 for a in allocations)
    diff, _ = reconcile(summary['lunch'], sum_total100)

    return {
        'invoiceTotal': money_str(invoice_total),
        'lunchTotal': money_str(summary['lunch']),
        'coffeeTotal': money_str(summary['coffee']),
        'thirdPartyTotal': money_str(summary['third_party']),
        'thirdPartyByKind': {k: money_str(v) for k, v in summary['third_party_by_kind'].items()},
        'employeeCount': len(allocations),
        'coffeePerEmployee': money_str(coffee_per_employee(summary['coffee'], len(allocations))),
        'sumEmployee20': money_str(sum_employee20),
        'sumCompany80': money_str(sum_company80),
        'sumTotal100': money_str(sum_total100),
        'companyTotalWithCoffee': money_str(sum_company80 + summary['coffee']),
        'diff': money_str(diff),
    }


def meal_detail(invoice):
    allocations = meal_allocations(invoice)
    lines = sorted(invoice.lines, key=lambda line: (PART_ORDER.index(line.part), KIND_ORDER.index(line.kind)))
    return {
        'invoice': invoice.to_dict(),
        'lines': [line.to_dict() for line in lines],
        'allocations': [a.to_dict() for a in allocations],
        'totals': meal_totals(invoice, allocations),
    }


def close_meal_invoice(invoice, command):
    """Aplica o snapshot (linhas e valores de 20%) e fecha se o almoço bater.

    Só a categoria LUNCH é conciliada contra a soma dos 100% dos elegíveis;
    café e terceiros são informativos. Retorna False se já estava fechada.
    """
    if invoice.is_closed:
        return False

    try:
        if command.lines is not None:
            apply_meal_lines(invoice, command.lines)

        allocations = meal_allocations(invoice)
        by_employee = {a.employee_id: a for a in allocations}
        for item in command.allocations or []:
            allocation = by_employee.get(item.employee_id)
            if allocation is None:
                raise EmployeeNotEligible(f'Funcionário {item.employee_id} não participa do Vale Refeição neste mês.')
            _apply_employee20(allocation, item.employee20)

        lunch = meal_line_summary(invoice)['lunch']
        sum_total100 = _sum(a.total100 for a in allocations)
        diff, ok = reconcile(lunch, sum_total100)
        if not ok:
            raise ReconciliationMismatch(money_str(diff), money_str(sum_total100), money_str(lunch))

        invoice.status = InvoiceStatus.CLOSED
        invoice.closed_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f'Vale Refeição {format_month(invoice.competence)} filial {invoice.branch} fechado (nota #{invoice.id})')
    return True
