# beneficios/vouchers/meal_routes.py

from flask import Blueprint, request, jsonify, current_app

from ..schemas import MealInvoiceCreate, MealInvoiceUpdate, MealAllocationUpdate, MealInvoiceClose
from ..utils import month_arg
from . import services
from .export import meal_export_response

bp = Blueprint('voucher_meal', __name__, url_prefix='/voucher-meal')


def _json_body():
    return request.get_json(silent=True) or {}


@bp.route('/invoices/by-month', methods=['GET'])
def invoice_by_month():
    competence = month_arg()
    branch = (request.args.get('branch') or '1').strip()
    invoice = services.find_meal_invoice(competence, branch)
    return jsonify({'invoice': invoice.to_dict() if invoice else None})


@bp.route('/invoices', methods=['POST'])
def create_invoice():
    data = MealInvoiceCreate.model_validate(_json_body())
    invoice, existed = services.create_meal_month(
        data.month,
        data.branch,
        second_half_number=data.invoice_second_half_number,
        first_half_next_number=data.invoice_first_half_next_number,
        lines=data.lines,
    )
    return jsonify({'invoiceId': invoice.id, 'existed': existed}), 200 if existed else 201


@bp.route('/invoices/<int:invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    return jsonify(services.meal_detail(services.get_meal_invoice(invoice_id)))


@bp.route('/invoices/<int:invoice_id>', methods=['PATCH'])
def update_invoice(invoice_id):
    """Atualiza números das notas e/ou linhas; os valores do cabeçalho são sempre recalculados."""
    invoice = services.get_meal_invoice(invoice_id)
    data = MealInvoiceUpdate.model_validate(_json_body())
    services.update_meal_invoice(invoice, data)
    return jsonify({'ok': True, 'invoice': invoice.to_dict()})


@bp.route('/invoices/<int:invoice_id>/allocations/<int:employee_id>', methods=['PATCH'])
def update_allocation(invoice_id, employee_id):
    invoice = services.get_meal_invoice(invoice_id)
    data = MealAllocationUpdate.model_validate(_json_body())
    allocation = services.update_meal_allocation(invoice, employee_id, data.employee20)
    return jsonify({'ok': True, 'allocation': allocation.to_dict()})


@bp.route('/invoices/<int:invoice_id>/close', methods=['POST'])
def close_invoice(invoice_id):
    invoice = services.get_meal_invoice(invoice_id)
    data = MealInvoiceClose.model_validate(_json_body())
    if not services.close_meal_invoice(invoice, data):
        current_app.logger.info(f'Vale Refeição nota #{invoice_id} já estava fechada')
    return jsonify({'ok': True, 'status': invoice.status.value})


@bp.route('/invoices/<int:invoice_id>/reopen', methods=['POST'])
def reopen_invoice(invoice_id):
    invoice = services.reopen_invoice(services.get_meal_invoice(invoice_id))
    return jsonify({'ok': True, 'status': invoice.status.value})


@bp.route('/invoices/<int:invoice_id>/export', methods=['GET'])
def export_invoice(invoice_id):
    invoice = services.get_meal_invoice(invoice_id)
    allocations = services.meal_allocations(invoice)
    return meal_export_response(invoice, allocations, services.meal_totals(invoice, allocations))
