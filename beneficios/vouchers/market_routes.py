# beneficios/vouchers/market_routes.py

from flask import Blueprint, request, jsonify, current_app

from ..schemas import MarketInvoiceCreate, MarketInvoiceUpdate, MarketAllocationUpdate, MarketInvoiceClose
from ..utils import month_arg
from . import services
from .export import market_export_response

bp = Blueprint('voucher_market', __name__, url_prefix='/voucher-market')


def _json_body():
    return request.get_json(silent=True) or {}


@bp.route('/invoices/by-month', methods=['GET'])
def invoice_by_month():
    invoice = services.find_market_invoice(month_arg())
    return jsonify({'invoice': invoice.to_dict() if invoice else None})


@bp.route('/invoices', methods=['POST'])
def create_invoice():
    """Cria o mês se não existe; se já existir (inclusive corrida), devolve o existente."""
    data = MarketInvoiceCreate.model_validate(_json_body())
    invoice, existed = services.create_market_month(data.month, data.invoice_number, data.invoice_value)
    return jsonify({'invoiceId': invoice.id, 'existed': existed}), 200 if existed else 201


@bp.route('/invoices/<int:invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    return jsonify(services.market_detail(services.get_market_invoice(invoice_id)))


@bp.route('/invoices/<int:invoice_id>', methods=['PATCH'])
def update_invoice(invoice_id):
    invoice = services.get_market_invoice(invoice_id)
    data = MarketInvoiceUpdate.model_validate(_json_body())
    services.update_market_header(invoice, data)
    return jsonify({'ok': True, 'invoice': invoice.to_dict()})


@bp.route('/invoices/<int:invoice_id>/allocations/<int:employee_id>', methods=['PATCH'])
def update_allocation(invoice_id, employee_id):
    invoice = services.get_market_invoice(invoice_id)
    data = MarketAllocationUpdate.model_validate(_json_body())
    allocation = services.update_market_allocation(invoice, employee_id, data)
    return jsonify({'ok': True, 'allocation': allocation.to_dict()})


@bp.route('/invoices/<int:invoice_id>/close', methods=['POST'])
def close_invoice(invoice_id):
    invoice = services.get_market_invoice(invoice_id)
    data = MarketInvoiceClose.model_validate(_json_body())
    if not services.close_market_invoice(invoice, data):
        current_app.logger.info(f'Vale Mercado nota #{invoice_id} já estava fechada')
    return jsonify({'ok': True, 'status': invoice.status.value})


@bp.route('/invoices/<int:invoice_id>/reopen', methods=['POST'])
def reopen_invoice(invoice_id):
    invoice = services.reopen_invoice(services.get_market_invoice(invoice_id))
    return jsonify({'ok': True, 'status': invoice.status.value})


@bp.route('/invoices/<int:invoice_id>/export', methods=['GET'])
def export_invoice(invoice_id):
    invoice = services.get_market_invoice(invoice_id)
    return market_export_response(invoice, services.market_allocations(invoice))
