# beneficios/errors.py

from flask import jsonify, current_app
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException


class BeneficiosError(Exception):
    """Erro de domínio com mensagem visível para quem chamou a API."""
    status_code = 400

    def __init__(self, message, status_code=None, **payload):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        body = {'message': self.message}
        body.update(self.payload)
        return body


class InvalidFormat(BeneficiosError, ValueError):
    pass


class InvalidAmount(BeneficiosError, ValueError):
    pass


class TerminationBeforeAdmission(BeneficiosError):
    def __init__(self):
        super().__init__('Demissão não pode ser antes da admissão')


class InvoiceClosed(BeneficiosError):
    def __init__(self):
        super().__init__('Mês já está fechado.')


class EmployeeNotEligible(BeneficiosError):
    pass


class DuplicateMatricula(BeneficiosError):
    status_code = 409

    def __init__(self, matricula):
        super().__init__('Matrícula já existe', matricula=matricula)


class NotFound(BeneficiosError):
    status_code = 404


class ReconciliationMismatch(BeneficiosError):
    def __init__(self, diff, sum_allocations, invoice_total):
        super().__init__(
            'Não é possível fechar: a soma dos funcionários não bate com a nota.',
            diff=diff,
            sumAllocations=sum_allocations,
            invoiceValue=invoice_total,
        )


def register_error_handlers(app):

    @app.errorhandler(BeneficiosError)
    def handle_beneficios_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        issues = e.errors(include_url=False, include_context=False, include_input=False)
        return jsonify({'message': 'Dados inválidos', 'issues': issues}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        from . import db
        db.session.rollback()
        current_app.logger.exception('Erro não tratado')
        return jsonify({'message': 'Erro interno.'}), 500
