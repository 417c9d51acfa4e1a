# beneficios/employees.py

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from . import db
from .errors import BeneficiosError, NotFound, DuplicateMatricula, TerminationBeforeAdmission
from .models import Employee
from .schemas import EmployeeCreate, EmployeeUpdate, EmployeeTerminate

bp = Blueprint('employees', __name__, url_prefix='/employees')

MAX_PAGE_SIZE = 200
DEFAULT_PAGE_SIZE = 20


def _get_employee_or_404(employee_id):
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFound('Funcionário não encontrado')
    return employee


def _check_dates(admission_date, termination_date):
    if termination_date is not None and termination_date < admission_date:
        raise TerminationBeforeAdmission()


def _int_arg(name, default, minimum, maximum=None):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BeneficiosError(f'Parâmetro {name} inválido')
    if value < minimum or (maximum is not None and value > maximum):
        raise BeneficiosError(f'Parâmetro {name} fora do intervalo permitido')
    return value


# --- LISTAGEM ---

@bp.route('', methods=['GET'])
def list_employees():
    """Lista paginada com filtros de situação, busca, filial e centro de custo."""
    status = request.args.get('status', 'active')
    if status not in ('active', 'inactive', 'all'):
        raise BeneficiosError('status deve ser active, inactive ou all')
    page = _int_arg('page', 1, 1)
    page_size = _int_arg('pageSize', DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE)

    query = Employee.query
    if status == 'active':
        query = query.filter(Employee.termination_date.is_(None))
    elif status == 'inactive':
        query = query.filter(Employee.termination_date.isnot(None))

    search = (request.args.get('search') or '').strip()
    if search:
        escaped = search.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
        pattern = f'%{escaped}%'
        query = query.filter(or_(Employee.name.ilike(pattern, escape='\\'),
                                 Employee.matricula.ilike(pattern, escape='\\')))

    branch = (request.args.get('branch') or '').strip()
    if branch:
        query = query.filter(Employee.branch == branch)

    cost_center = (request.args.get('costCenter') or '').strip()
    if cost_center:
        query = query.filter(Employee.cost_center == cost_center)

    pagination = query.order_by(Employee.name, Employee.id).paginate(
        page=page, per_page=page_size, error_out=False)

    return jsonify({
        'items': [e.to_dict() for e in pagination.items],
        'total': pagination.total,
        'page': page,
        'pageSize': page_size,
    })


@bp.route('/<int:employee_id>', methods=['GET'])
def get_employee(employee_id):
    return jsonify(_get_employee_or_404(employee_id).to_dict())


# --- CADASTRO ---

@bp.route('', methods=['POST'])
def create_employee():
    data = EmployeeCreate.model_validate(request.get_json(silent=True) or {})
    _check_dates(data.admission_date, data.termination_date)

    employee = Employee(
        matricula=data.matricula,
        name=data.name,
        cost_center=data.cost_center,
        branch=data.branch,
        admission_date=data.admission_date,
        termination_date=data.termination_date,
    )
    db.session.add(employee)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateMatricula(data.matricula)

    current_app.logger.info(f'Funcionário {employee.matricula} cadastrado (id {employee.id})')
    return jsonify(employee.to_dict()), 201


@bp.route('/<int:employee_id>', methods=['PUT'])
def update_employee(employee_id):
    employee = _get_employee_or_404(employee_id)
    payload = request.get_json(silent=True) or {}
    if 'matricula' in payload:
        raise BeneficiosError('Matrícula não pode ser alterada por este endpoint')

    data = EmployeeUpdate.model_validate(payload)
    changes = {field: getattr(data, field) for field in data.model_fields_set}

    # Regra conferida contra o registro já mesclado
    _check_dates(changes.get('admission_date', employee.admission_date),
                 changes.get('termination_date', employee.termination_date))

    for field, value in changes.items():
        setattr(employee, field, value)
    db.session.commit()
    current_app.logger.info(f'Funcionário {employee.matricula} atualizado: {sorted(data.model_fields_set)}')
    return jsonify(employee.to_dict())


# --- DESLIGAMENTO / REATIVAÇÃO ---

@bp.route('/<int:employee_id>/terminate', methods=['PATCH'])
def terminate_employee(employee_id):
    employee = _get_employee_or_404(employee_id)
    data = EmployeeTerminate.model_validate(request.get_json(silent=True) or {})
    _check_dates(employee.admission_date, data.termination_date)

    employee.termination_date = data.termination_date
    db.session.commit()
    current_app.logger.info(f'Funcionário {employee.matricula} desligado em {data.termination_date.isoformat()}')
    return jsonify(employee.to_dict())


@bp.route('/<int:employee_id>/reactivate', methods=['PATCH'])
def reactivate_employee(employee_id):
    employee = _get_employee_or_404(employee_id)
    employee.termination_date = None
    db.session.commit()
    current_app.logger.info(f'Funcionário {employee.matricula} reativado')
    return jsonify(employee.to_dict())
