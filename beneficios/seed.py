# beneficios/seed.py
"""Carga inicial de funcionários a partir do JSON exportado da folha."""

import json
import logging
import os

from . import db
from .errors import TerminationBeforeAdmission
from .models import Employee
from .utils import normalize_name, normalize_simple, parse_date_flexible

logger = logging.getLogger(__name__)


def _text(value):
    # A exportação às vezes traz matrícula e filial como número
    return '' if value is None else str(value)


def employee_fields(raw):
    """Converte um registro do JSON ({"Nome", "Matricula", ...}) nos campos do modelo."""
    demissao = _text(raw.get('Demissao')).strip()
    fields = {
        'name': normalize_name(_text(raw.get('Nome'))),
        'matricula': normalize_simple(_text(raw.get('Matricula'))),
        'cost_center': normalize_simple(_text(raw.get('Centro Custo'))),
        'branch': normalize_simple(_text(raw.get('Filial'))),
        'admission_date': parse_date_flexible(raw.get('Admissao')),
        'termination_date': parse_date_flexible(demissao) if demissao else None,
    }
    if fields['termination_date'] is not None and fields['termination_date'] < fields['admission_date']:
        raise TerminationBeforeAdmission()
    return fields


def seed_employees(path):
    """Cria ou atualiza funcionários pela matrícula. Retorna {created, updated, total}."""
    if not os.path.isabs(path):
        path = os.path.join(os.getcwd(), path)

    with open(path, encoding='utf-8') as f:
        items = json.load(f)

    # Valida o arquivo inteiro antes de gravar qualquer registro
    records = [employee_fields(raw) for raw in items]

    created = 0
    updated = 0
    for data in records:
        existing = Employee.query.filter_by(matricula=data['matricula']).first()
        if existing is None:
            db.session.add(Employee(**data))
            created += 1
        else:
            # Só dados "mestres"; a matrícula nunca muda
            for field in ('name', 'cost_center', 'branch', 'admission_date', 'termination_date'):
                setattr(existing, field, data[field])
            updated += 1

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    result = {'created': created, 'updated': updated, 'total': len(items)}
    logger.info(f'Seed de funcionários concluído: {result}')
    return result
