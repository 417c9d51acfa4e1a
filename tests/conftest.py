# tests/conftest.py

import sys
import os
from datetime import date

import pytest

# Adiciona o diretório raiz do projeto ao path do Python
# Isto permite que o pytest encontre o pacote 'beneficios' sem instalação
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from beneficios import create_app, db
from beneficios.config import TestConfig
from beneficios.models import Employee


@pytest.fixture(scope='function')
def test_app():
    """
    Cria uma instância da aplicação Flask para cada teste, garantindo isolamento total.
    """
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app  # Fornece a instância da app para o teste
        db.session.remove()
        db.drop_all()  # Limpa a base de dados depois do teste


@pytest.fixture(scope='function')
def test_client(test_app):
    """
    Cria um cliente de teste para simular requisições HTTP para cada teste.
    """
    return test_app.test_client()


@pytest.fixture
def make_employee(test_app):
    """Fábrica de funcionários já gravados no banco."""
    counter = {'n': 0}

    def _make(name=None, branch='1', admission=date(2023, 1, 1), termination=None,
              cost_center='ADM', market_excluded=False, meal_excluded=False, matricula=None):
        counter['n'] += 1
        employee = Employee(
            matricula=matricula or f'M{counter["n"]:04d}',
            name=name or f'Funcionário {counter["n"]:02d}',
            cost_center=cost_center,
            branch=branch,
            admission_date=admission,
            termination_date=termination,
            voucher_market_excluded=market_excluded,
            voucher_meal_excluded=meal_excluded,
        )
        db.session.add(employee)
        db.session.commit()
        return employee

    return _make
