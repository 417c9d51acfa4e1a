# tests/test_voucher_meal.py

from datetime import date
from io import BytesIO

import openpyxl
import pytest

from beneficios.models_vouchers import VoucherMealInvoice, VoucherMealAllocation
from beneficios.vouchers import services

LINES = [
    {'kind': 'MEAL_LUNCH', 'part': 'SECOND_HALF', 'amount': '300.00'},
    {'kind': 'MEAL_LUNCH', 'part': 'FIRST_HALF_NEXT', 'amount': 200},
    {'kind': 'COFFEE_SANDWICH', 'part': 'SECOND_HALF', 'amount': '50,00'},
    {'kind': 'MEAL_LUNCH_VISITORS', 'part': 'SECOND_HALF', 'amount': '30.00'},
]


@pytest.fixture
def staff(make_employee):
    """Dois elegíveis da filial 1, um da filial 2 e um excluído do VR."""
    return {
        'ana': make_employee(name='Ana', branch='1'),
        'bruno': make_employee(name='Bruno', branch='1'),
        'filial2': make_employee(name='Carla', branch='2'),
        'excluido': make_employee(name='Diego', branch='1', meal_excluded=True),
    }


def _create_month(client, **overrides):
    payload = {'month': '2024-01', 'invoiceSecondHalfNumber': 'NF-A', 'invoiceFirstHalfNextNumber': 'NF-B',
               'lines': LINES}
    payload.update(overrides)
    return client.post('/voucher-meal/invoices', json=payload)


def _detail(client, invoice_id):
    return client.get(f'/voucher-meal/invoices/{invoice_id}').get_json()


def _set_employee20(client, invoice_id, employee_id, value):
    return client.patch(f'/voucher-meal/invoices/{invoice_id}/allocations/{employee_id}',
                        json={'employee20': value})


def test_create_month_only_allocates_eligible(test_client, staff):
    response = _create_month(test_client)
    assert response.status_code == 201
    invoice_id = response.get_json()['invoiceId']

    employee_ids = {a.employee_id for a in VoucherMealAllocation.query.filter_by(invoice_id=invoice_id)}
    assert employee_ids == {staff['ana'].id, staff['bruno'].id}

    body = _detail(test_client, invoice_id)
    assert [a['employee']['name'] for a in body['allocations']] == ['Ana', 'Bruno']
    assert all(a['employee20'] == '0.00' for a in body['allocations'])


def test_header_amounts_are_sum_of_lines(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    invoice = _detail(test_client, invoice_id)['invoice']
    assert invoice['invoiceSecondHalf'] == '380.00'
    assert invoice['invoiceFirstHalfNext'] == '200.00'
    assert invoice['branch'] == '1'

    # Upsert de uma linha existente + linha nova
    response = test_client.patch(f'/voucher-meal/invoices/{invoice_id}', json={
        'invoiceSecondHalfNumber': 'NF-A2',
        'lines': [
            {'kind': 'MEAL_LUNCH', 'part': 'SECOND_HALF', 'amount': '310.00'},
            {'kind': 'COFFEE_MILK_LITER', 'part': 'FIRST_HALF_NEXT', 'amount': '12.50'},
        ],
    })
    assert response.status_code == 200
    invoice = response.get_json()['invoice']
    assert invoice['invoiceSecondHalf'] == '390.00'
    assert invoice['invoiceFirstHalfNext'] == '212.50'
    assert invoice['invoiceSecondHalfNumber'] == 'NF-A2'
    assert invoice['invoiceFirstHalfNextNumber'] == 'NF-B'
    assert len(_detail(test_client, invoice_id)['lines']) == 5


def test_header_amounts_are_not_accepted_as_input(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    response = test_client.patch(f'/voucher-meal/invoices/{invoice_id}', json={'invoiceSecondHalf': '999.00'})
    assert response.status_code == 400


def test_excluded_branch_cannot_have_invoice(test_client, staff):
    response = _create_month(test_client, branch='2')
    assert response.status_code == 400
    assert 'Filial 2' in response.get_json()['message']


def test_create_is_idempotent_per_branch(test_client, staff, make_employee):
    make_employee(name='Eva', branch='3')
    first = _create_month(test_client)
    assert _create_month(test_client).get_json() == {'invoiceId': first.get_json()['invoiceId'], 'existed': True}

    other_branch = _create_month(test_client, branch='3')
    assert other_branch.status_code == 201
    body = _detail(test_client, other_branch.get_json()['invoiceId'])
    assert [a['employee']['name'] for a in body['allocations']] == ['Eva']

    response = test_client.get('/voucher-meal/invoices/by-month?month=2024-01&branch=3')
    assert response.get_json()['invoice']['id'] == other_branch.get_json()['invoiceId']


def test_concurrent_create_reuses_winner(test_client, staff, monkeypatch):
    """
    GIVEN o mês da filial já criado por outra requisição
    WHEN a busca inicial não o enxerga e o insert viola a unique (mês, filial)
    THEN a nota vencedora é devolvida como existente, sem duplicar linhas nem lançamentos
    """
    winner = _create_month(test_client).get_json()['invoiceId']

    monkeypatch.setattr(services, 'find_meal_invoice', lambda competence, branch: None)
    response = _create_month(test_client)

    assert response.status_code == 200
    assert response.get_json() == {'invoiceId': winner, 'existed': True}
    assert VoucherMealInvoice.query.count() == 1
    assert VoucherMealAllocation.query.count() == 2
    assert len(_detail(test_client, winner)['lines']) == len(LINES)


def test_duplicated_line_is_rejected(test_client, staff):
    lines = LINES + [{'kind': 'MEAL_LUNCH', 'part': 'SECOND_HALF', 'amount': '1.00'}]
    assert _create_month(test_client, lines=lines).status_code == 400


def test_allocation_split_and_totals(test_client, staff):
    """
    GIVEN almoço de 500.00 na nota e café de 50.00
    WHEN Ana informa 60.00 e Bruno 40.00 de desconto (20%)
    THEN os 100% somam 500.00, diferença zero e café rateado entre os dois
    """
    invoice_id = _create_month(test_client).get_json()['invoiceId']

    response = _set_employee20(test_client, invoice_id, staff['ana'].id, '60')
    assert response.status_code == 200
    allocation = response.get_json()['allocation']
    assert allocation['employee20'] == '60.00'
    assert allocation['company80'] == '240.00'
    assert allocation['total100'] == '300.00'

    _set_employee20(test_client, invoice_id, staff['bruno'].id, 40)

    totals = _detail(test_client, invoice_id)['totals']
    assert totals == {
        'invoiceTotal': '580.00',
        'lunchTotal': '500.00',
        'coffeeTotal': '50.00',
        'thirdPartyTotal': '30.00',
        'thirdPartyByKind': {'VISITORS': '30.00', 'THIRD_PARTY': '0.00', 'DONATION': '0.00'},
        'employeeCount': 2,
        'coffeePerEmployee': '25.00',
        'sumEmployee20': '100.00',
        'sumCompany80': '400.00',
        'sumTotal100': '500.00',
        'companyTotalWithCoffee': '450.00',
        'diff': '0.00',
    }


def test_allocation_rejects_negative_and_missing(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    assert _set_employee20(test_client, invoice_id, staff['ana'].id, '-5').status_code == 400
    assert _set_employee20(test_client, invoice_id, staff['filial2'].id, '5').status_code == 404
    assert _set_employee20(test_client, invoice_id, staff['excluido'].id, '5').status_code == 404


def test_employee_opting_out_is_hidden_and_locked(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    test_client.put(f'/employees/{staff["ana"].id}', json={'voucherMealExcluded': True})

    response = _set_employee20(test_client, invoice_id, staff['ana'].id, '10')
    assert response.status_code == 400
    body = _detail(test_client, invoice_id)
    assert [a['employee']['name'] for a in body['allocations']] == ['Bruno']
    assert body['totals']['employeeCount'] == 1


def test_close_reconciles_lunch_only(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    close_url = f'/voucher-meal/invoices/{invoice_id}/close'

    response = test_client.post(close_url, json={'allocations': [
        {'employeeId': staff['ana'].id, 'employee20': '60.00'},
        {'employeeId': staff['bruno'].id, 'employee20': '39.99'},
    ]})
    assert response.status_code == 400
    body = response.get_json()
    assert body['diff'] == '0.05'
    assert body['sumAllocations'] == '499.95'
    assert body['invoiceValue'] == '500.00'
    # Snapshot recusado não fica gravado
    assert all(a['employee20'] == '0.00' for a in _detail(test_client, invoice_id)['allocations'])

    response = test_client.post(close_url, json={'allocations': [
        {'employeeId': staff['ana'].id, 'employee20': '60.00'},
        {'employeeId': staff['bruno'].id, 'employee20': '40.00'},
    ]})
    assert response.get_json() == {'ok': True, 'status': 'CLOSED'}

    assert _set_employee20(test_client, invoice_id, staff['ana'].id, '1').status_code == 400
    assert test_client.patch(f'/voucher-meal/invoices/{invoice_id}', json={'lines': LINES}).status_code == 400
    assert test_client.post(close_url, json={}).get_json() == {'ok': True, 'status': 'CLOSED'}


def test_close_with_new_lines(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    _set_employee20(test_client, invoice_id, staff['ana'].id, '10')

    response = test_client.post(f'/voucher-meal/invoices/{invoice_id}/close', json={'lines': [
        {'kind': 'MEAL_LUNCH', 'part': 'SECOND_HALF', 'amount': '50.00'},
        {'kind': 'MEAL_LUNCH', 'part': 'FIRST_HALF_NEXT', 'amount': '0'},
    ]})
    assert response.status_code == 200
    invoice = _detail(test_client, invoice_id)['invoice']
    assert invoice['status'] == 'CLOSED'
    assert invoice['invoiceSecondHalf'] == '130.00'
    assert invoice['invoiceFirstHalfNext'] == '0.00'


def test_close_rejects_employee_outside_invoice(test_client, staff):
    invoice_id = _create_month(test_client, lines=[]).get_json()['invoiceId']
    response = test_client.post(f'/voucher-meal/invoices/{invoice_id}/close', json={'allocations': [
        {'employeeId': staff['filial2'].id, 'employee20': '0'},
    ]})
    assert response.status_code == 400


def test_reopen(test_client, staff):
    invoice_id = _create_month(test_client, lines=[]).get_json()['invoiceId']
    assert test_client.post(f'/voucher-meal/invoices/{invoice_id}/close', json={}).status_code == 200

    response = test_client.post(f'/voucher-meal/invoices/{invoice_id}/reopen')
    assert response.get_json() == {'ok': True, 'status': 'DRAFT'}
    assert _detail(test_client, invoice_id)['invoice']['closedAt'] is None
    assert _set_employee20(test_client, invoice_id, staff['ana'].id, '5').status_code == 200


def test_terminated_before_month_is_not_allocated(test_client, make_employee):
    make_employee(name='Saiu', termination=date(2023, 12, 31))
    stays = make_employee(name='Fica', termination=date(2024, 1, 1))
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    assert [a['employeeId'] for a in _detail(test_client, invoice_id)['allocations']] == [stays.id]


def test_export_xlsx(test_client, staff):
    invoice_id = _create_month(test_client).get_json()['invoiceId']
    _set_employee20(test_client, invoice_id, staff['ana'].id, '60')

    response = test_client.get(f'/voucher-meal/invoices/{invoice_id}/export')
    assert response.status_code == 200
    assert 'vale_refeicao_2024-01_filial_1.xlsx' in response.headers['Content-Disposition']

    sheet = openpyxl.load_workbook(BytesIO(response.data)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][4] == 'Funcionário 20%'
    assert rows[1][1] == 'Ana'
    assert float(rows[1][6]) == 300.0
