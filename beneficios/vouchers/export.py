# beneficios/vouchers/export.py
"""Planilhas .xlsx de conferência de um mês (uma linha por funcionário + totais)."""

from io import BytesIO

import openpyxl
from flask import Response
from openpyxl.styles import Font

from ..utils import format_month, round_money

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
MONEY_FORMAT = '#,##0.00'


def _money_cells(sheet, row, columns):
    for col in columns:
        sheet.cell(row=row, column=col).number_format = MONEY_FORMAT


def _workbook_response(workbook, filename):
    output = BytesIO()
    workbook.save(output)
    output.seek(0)
    return Response(output, mimetype=XLSX_MIMETYPE,
                    headers={'Content-Disposition': f'attachment;filename={filename}'})


def market_workbook(invoice, allocations):
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = f'Vale Mercado {format_month(invoice.competence)}'

    sheet.append(['Matrícula', 'Nome', 'Filial', 'Centro de Custo', 'Situação', 'Valor', 'Observação'])
    for a in allocations:
        e = a.employee
        sheet.append([e.matricula, e.name, e.branch, e.cost_center, a.status.value,
                      round_money(a.amount), a.note or ''])
        _money_cells(sheet, sheet.max_row, [6])

    total = round_money(sum((a.amount for a in allocations), 0))
    sheet.append([])
    sheet.append(['', 'Total funcionários', '', '', '', total])
    sheet.append(['', f'Nota fiscal {invoice.invoice_number}', '', '', '', round_money(invoice.invoice_value)])
    for row in (sheet.max_row - 1, sheet.max_row):
        _money_cells(sheet, row, [6])
        sheet.cell(row=row, column=2).font = Font(bold=True)

    return workbook


def meal_workbook(invoice, allocations, totals):
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = f'Vale Refeição {format_month(invoice.competence)}'

    sheet.append(['Matrícula', 'Nome', 'Filial', 'Centro de Custo', 'Funcionário 20%', 'Empresa 80%', 'Total 100%'])
    for a in allocations:
        e = a.employee
        sheet.append([e.matricula, e.name, e.branch, e.cost_center,
                      round_money(a.employee20), round_money(a.company80), round_money(a.total100)])
        _money_cells(sheet, sheet.max_row, [5, 6, 7])

    sheet.append([])
    sheet.append(['', 'Totais', '', '',
                  round_money(totals['sumEmployee20']), round_money(totals['sumCompany80']),
                  round_money(totals['sumTotal100'])])
    _money_cells(sheet, sheet.max_row, [5, 6, 7])
    sheet.cell(row=sheet.max_row, column=2).font = Font(bold=True)

    # Resumo da nota
    for label, key in (('Almoço (nota)', 'lunchTotal'), ('Café', 'coffeeTotal'),
                       ('Terceiros', 'thirdPartyTotal'), ('Diferença', 'diff')):
        sheet.append(['', label, '', '', '', '', round_money(totals[key])])
        _money_cells(sheet, sheet.max_row, [7])

    return workbook


def market_export_response(invoice, allocations):
    filename = f'vale_mercado_{format_month(invoice.competence)}.xlsx'
    return _workbook_response(market_workbook(invoice, allocations), filename)


def meal_export_response(invoice, allocations, totals):
    filename = f'vale_refeicao_{format_month(invoice.competence)}_filial_{invoice.branch}.xlsx'
    return _workbook_response(meal_workbook(invoice, allocations, totals), filename)
