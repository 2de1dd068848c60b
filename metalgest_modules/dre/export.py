"""
DRE export to spreadsheet formats.

Rows use the labels of the MetalGest DRE screen.  A single ``Statement``
exports as two columns (line, amount); a ``StatementSeries`` exports one
amount column per period, oldest first.

    Receita Bruta                 10000.00
    (-) Impostos e Deduções        1000.00
    Receita Líquida                9000.00
    ...
"""

from __future__ import annotations

import csv
import io
from decimal import Decimal
from enum import Enum
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from metalgest_kernel.db.types import round_money
from metalgest_kernel.exceptions import UnsupportedExportFormatError
from metalgest_kernel.logging_config import get_logger
from metalgest_modules.dre.models import DREReport, Statement, StatementSeries

logger = get_logger("modules.dre.export")

STATEMENT_LABELS: tuple[tuple[str, str], ...] = (
    ("gross_revenue", "Receita Bruta"),
    ("taxes", "(-) Impostos e Deduções"),
    ("net_revenue", "Receita Líquida"),
    ("costs", "(-) Custos"),
    ("gross_profit", "Lucro Bruto"),
    ("operating_expenses", "(-) Despesas Operacionais"),
    ("operating_result", "Resultado Operacional"),
    ("financial_result", "Resultado Financeiro"),
    ("net_result", "Lucro Líquido"),
)

# Subtotal lines rendered in bold in spreadsheets.
_SUBTOTALS = frozenset({"net_revenue", "gross_profit", "operating_result", "net_result"})

XLSX_SHEET_TITLE = "DRE"
XLSX_NUMBER_FORMAT = "#,##0.00"


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"

    @classmethod
    def parse(cls, value: object) -> ExportFormat:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedExportFormatError(value)


Exportable = Statement | StatementSeries | DREReport


def statement_rows(statement: Statement) -> list[tuple[str, Decimal]]:
    """(label, amount) rows in DRE order."""
    return [(label, getattr(statement, name)) for name, label in STATEMENT_LABELS]


def _table(obj: Exportable) -> tuple[list[str], list[tuple[str, str, list[Decimal]]]]:
    """Header row plus (field, label, amounts) rows."""
    if isinstance(obj, DREReport):
        obj = obj.statement
    if isinstance(obj, StatementSeries):
        header = ["DRE", *obj.labels]
        statements = list(obj)
    elif isinstance(obj, Statement):
        header = ["DRE", "Valor"]
        statements = [obj]
    else:
        raise TypeError(f"cannot export {type(obj).__name__}")
    rows = [
        (name, label, [getattr(s, name) for s in statements])
        for name, label in STATEMENT_LABELS
    ]
    return header, rows


def to_csv(obj: Exportable) -> str:
    """CSV text with amounts rounded to two decimal places."""
    header, rows = _table(obj)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    for _name, label, amounts in rows:
        writer.writerow([label, *(str(round_money(a)) for a in amounts)])
    return buffer.getvalue()


def to_xlsx(obj: Exportable, path: str | Path) -> Path:
    """Write a workbook with a single ``DRE`` sheet and return its path."""
    header, rows = _table(obj)
    path = Path(path)

    wb = Workbook()
    ws = wb.active
    ws.title = XLSX_SHEET_TITLE
    ws.append(header)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for name, label, amounts in rows:
        ws.append([label, *(round_money(a) for a in amounts)])
        row = ws.max_row
        for col in range(2, len(amounts) + 2):
            ws.cell(row=row, column=col).number_format = XLSX_NUMBER_FORMAT
        if name in _SUBTOTALS:
            for cell in ws[row]:
                cell.font = Font(bold=True)

    ws.column_dimensions["A"].width = 30
    wb.save(path)
    logger.info("dre_exported", extra={"export_format": "xlsx", "path": str(path)})
    return path


def export(
    obj: Exportable,
    export_format: ExportFormat | str,
    destination: str | Path | None = None,
) -> str | Path:
    """
    Export ``obj`` in the requested format.

    CSV returns the text, or writes it and returns the path when
    ``destination`` is given.  XLSX requires ``destination``.
    """
    fmt = ExportFormat.parse(export_format)
    if fmt is ExportFormat.XLSX:
        if destination is None:
            raise ValueError("xlsx export requires a destination path")
        return to_xlsx(obj, destination)

    text = to_csv(obj)
    if destination is None:
        return text
    path = Path(destination)
    path.write_text(text, encoding="utf-8")
    logger.info("dre_exported", extra={"export_format": "csv", "path": str(path)})
    return path
