"""
PDF export of the monthly report.

Two passes:
1. layout_report() places every line on a page with a running
   vertical cursor (millimetres on A4) and starts a new page whenever
   the cursor passes the page-break threshold.
2. render_pdf() draws the laid-out pages with fpdf2.

The layout pass is plain data so pagination can be checked without
opening the PDF.
"""

import textwrap
from dataclasses import dataclass, field
from typing import Optional

import structlog
from fpdf import FPDF

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.formatting import (
    EXPENSE_KIND_LABELS,
    KIND_LABELS,
    STATUS_LABELS,
    format_currency,
    format_date,
    format_month_range,
    label,
)
from finance_tracker.models.movement import ExpenseKind, Movement
from finance_tracker.reports.builder import (
    EMPTY_REPORT_MESSAGE,
    REPORT_TITLE,
    ReportData,
)

logger = structlog.get_logger(__name__)

PAGE_WIDTH = 210.0
LEFT_MARGIN = 10.0
RIGHT_MARGIN = 200.0
LINE_HEIGHT = 6.0
DESCRIPTION_WRAP = 85

PENDING_SECTION_TITLE = "Despesas Pendentes"
SETTLED_SECTION_TITLE = "Movimentações"


@dataclass(frozen=True)
class LayoutLine:
    """One text line or horizontal rule at a fixed position."""

    y: float
    text: str = ""
    x: float = LEFT_MARGIN
    size: int = 12
    bold: bool = False
    centered: bool = False
    rule: bool = False


@dataclass
class ReportLayout:
    pages: list[list[LayoutLine]] = field(default_factory=lambda: [[]])

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def texts(self) -> list[str]:
        return [line.text for page in self.pages for line in page if not line.rule]


class _Cursor:
    """Running vertical offset with page breaks."""

    def __init__(self, layout: ReportLayout, top: float, break_y: float):
        self.layout = layout
        self.top = top
        self.break_y = break_y
        self.y = top
        self.repeat_header: Optional[str] = None

    def _new_page(self) -> None:
        self.layout.pages.append([])
        self.y = self.top
        if self.repeat_header:
            self._place(LayoutLine(y=self.y, text=self.repeat_header, size=14, bold=True))
            self.y += LINE_HEIGHT + 2

    def _place(self, line: LayoutLine) -> None:
        self.layout.pages[-1].append(line)

    def write(self, text: str, advance: float = LINE_HEIGHT, **style) -> None:
        if self.y > self.break_y:
            self._new_page()
        self._place(LayoutLine(y=self.y, text=text, **style))
        self.y += advance

    def rule(self) -> None:
        if self.y > self.break_y:
            self._new_page()
            return
        self._place(LayoutLine(y=self.y, rule=True))
        self.y += 4

    def skip(self, amount: float) -> None:
        self.y += amount


def movement_lines(movement: Movement, number: int) -> list[str]:
    """Item block text for one movement."""
    description = textwrap.wrap(f"Descrição: {movement.description}", DESCRIPTION_WRAP) or ["Descrição:"]
    lines = [f"Movimentação {number}:"]
    lines.extend(description)
    lines.append(f"Valor: {format_currency(movement.amount)}")
    lines.append(f"Data: {format_date(movement.date)}")
    lines.append(f"Tipo: {label(movement.kind, KIND_LABELS)}")
    if movement.is_expense:
        lines.append(f"Situação: {label(movement.payment_status, STATUS_LABELS)}")
        lines.append(f"Tipo de Despesa: {label(movement.expense_kind, EXPENSE_KIND_LABELS)}")
        if movement.expense_kind == ExpenseKind.FIXED:
            lines.append(f"Meses: {format_month_range(movement.months_span)}")
    return lines


def _write_items(cursor: _Cursor, movements: list[Movement]) -> None:
    for number, movement in enumerate(movements, start=1):
        for text in movement_lines(movement, number):
            cursor.write(text, bold=text.startswith("Movimentação "))
        if number < len(movements):
            cursor.rule()


def layout_report(report: ReportData, settings: Optional[AppSettings] = None) -> ReportLayout:
    """Place the report's lines on pages."""
    settings = settings or get_settings().app
    layout = ReportLayout()
    cursor = _Cursor(layout, settings.report_top_margin, settings.report_page_break_y)

    filters = report.filters
    cursor.write(REPORT_TITLE, advance=10, size=16, bold=True, centered=True)
    cursor.write(
        f"Período: {format_date(filters.period_start)} a {format_date(filters.period_end)}",
        advance=10,
    )

    cursor.write(f"Total de Receitas: {format_currency(report.total_income)}")
    cursor.write(f"Total de Despesas: {format_currency(report.total_expenses)}")
    cursor.write(f"Total Pendente: {format_currency(report.total_pending)}")
    cursor.write(f"Saldo: {format_currency(report.balance)}")
    cursor.skip(4)

    if report.is_empty:
        cursor.write(EMPTY_REPORT_MESSAGE)
        return layout

    settled = report.settled_items
    if settled:
        cursor.write(SETTLED_SECTION_TITLE, advance=LINE_HEIGHT + 2, size=14, bold=True)
        _write_items(cursor, settled)
        cursor.skip(6)

    pending = report.pending_items
    if pending:
        cursor.write(PENDING_SECTION_TITLE, advance=LINE_HEIGHT + 2, size=14, bold=True)
        cursor.repeat_header = PENDING_SECTION_TITLE
        _write_items(cursor, pending)

    return layout


def _latin1(text: str) -> str:
    """Core PDF fonts are latin-1; anything else becomes '?'."""
    return text.encode("latin-1", "replace").decode("latin-1")


def render_pdf(layout: ReportLayout) -> bytes:
    """Draw a laid-out report and return the PDF bytes."""
    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_auto_page_break(False)
    pdf.set_line_width(0.5)

    for page in layout.pages:
        pdf.add_page()
        for line in page:
            if line.rule:
                pdf.line(LEFT_MARGIN, line.y, RIGHT_MARGIN, line.y)
                continue
            pdf.set_font("helvetica", "B" if line.bold else "", line.size)
            text = _latin1(line.text)
            x = line.x
            if line.centered:
                x = (PAGE_WIDTH - pdf.get_string_width(text)) / 2
            pdf.text(x, line.y, text)

    return bytes(pdf.output())


def export_report(report: ReportData, settings: Optional[AppSettings] = None) -> tuple[str, bytes]:
    """(file name, PDF bytes) for a report."""
    layout = layout_report(report, settings)
    content = render_pdf(layout)
    logger.info(
        "report_exported",
        file_name=report.file_name,
        pages=layout.page_count,
        movements=len(report.movements),
    )
    return report.file_name, content
