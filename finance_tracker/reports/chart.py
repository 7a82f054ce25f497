"""Income vs. expense bar chart for the report page."""

from typing import Optional

import plotly.graph_objects as go

from finance_tracker.formatting import format_currency
from finance_tracker.reports.builder import ReportData

INCOME_COLOR = "#4CAF50"
EXPENSE_COLOR = "#F44336"


def build_chart(report: ReportData) -> Optional[go.Figure]:
    """Two bars, income and expenses. None for an empty report."""
    if report.is_empty:
        return None

    values = [float(report.total_income), float(report.total_expenses)]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Valores",
        x=["Receitas", "Despesas"],
        y=values,
        marker_color=[INCOME_COLOR, EXPENSE_COLOR],
        text=[format_currency(report.total_income), format_currency(report.total_expenses)],
        textposition="auto",
    ))
    fig.update_layout(
        showlegend=False,
        margin=dict(l=0, r=0, t=30, b=0),
        height=320,
        yaxis=dict(tickprefix="R$ ", separatethousands=True),
    )
    return fig
