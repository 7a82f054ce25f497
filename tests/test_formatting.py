"""Tests for Brazilian Portuguese display formatting."""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.formatting import (
    NOT_DEFINED,
    STATUS_LABELS,
    format_currency,
    format_date,
    format_month,
    format_month_count,
    format_month_range,
    label,
)
from finance_tracker.models import PaymentStatus


class TestCurrency:
    """Tests for currency formatting."""

    @pytest.mark.parametrize("value,expected", [
        (Decimal("0"), "R$ 0,00"),
        (Decimal("1000"), "R$ 1.000,00"),
        (Decimal("1234.5"), "R$ 1.234,50"),
        (Decimal("1234567.891"), "R$ 1.234.567,89"),
        (Decimal("-700"), "-R$ 700,00"),
    ])
    def test_format_currency(self, value, expected):
        """Test thousands dots, decimal comma and two places."""
        assert format_currency(value) == expected


class TestDates:
    """Tests for date and month formatting."""

    def test_format_date(self):
        """Test dd/mm/aaaa."""
        assert format_date(date(2024, 12, 2)) == "02/12/2024"

    def test_format_month(self):
        """Test that month indices print as mm/aaaa."""
        assert format_month(24299) == "12/2024"
        assert format_month(24300) == "01/2025"

    def test_month_range(self):
        """Test that unordered indices compress to first and last."""
        assert format_month_range([24301, 24299, 24300]) == "12/2024 a 02/2025"

    def test_single_month(self):
        """Test that one month prints alone."""
        assert format_month_range([24299]) == "12/2024"

    @pytest.mark.parametrize("months", [None, [], "12", 3])
    def test_month_range_not_defined(self, months):
        """Test the placeholder for missing or malformed months."""
        assert format_month_range(months) == NOT_DEFINED

    def test_month_count(self):
        """Test the singular and plural month counts."""
        assert format_month_count([24299]) == "1 mês"
        assert format_month_count(list(range(12))) == "12 meses"
        assert format_month_count(None) == "-"


class TestLabels:
    """Tests for enum labels."""

    def test_label(self):
        """Test known, missing and unknown values."""
        assert label(PaymentStatus.PENDING, STATUS_LABELS) == "Pendente"
        assert label(None, STATUS_LABELS) == "-"
        assert label("outro", STATUS_LABELS) == "outro"
