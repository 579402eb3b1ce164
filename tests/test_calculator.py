"""Tests for the totals calculation engine."""

import pytest

from invoice_manager.engine.calculator import (
    calculate_totals,
    format_amount,
    format_rate,
    line_amount,
)
from invoice_manager.models import LineItem


def _make_item(hours: float, rate: float, item_id: str = "service-1") -> LineItem:
    return LineItem(id=item_id, description="Work", hours=hours, rate=rate)


class TestCalculator:
    def test_single_line_with_default_tax(self):
        totals = calculate_totals([_make_item(10, 250)], 10)
        assert totals.sub_total == 2500
        assert totals.tax_amount == 250
        assert totals.grand_total == 2750

    def test_multiple_lines(self):
        items = [
            _make_item(2, 100, "a"),
            _make_item(1.5, 80, "b"),
            _make_item(0, 500, "c"),
        ]
        totals = calculate_totals(items, 5)
        assert totals.sub_total == pytest.approx(320)
        assert totals.tax_amount == pytest.approx(16)
        assert totals.grand_total == pytest.approx(336)

    def test_zero_tax(self):
        totals = calculate_totals([_make_item(3, 40)], 0)
        assert totals.tax_amount == 0
        assert totals.grand_total == totals.sub_total == 120

    def test_empty_services(self):
        totals = calculate_totals([], 10)
        assert totals.sub_total == 0
        assert totals.tax_amount == 0
        assert totals.grand_total == 0

    def test_grand_total_is_sum_of_parts(self):
        items = [_make_item(1.25, 33.33, "a"), _make_item(7, 19.99, "b")]
        totals = calculate_totals(items, 17.5)
        assert totals.grand_total == pytest.approx(totals.sub_total + totals.tax_amount)

    def test_full_precision_is_kept(self):
        totals = calculate_totals([_make_item(1, 0.105)], 10)
        assert totals.tax_amount == pytest.approx(0.0105)
        assert format_amount(totals.tax_amount) == "0.01"

    def test_mixed_hours_and_rates(self):
        items = [_make_item(2, 500, "a"), _make_item(1.5, 1000, "b")]
        totals = calculate_totals(items, 10)
        assert totals.sub_total == 2500
        assert totals.tax_amount == 250
        assert totals.grand_total == 2750

    def test_dropping_tax_lowers_total_by_prior_tax(self):
        items = [_make_item(10, 250)]
        before = calculate_totals(items, 10)
        after = calculate_totals(items, 0)
        assert before.grand_total - after.grand_total == before.tax_amount
        assert after.grand_total == 2500

    def test_line_amount(self):
        assert line_amount(_make_item(4, 12.5)) == 50


class TestFormatting:
    def test_format_amount_two_decimals_with_grouping(self):
        assert format_amount(2750) == "2,750.00"
        assert format_amount(0) == "0.00"
        assert format_amount(1234567.891) == "1,234,567.89"

    def test_format_rate(self):
        assert format_rate(10.0) == "10"
        assert format_rate(12.5) == "12.5"
