"""
Unit tests for Swedish display formatting.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from app.utils.formatters import date_sv, money_sv, num_sv, percent_sv


class TestNumSv:

    @pytest.mark.parametrize('value, expected', [
        (1500, '1 500'),
        (Decimal('1234567.5'), '1 234 567,5'),
        ('2,50', '2,5'),
        (Decimal('0.48'), '0,48'),
        (0, '0'),
        (-1500, '-1 500'),
        (None, '-'),
        ('abc', '-'),
    ])
    def test_auto_decimals(self, value, expected):
        assert num_sv(value) == expected

    def test_fixed_decimals(self):
        assert num_sv(Decimal('2.5'), 2) == '2,50'
        assert num_sv(Decimal('1199.6'), 0) == '1 200'


class TestMoneySv:

    def test_money(self):
        assert money_sv(Decimal('1234.5')) == '1 234,50 kr'

    def test_money_rounds_half_up(self):
        assert money_sv(Decimal('4.1625')) == '4,16 kr'
        assert money_sv(Decimal('0.005')) == '0,01 kr'

    def test_negative(self):
        assert money_sv(Decimal('-450')) == '-450,00 kr'

    def test_invalid(self):
        assert money_sv(None) == '-'


def test_percent_sv():
    assert percent_sv(Decimal('30.00')) == '30 %'
    assert percent_sv(Decimal('12.5')) == '12,5 %'


def test_date_sv():
    assert date_sv(date(2026, 1, 12)) == '2026-01-12'
    assert date_sv(datetime(2026, 3, 4, 15, 30)) == '2026-03-04'
    assert date_sv(None) == '-'
