"""Unit tests for amount, tenure and rate normalizers"""

import pytest

from bureau.normalizers import (
    normalize_tenure,
    parse_amount,
    parse_non_negative_amount,
    parse_rate,
    parse_tenure_months,
)


@pytest.mark.parametrize("raw, expected", [
    ("7,50,000", 750000.0),
    ("₹ 7,50,000", 750000.0),
    ("Rs. 1,234.50", 1234.5),
    ("INR 5,000", 5000.0),
    ("-2,000", -2000.0),
    (45000, 45000.0),
    ("-", 0.0),
    ("NA", 0.0),
    ("", 0.0),
    (None, 0.0),
    (float("inf"), 0.0),
])
def test_parse_amount(raw, expected):
    """Test amounts with Indian grouping, currency and placeholders"""
    assert parse_amount(raw) == expected


def test_parse_amount_idempotent():
    """Test that normalizing an already normalized amount changes nothing"""
    for raw in ["7,50,000", "Rs. 1,234.50", "-", "-2,000"]:
        once = parse_amount(raw)
        assert parse_amount(once) == once


def test_parse_non_negative_amount_clamps():
    """Test negative amounts clamp to zero"""
    assert parse_non_negative_amount("-2,000") == 0.0
    assert parse_non_negative_amount("3,20,000") == 320000.0


@pytest.mark.parametrize("raw", ["3 years", "36 months", "36", "36 m", "36 mo", 36])
def test_tenure_forms_agree(raw):
    """Test every tenure spelling of three years gives 36 months"""
    assert parse_tenure_months(raw) == 36


def test_tenure_years_and_months():
    """Test a mixed duration adds both parts"""
    assert parse_tenure_months("1 year 6 months") == 18
    assert parse_tenure_months("2 yrs 3 m") == 27


def test_tenure_fractional_years():
    assert parse_tenure_months("2.5 yrs") == 30


def test_tenure_first_number_fallback():
    """Test free text falls back to the first number, rounded half up"""
    assert parse_tenure_months("about 40.5 instalments") == 41


def test_tenure_empty():
    assert parse_tenure_months("") is None
    assert parse_tenure_months(None) is None


def test_normalize_tenure_keeps_unparseable_text():
    """Test printed tenure is kept when it has no number"""
    assert normalize_tenure("N/A") == "N/A"
    assert normalize_tenure("36 months") == 36
    assert normalize_tenure("   ") is None


def test_parse_rate():
    assert parse_rate("10.5%") == 10.5
    assert parse_rate(9) == 9.0
    assert parse_rate("") is None
    assert parse_rate("-1") is None
