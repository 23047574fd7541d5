"""
amount / tenure / rate normalizers

bureaus print amounts with Indian digit grouping ("7,50,000"), currency
prefixes ("Rs.", "INR", "₹") and placeholders like "-" or "NA", so every
parser here falls back to a default instead of raising.
"""
import math
import re
from typing import Any, Optional

CURRENCY_RE = re.compile(r"₹|\bINR\b|\bRs\.?", re.IGNORECASE)
NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d+)?|\.\d+)")

YEARS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:years?|yrs?|y)\b", re.IGNORECASE)
MONTHS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:months?|mths?|mos?|m)\b", re.IGNORECASE)
BARE_INT_RE = re.compile(r"^\s*(\d+)\s*$")


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def parse_amount(raw: Any) -> float:
    """
    first signed number in `raw` as a float, 0.0 when there is none

    commas are dropped before matching so any digit grouping works
    """
    if raw is None or isinstance(raw, bool):
        return 0.0

    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else 0.0

    text = CURRENCY_RE.sub(" ", str(raw).replace(",", ""))
    match = NUMBER_RE.search(text)
    if not match:
        return 0.0

    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def parse_non_negative_amount(raw: Any) -> float:
    """parse_amount clamped at zero, for fields that can't go negative"""
    value = parse_amount(raw)
    return value if value > 0 else 0.0


def parse_tenure_months(raw: Any) -> Optional[int]:
    """
    duration expression -> whole months

    "3 years" -> 36, "36 months" / "36 m" / "36 mo" -> 36, "36" -> 36,
    "1 year 6 months" -> 18,
    otherwise the first number rounded. None when nothing numeric is there.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw) or raw < 0:
            return None
        return _round_half_up(raw)

    text = str(raw).strip().replace(",", "")
    if not text:
        return None

    years = YEARS_RE.search(text)
    months = MONTHS_RE.search(text)
    if years or months:
        total = float(years.group(1)) * 12 if years else 0.0
        if months:
            total += float(months.group(1))
        return _round_half_up(total)

    match = BARE_INT_RE.match(text)
    if match:
        return int(match.group(1))

    match = NUMBER_RE.search(text)
    if match:
        value = abs(float(match.group(0)))
        return _round_half_up(value)

    return None


def normalize_tenure(raw: Any):
    """months when parseable, else the printed value, else None"""
    months = parse_tenure_months(raw)
    if months is not None:
        return months

    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def parse_rate(raw: Any) -> Optional[float]:
    """interest rate as a float ("10.5%" -> 10.5), None when absent"""
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) and value >= 0 else None

    match = NUMBER_RE.search(str(raw).replace(",", ""))
    if not match:
        return None

    value = float(match.group(0))
    if value < 0:
        return None
    return value
