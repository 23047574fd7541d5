"""
pattern-based extractors for the scalar fields

score, enquiry count, DPD summary, printed aggregate totals (anchors) and
the row / line based sums that compete with them in the reconciler.
"""
import re
from collections import deque
from typing import Dict, Iterable, List, Optional

from loguru import logger

from bureau.domain_knowledge import (
    ANCHOR_PHRASES,
    BUREAU_NAMES,
    CARD_KEYWORD_RE,
    CLEAN_DPD,
    DPD_BUCKET_RE,
    DPD_CONTEXT_RE,
    ENQUIRY_PERIOD,
    ENQUIRY_TOTAL_PHRASES,
    LOAN_KEYWORD_RE,
    OUTSTANDING_LINE_RE,
    POSSIBLE_DELINQUENCY,
    SANCTION_LINE_RE,
    SECURED_BALANCE_PHRASE,
    UNSECURED_BALANCE_PHRASE,
    classify_status,
    loan_type_label,
)
from bureau.models import LoanAccount, LoanAccountDetails, LoanType
from bureau.normalizers import parse_amount

SCORE_MIN = 300
SCORE_MAX = 900

# standalone 3-digit token: not part of an amount, not either end of "300-900"
SCORE_TOKEN = r"(?<![\d,.\-–])(\d{3})(?![\d,]|\.\d|\s*[-–]\s*\d)"

BUREAU_SCORE_PATTERNS = [
    re.compile(r"perform\s+consumer.*?300\s*-\s*900\s+(\d{3})\b", re.I | re.S),
    re.compile(rf"\b(?:{'|'.join(BUREAU_NAMES)})\b[^\d]{{0,40}}{SCORE_TOKEN}", re.I),
]
LABELLED_SCORE_PATTERNS = [
    re.compile(rf"credit\s+score[^\d]{{0,40}}{SCORE_TOKEN}", re.I),
    re.compile(rf"\bscore\s*[:\-]?\s*{SCORE_TOKEN}", re.I),
]
BARE_SCORE_RE = re.compile(SCORE_TOKEN)

AMOUNT_TOKEN_RE = re.compile(r"\d{1,3}(?:,\d{2,3})+(?:\.\d+)?|\d+(?:\.\d+)?")
ANCHOR_VALUE = r"[^\d]{0,40}?((?:\d[\d,]*)(?:\.\d+)?)"


def _in_score_range(value):
    return SCORE_MIN <= value <= SCORE_MAX


def _first_score(patterns, text):
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = int(match.group(1))
            if _in_score_range(value):
                return value
    return None


def extract_score(text: str, top_window: int = 2000) -> Optional[int]:
    """
    bureau score in [300, 900], None when not found

    tries bureau-name patterns, then "credit score" labels, then any bare
    3-digit token near the top of the report.
    """
    if not text:
        return None

    score = _first_score(BUREAU_SCORE_PATTERNS, text)
    if score is not None:
        logger.info(f"Found bureau score: {score}")
        return score

    score = _first_score(LABELLED_SCORE_PATTERNS, text)
    if score is not None:
        logger.info(f"Found score (labelled): {score}")
        return score

    score = _first_score([BARE_SCORE_RE], text[:top_window])
    if score is not None:
        logger.info(f"Found score (fallback): {score}")
        return score

    logger.warning("Bureau score not found")
    return None


def extract_enquiry_count(text: str, enquiry_rows: Optional[Iterable] = None) -> Optional[int]:
    """printed enquiry total, else the enquiry table row count, else None"""
    for phrase in ENQUIRY_TOTAL_PHRASES:
        # the count must adjoin the phrase, a period like "last 30 days" may sit between
        pattern = re.compile(
            rf"{phrase}{ENQUIRY_PERIOD}\s*(?:\([^)]*\))?\s*[:\-]?\s*(\d+)\b(?!\s*(?:days?|months?)\b)",
            re.I,
        )
        match = pattern.search(text or "")
        if match:
            count = int(match.group(1))
            logger.info(f"Enquiry count from summary: {count}")
            return count

    if enquiry_rows is not None:
        rows = list(enquiry_rows)
        if rows:
            logger.info(f"Enquiry count from table rows: {len(rows)}")
            return len(rows)

    return None


def has_possible_delinquency(text: str, lookahead: int = 300) -> bool:
    """
    coarse check: a DPD bucket number (30, 60 ... 180) shortly after the
    first DPD / payment history mention. approximate, needs manual review.
    """
    if not text:
        return False
    match = DPD_CONTEXT_RE.search(text)
    if not match:
        return False
    window = text[match.start():match.start() + len(match.group(0)) + lookahead]
    return bool(DPD_BUCKET_RE.search(window))


def summarize_dpd(loans: Iterable[LoanAccount], text: str = "", lookahead: int = 300) -> str:
    """short delinquency summary, "0 - Clean" when nothing points at overdues"""
    parts = []

    overdue = [loan for loan in loans if loan.details.amount_overdue > 0]
    if overdue:
        parts.append(f"Overdues in {len(overdue)} account(s)")

    if has_possible_delinquency(text, lookahead):
        parts.append(POSSIBLE_DELINQUENCY)

    if not parts:
        return CLEAN_DPD
    return "; ".join(parts)


def _find_anchor(phrase, text):
    match = re.search(phrase + ANCHOR_VALUE, text, re.I)
    if not match:
        return None
    return parse_amount(match.group(1))


def extract_anchor_totals(text: str) -> Dict[str, float]:
    """totals printed once in the report summary, keyed by output field"""
    anchors = {}
    if not text:
        return anchors

    for field_name, phrases in ANCHOR_PHRASES.items():
        for phrase in phrases:
            value = _find_anchor(phrase, text)
            if value is not None:
                anchors[field_name] = value
                break

    if "loanOutstanding" not in anchors:
        secured = _find_anchor(SECURED_BALANCE_PHRASE, text)
        unsecured = _find_anchor(UNSECURED_BALANCE_PHRASE, text)
        if secured is not None and unsecured is not None:
            anchors["loanOutstanding"] = secured + unsecured

    if anchors:
        logger.info(f"Anchor totals: {anchors}")
    return anchors


def _is_card(loan):
    return loan.type == LoanType.CREDIT_CARD.value


def rule_sum_totals(loans: Iterable[LoanAccount]) -> Dict[str, float]:
    """
    row-by-row sums, credit cards feed the card fields

    a field only gets a value when some row contributed a non-zero amount
    """
    sums = {}

    def add(key, amount):
        if amount > 0:
            sums[key] = sums.get(key, 0.0) + amount

    for loan in loans:
        if _is_card(loan):
            add("cardLimit", loan.details.sanction_amount)
            add("cardOutstanding", loan.details.current_balance)
        else:
            add("loanSanctioned", loan.details.sanction_amount)
            add("loanOutstanding", loan.details.current_balance)
    return sums


def _last_amount(line):
    amounts = AMOUNT_TOKEN_RE.findall(line)
    if not amounts:
        return None
    return parse_amount(amounts[-1])


def line_scan_totals(text: str, window_size: int = 6) -> Dict[str, float]:
    """
    sums for reports without a parseable accounts table

    the last few lines decide whether a balance/limit line belongs to a
    card or a loan
    """
    sums = {}
    recent = deque(maxlen=window_size)

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        recent.append(line)
        is_card = bool(CARD_KEYWORD_RE.search(" ".join(recent)))

        if OUTSTANDING_LINE_RE.search(line):
            amount = _last_amount(line)
            if amount is not None:
                key = "cardOutstanding" if is_card else "loanOutstanding"
                sums[key] = sums.get(key, 0.0) + amount

        if SANCTION_LINE_RE.search(line):
            amount = _last_amount(line)
            if amount is not None:
                key = "cardLimit" if is_card else "loanSanctioned"
                sums[key] = sums.get(key, 0.0) + amount

    return sums


def line_scan_loans(text: str) -> List[LoanAccount]:
    """keyword classifier over every line, the no-table fallback for loans"""
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]

    loans = []
    for i, line in enumerate(lines):
        if line.lower().startswith("total"):
            continue
        if not (LOAN_KEYWORD_RE.search(line) or CARD_KEYWORD_RE.search(line)):
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else ""
        status = classify_status(f"{line} {next_line}")
        loan_type = loan_type_label(line)
        loans.append(LoanAccount(
            type=loan_type,
            status=status.value,
            line=line,
            details=LoanAccountDetails(account_type=loan_type, account_status=status.value),
        ))

    logger.info(f"Line scan found {len(loans)} loan lines")
    return loans
