"""
column mapper and row extractor for flattened bureau tables

pdf text layers flatten tables into lines where runs of 2+ spaces stand in
for the column borders, e.g.

    Lender      Account Type   Account Status   Sanction Amt   Current Balance
    HDFC Bank   Home Loan      Active           7,50,000       3,20,000
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from loguru import logger

from bureau.domain_knowledge import (
    NEXT_SECTION_RE,
    classify_loan_type,
    classify_status,
    loan_type_label,
)
from bureau.models import EnquiryRecord, LoanAccount, LoanAccountDetails, LoanStatus, LoanType
from bureau.normalizers import normalize_tenure, parse_non_negative_amount, parse_rate

COLUMN_SPLIT_RE = re.compile(r"\s{2,}")
TOTAL_ROW_RE = re.compile(r"^\s*total", re.I)


def _rx(pattern):
    return re.compile(pattern, re.I)


# canonical field -> header keyword pattern, in claiming order
LOAN_COLUMNS = [
    ("lender", _rx(r"lender|member|institution|bank|creditor|subscriber")),
    ("accountNumber", _rx(r"account\s*(?:no|number|#)|a/c")),
    ("accountType", _rx(r"account\s*type|\btype\b|product|facility")),
    ("ownership", _rx(r"owner")),
    ("accountStatus", _rx(r"status")),
    ("dateOpened", _rx(r"open")),
    ("dateReported", _rx(r"report")),
    ("dateClosed", _rx(r"close")),
    ("sanctionAmount", _rx(r"sanction|high(?:est)?\s*credit|credit\s*limit|disburs|loan\s*amount")),
    ("currentBalance", _rx(r"current\s*bal|outstanding|\bbalance\b")),
    ("amountOverdue", _rx(r"overdue|amount\s*past\s*due")),
    ("emiAmount", _rx(r"\bemi\b|instal")),
    ("securityOrCollateral", _rx(r"secur|collateral")),
    ("dpdHistory", _rx(r"\bdpd\b|payment\s*history|days\s*past")),
    ("rateOfInterest", _rx(r"rate|interest|\broi\b")),
    ("repaymentTenure", _rx(r"tenure|\bterm\b")),
    ("principalWriteOff", _rx(r"principal")),
    ("totalWriteOffAmount", _rx(r"written[\s-]*off|write[\s-]*off")),
    ("settlementAmount", _rx(r"settle")),
]

ENQUIRY_COLUMNS = [
    ("institution", _rx(r"member|lender|institution|bank|subscriber|name")),
    ("date", _rx(r"date")),
    ("enquiryType", _rx(r"purpose|type|product")),
    ("amount", _rx(r"amount|\bamt\b")),
    ("status", _rx(r"status")),
]


def split_columns(line: str) -> List[str]:
    """split a flattened table line on runs of 2+ whitespace"""
    stripped = line.strip()
    if not stripped:
        return []
    return [cell.strip() for cell in COLUMN_SPLIT_RE.split(stripped) if cell.strip()]


def map_columns(header_line: str, columns=None) -> Dict[str, int]:
    """
    header cell index for each canonical field, -1 when no cell matches

    two fields never share a cell: the first field keeps it, the collision
    is logged and the later field moves on to its next matching cell.
    """
    columns = columns or LOAN_COLUMNS
    header_cols = split_columns(header_line)

    column_map = {}
    claimed = {}
    for field_name, pattern in columns:
        column_map[field_name] = -1
        for idx, cell in enumerate(header_cols):
            if not pattern.search(cell):
                continue
            if idx in claimed:
                logger.warning(
                    f"Column collision: '{cell}' already mapped to {claimed[idx]}, "
                    f"not to {field_name}"
                )
                continue
            column_map[field_name] = idx
            claimed[idx] = field_name
            break

    mapped = {k: v for k, v in column_map.items() if v >= 0}
    logger.debug(f"Column map: {mapped}")
    return column_map


@dataclass
class TableSpec:
    """how to spot and read one kind of bureau table"""
    name: str
    columns: List[Tuple[str, Pattern]]
    header_primary: Pattern
    header_secondary: Pattern
    build_row: Callable
    header_exclude: Optional[Pattern] = None

    def is_header(self, line):
        if self.header_exclude is not None and self.header_exclude.search(line):
            return False
        if len(split_columns(line)) < 2:
            return False
        return bool(self.header_primary.search(line) and self.header_secondary.search(line))


def _cell(cells, column_map, field_name):
    idx = column_map.get(field_name, -1)
    if idx < 0 or idx >= len(cells):
        return ""
    value = cells[idx].strip()
    return "" if value in ("-", "--", "NA", "N/A") else value


def build_loan(cells: List[str], column_map: Dict[str, int]) -> Optional[LoanAccount]:
    """one data row -> LoanAccount, None when the row carries nothing usable"""
    if len(cells) < 2:
        return None

    def get(name):
        return _cell(cells, column_map, name)

    details = LoanAccountDetails(
        lender=get("lender"),
        account_type=get("accountType"),
        account_number=get("accountNumber"),
        ownership=get("ownership"),
        account_status=get("accountStatus"),
        date_opened=get("dateOpened"),
        date_reported=get("dateReported"),
        date_closed=get("dateClosed"),
        sanction_amount=parse_non_negative_amount(get("sanctionAmount")),
        current_balance=parse_non_negative_amount(get("currentBalance")),
        amount_overdue=parse_non_negative_amount(get("amountOverdue")),
        emi_amount=parse_non_negative_amount(get("emiAmount")),
        security_or_collateral=get("securityOrCollateral"),
        dpd_history=get("dpdHistory"),
        rate_of_interest=parse_rate(get("rateOfInterest")),
        repayment_tenure=normalize_tenure(get("repaymentTenure")),
        total_write_off_amount=parse_non_negative_amount(get("totalWriteOffAmount")),
        principal_write_off=parse_non_negative_amount(get("principalWriteOff")),
        settlement_amount=parse_non_negative_amount(get("settlementAmount")),
    )

    raw_line = " | ".join(cells)
    status = classify_status(details.account_status or raw_line)

    # footers like "Printed on 12-03-2024    Page 2" fill the first cells too
    has_amount = details.sanction_amount > 0 or details.current_balance > 0
    known_type = classify_loan_type(details.account_type or raw_line) is not LoanType.OTHER
    if not (has_amount or known_type or status is not LoanStatus.UNKNOWN):
        return None

    return LoanAccount(
        type=loan_type_label(details.account_type or raw_line, details.account_type),
        status=status.value,
        line=raw_line,
        details=details,
    )


def build_enquiry(cells: List[str], column_map: Dict[str, int]) -> Optional[EnquiryRecord]:
    if len(cells) < 2:
        return None

    record = EnquiryRecord(
        institution=_cell(cells, column_map, "institution"),
        enquiry_type=_cell(cells, column_map, "enquiryType"),
        date=_cell(cells, column_map, "date"),
        amount=parse_non_negative_amount(_cell(cells, column_map, "amount")),
        status=_cell(cells, column_map, "status"),
    )
    if not (record.institution or record.date):
        return None
    return record


LOAN_TABLE = TableSpec(
    name="accounts",
    columns=LOAN_COLUMNS,
    header_primary=_rx(r"\b(?:lender|member|institution|bank|creditor|subscriber)"),
    header_secondary=_rx(r"\b(?:account|a/c|status)\b"),
    build_row=build_loan,
    header_exclude=_rx(r"enquir"),
)

ENQUIRY_TABLE = TableSpec(
    name="enquiries",
    columns=ENQUIRY_COLUMNS,
    header_primary=_rx(r"\b(?:member|lender|institution|bank|subscriber)"),
    header_secondary=_rx(r"\b(?:date|purpose|amount|amt)\b"),
    build_row=build_enquiry,
)


def find_header(lines: List[str], table: TableSpec = LOAN_TABLE) -> int:
    """index of the first header line, -1 if the block has none"""
    for idx, line in enumerate(lines):
        if table.is_header(line):
            return idx
    return -1


def extract_rows(block_text: str, column_map: Optional[Dict[str, int]] = None,
                 table: TableSpec = LOAN_TABLE) -> list:
    """
    walk the rows under the table header and build entities

    stops at a "total" row or the next section heading. rows that yield
    nothing usable (page footers, wrapped text) are skipped.
    """
    if not block_text:
        return []

    lines = block_text.splitlines()
    header_idx = find_header(lines, table)
    if header_idx == -1:
        logger.info(f"No {table.name} header found in block")
        return []

    header_cells = split_columns(lines[header_idx])
    if column_map is None:
        column_map = map_columns(lines[header_idx], table.columns)

    entities = []
    skipped = 0
    for line in lines[header_idx + 1:]:
        if not line.strip():
            continue
        if TOTAL_ROW_RE.match(line) or NEXT_SECTION_RE.match(line):
            break
        cells = split_columns(line)
        if cells == header_cells:
            # header repeated after a page break
            continue

        entity = table.build_row(cells, column_map)
        if entity is None:
            skipped += 1
            logger.debug(f"Skipped {table.name} row: {line.strip()[:80]}")
            continue
        entities.append(entity)

    logger.info(f"Extracted {len(entities)} {table.name} rows ({skipped} skipped)")
    return entities
