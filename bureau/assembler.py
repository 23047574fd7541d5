from typing import Any, Iterable, List, Mapping, Optional, Union

from loguru import logger

from bureau.domain_knowledge import CLEAN_DPD
from bureau.models import (
    EnquiryRecord,
    ExtractionResult,
    LoanAccount,
    LoanAccountDetails,
    LoanStatus,
    TOTAL_FIELDS,
    Totals,
)
from bureau.normalizers import normalize_tenure, parse_non_negative_amount, parse_rate

LOAN_STATUS_VALUES = {status.value for status in LoanStatus}


def dedupe_loans(loans: Iterable[LoanAccount]) -> List[LoanAccount]:
    """drop repeated `line`s, first one wins, order kept"""
    seen = set()
    unique = []
    for loan in loans:
        if loan.line in seen:
            continue
        seen.add(loan.line)
        unique.append(loan)
    return unique


def _text(value):
    if value is None:
        return ""
    return str(value).strip()


def _clean_details(details: Optional[LoanAccountDetails]) -> LoanAccountDetails:
    details = details or LoanAccountDetails()
    return LoanAccountDetails(
        lender=_text(details.lender),
        account_type=_text(details.account_type),
        account_number=_text(details.account_number),
        ownership=_text(details.ownership),
        account_status=_text(details.account_status),
        date_opened=_text(details.date_opened),
        date_reported=_text(details.date_reported),
        date_closed=_text(details.date_closed),
        sanction_amount=parse_non_negative_amount(details.sanction_amount),
        current_balance=parse_non_negative_amount(details.current_balance),
        amount_overdue=parse_non_negative_amount(details.amount_overdue),
        emi_amount=parse_non_negative_amount(details.emi_amount),
        security_or_collateral=_text(details.security_or_collateral),
        dpd_history=_text(details.dpd_history),
        rate_of_interest=parse_rate(details.rate_of_interest),
        repayment_tenure=normalize_tenure(details.repayment_tenure),
        total_write_off_amount=parse_non_negative_amount(details.total_write_off_amount),
        principal_write_off=parse_non_negative_amount(details.principal_write_off),
        settlement_amount=parse_non_negative_amount(details.settlement_amount),
    )


def _clean_loan(loan: LoanAccount) -> LoanAccount:
    status = loan.status if loan.status in LOAN_STATUS_VALUES else LoanStatus.UNKNOWN.value
    return LoanAccount(
        type=_text(loan.type) or "Other",
        status=status,
        line=_text(loan.line),
        details=_clean_details(loan.details),
    )


def _clean_enquiry(enquiry: EnquiryRecord) -> EnquiryRecord:
    return EnquiryRecord(
        institution=_text(enquiry.institution),
        enquiry_type=_text(enquiry.enquiry_type),
        date=_text(enquiry.date),
        amount=parse_non_negative_amount(enquiry.amount),
        status=_text(enquiry.status),
    )


def _clean_totals(totals: Union[Totals, Mapping[str, Any], None]) -> Totals:
    if totals is None:
        return Totals()

    if isinstance(totals, Totals):
        return Totals(**{
            attr: parse_non_negative_amount(getattr(totals, attr))
            for attr in TOTAL_FIELDS.values()
        })

    # plain mapping, camelCase or snake_case keys
    values = {}
    for key, attr in TOTAL_FIELDS.items():
        raw = totals.get(key, totals.get(attr))
        values[attr] = parse_non_negative_amount(raw)
    return Totals(**values)


def _clean_score(score):
    if score is None or isinstance(score, bool):
        return None
    try:
        value = int(round(float(score)))
    except (TypeError, ValueError):
        return None
    if 300 <= value <= 900:
        return value
    return None


def assemble(loans: Optional[Iterable[LoanAccount]],
             enquiries: Optional[Iterable[EnquiryRecord]],
             score: Optional[int],
             enquiry_count: Any,
             dpd: Optional[str],
             totals: Union[Totals, Mapping[str, Any], None]) -> ExtractionResult:
    """
    build the final ExtractionResult

    dedupes loans by `line`, pushes every number through the amount
    normalizer once more and fills the documented default for anything
    left missing upstream.
    """
    unique_loans = dedupe_loans(_clean_loan(loan) for loan in (loans or []))
    clean_enquiries = [_clean_enquiry(enquiry) for enquiry in (enquiries or [])]

    count = int(parse_non_negative_amount(enquiry_count))

    result = ExtractionResult(
        score=_clean_score(score),
        enquiry_count=count,
        dpd=_text(dpd) or CLEAN_DPD,
        totals=_clean_totals(totals),
        loans=tuple(unique_loans),
        enquiries=tuple(clean_enquiries),
    )

    logger.success(
        f"Assembled result: score={result.score}, {len(result.loans)} loans, "
        f"{len(result.enquiries)} enquiries"
    )
    return result
