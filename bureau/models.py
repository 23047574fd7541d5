from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple, Union


class LoanType(str, Enum):
    """credit facility types, matched by the rules in domain_knowledge"""
    HOME_LOAN = "Home Loan"
    LOAN_AGAINST_PROPERTY = "Loan Against Property"
    PERSONAL_LOAN = "Personal Loan"
    CREDIT_CARD = "Credit Card"
    OVERDRAFT = "Overdraft"
    AUTO_LOAN = "Auto / Vehicle Loan"
    GOLD_LOAN = "Gold Loan"
    BUSINESS_LOAN = "Business Loan"
    EDUCATION_LOAN = "Education Loan"
    CONSUMER_DURABLE = "Consumer Durable Loan"
    OTHER = "Other"


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"
    SETTLED = "Settled"
    WRITTEN_OFF = "WrittenOff"
    UNKNOWN = "Unknown"


@dataclass
class Totals:
    """aggregate exposure across the whole report"""
    loan_sanctioned: float = 0.0
    loan_outstanding: float = 0.0
    card_limit: float = 0.0
    card_outstanding: float = 0.0

    def to_dict(self):
        return {
            "loanSanctioned": self.loan_sanctioned,
            "loanOutstanding": self.loan_outstanding,
            "cardLimit": self.card_limit,
            "cardOutstanding": self.card_outstanding,
        }


# output key -> attribute name
TOTAL_FIELDS = {
    "loanSanctioned": "loan_sanctioned",
    "loanOutstanding": "loan_outstanding",
    "cardLimit": "card_limit",
    "cardOutstanding": "card_outstanding",
}


@dataclass
class LoanAccountDetails:
    """per-account fields read from the accounts table"""
    lender: str = ""
    account_type: str = ""
    account_number: str = ""
    ownership: str = ""
    account_status: str = ""
    date_opened: str = ""  # dates stay as printed, bureaus disagree on format
    date_reported: str = ""
    date_closed: str = ""
    sanction_amount: float = 0.0
    current_balance: float = 0.0
    amount_overdue: float = 0.0
    emi_amount: float = 0.0
    security_or_collateral: str = ""
    dpd_history: str = ""
    rate_of_interest: Optional[float] = None
    repayment_tenure: Optional[Union[int, str]] = None
    total_write_off_amount: float = 0.0
    principal_write_off: float = 0.0
    settlement_amount: float = 0.0

    def to_dict(self):
        return {
            "lender": self.lender,
            "accountType": self.account_type,
            "accountNumber": self.account_number,
            "ownership": self.ownership,
            "accountStatus": self.account_status,
            "dateOpened": self.date_opened,
            "dateReported": self.date_reported,
            "dateClosed": self.date_closed,
            "sanctionAmount": self.sanction_amount,
            "currentBalance": self.current_balance,
            "amountOverdue": self.amount_overdue,
            "emiAmount": self.emi_amount,
            "securityOrCollateral": self.security_or_collateral,
            "dpdHistory": self.dpd_history,
            "rateOfInterest": self.rate_of_interest,
            "repaymentTenure": self.repayment_tenure,
            "totalWriteOffAmount": self.total_write_off_amount,
            "principalWriteOff": self.principal_write_off,
            "settlementAmount": self.settlement_amount,
        }


@dataclass
class LoanAccount:
    """one credit facility; `line` doubles as the dedup key"""
    type: str
    status: str
    line: str
    details: LoanAccountDetails = field(default_factory=LoanAccountDetails)

    def to_dict(self):
        return {
            "type": self.type,
            "status": self.status,
            "line": self.line,
            "details": self.details.to_dict(),
        }


@dataclass
class EnquiryRecord:
    institution: str = ""
    enquiry_type: str = ""
    date: str = ""
    amount: float = 0.0
    status: str = ""

    def to_dict(self):
        return {
            "institution": self.institution,
            "enquiryType": self.enquiry_type,
            "date": self.date,
            "amount": self.amount,
            "status": self.status,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """canonical structured record for one bureau report"""
    score: Optional[int]
    enquiry_count: int
    dpd: str
    totals: Totals
    loans: Tuple[LoanAccount, ...]
    enquiries: Tuple[EnquiryRecord, ...]

    def to_dict(self):
        return {
            "score": self.score,
            "enquiryCount": self.enquiry_count,
            "dpd": self.dpd,
            "totals": self.totals.to_dict(),
            "loans": [loan.to_dict() for loan in self.loans],
            "enquiries": [enquiry.to_dict() for enquiry in self.enquiries],
        }


@dataclass
class AcquisitionFailure:
    """document-level failure, returned to the caller instead of raised"""
    kind: str  # "unreadable_document" or "no_usable_data"
    message: str
    remediation: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return {
            "kind": self.kind,
            "message": self.message,
            "remediation": self.remediation,
            "details": self.details,
        }


@dataclass
class PipelineOutcome:
    """what one pipeline run hands back"""
    success: bool
    result: Optional[ExtractionResult] = None
    failure: Optional[AcquisitionFailure] = None
    warnings: List[str] = field(default_factory=list)
    sources: Dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        response = {
            "success": self.success,
            "warnings": list(self.warnings),
            "sources": dict(self.sources),
        }
        if self.result is not None:
            response["result"] = self.result.to_dict()
        if self.failure is not None:
            response["failure"] = self.failure.to_dict()
        return response
