import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger
from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bureau.domain_knowledge import INTERPRETER_HINTS, classify_status, loan_type_label
from bureau.exceptions import InterpreterError
from bureau.models import EnquiryRecord, LoanAccount, LoanAccountDetails
from bureau.normalizers import (
    normalize_tenure,
    parse_amount,
    parse_non_negative_amount,
    parse_rate,
)

TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)

SYSTEM_PROMPT = (
    "You are an expert at reading Indian credit bureau reports. "
    "Extract exact values without any formatting and return only JSON."
)


def build_prompt(report_text):
    hints = "\n".join(f"- {hint}" for hint in INTERPRETER_HINTS)

    return f"""Below is the FULL TEXT of a credit bureau report, tables flattened into lines.
Read it like an analyst and fill in the fields listed.

FIELDS:
1. score: the main credit score printed in the score section. Use 0 if you cannot find it.
2. enquiryCount: total number of credit enquiries. Use 0 if unclear.
3. dpd: short summary of delinquencies / overdues, e.g. "30+ DPD in 1 account".
4. totals: loanSanctioned, loanOutstanding, cardLimit, cardOutstanding.
   Use the printed summary numbers when the report has them, only sum rows when it does not.
   Use 0 for a total you cannot determine, never omit it.
5. loans: every loan and credit card, each with
   type (e.g. "Home Loan", "Personal Loan", "Credit Card"),
   status ("Active", "Closed", "Settled" or "Written Off"),
   line (short snippet identifying the account, lender + product).
6. enquiries: each enquiry with institution, enquiryType, date, amount, status.

DOMAIN NOTES:
{hints}

Return ONLY a JSON object:
{{
    "score": <number>,
    "enquiryCount": <number>,
    "dpd": "<text>",
    "totals": {{
        "loanSanctioned": <number>,
        "loanOutstanding": <number>,
        "cardLimit": <number>,
        "cardOutstanding": <number>
    }},
    "loans": [{{"type": "<text>", "status": "<text>", "line": "<text>"}}],
    "enquiries": [{{"institution": "<text>", "enquiryType": "<text>", "date": "<text>", "amount": <number>, "status": "<text>"}}]
}}

REPORT TEXT:
{report_text}"""


def parse_json_reply(content):
    """json out of a model reply, tolerating ``` fences"""
    json_text = (content or "").strip()
    if "```json" in json_text:
        json_text = json_text.split("```json")[1].split("```")[0].strip()
    elif "```" in json_text:
        json_text = json_text.split("```")[1].split("```")[0].strip()

    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        raise InterpreterError(f"Interpreter returned invalid JSON: {str(e)}") from e


class OpenAIReportInterpreter:
    """free-form report reading with an OpenAI chat model"""

    def __init__(self, openai_client: OpenAI, model="gpt-4o-mini", temperature=0.0,
                 max_chars=60000):
        self.client = openai_client
        self.model = model
        self.temperature = temperature
        self.max_chars = max_chars
        logger.info(f"Report interpreter ready (model={model})")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True
    )
    def _complete(self, prompt):
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            temperature=self.temperature,
            response_format={"type": "json_object"}
        )
        return response.choices[0].message.content

    def interpret_report_text(self, text) -> Dict[str, Any]:
        """raw ExtractionResult-shaped dict, raises InterpreterError"""
        if len(text) > self.max_chars:
            logger.warning(f"Report text truncated to {self.max_chars} chars for interpreter")
            text = text[:self.max_chars]

        try:
            content = self._complete(build_prompt(text))
        except Exception as e:
            raise InterpreterError(f"Interpreter call failed: {str(e)}") from e

        data = parse_json_reply(content)
        logger.success("Interpreter reply received")
        return data


@dataclass
class InterpreterCandidate:
    """interpreter output after validation; None means "no candidate" """
    score: Optional[int] = None
    enquiry_count: Optional[int] = None
    dpd: Optional[str] = None
    totals: Dict[str, Optional[float]] = field(default_factory=dict)
    loans: List[LoanAccount] = field(default_factory=list)
    enquiries: List[EnquiryRecord] = field(default_factory=list)


TOTAL_KEYS = ("loanSanctioned", "loanOutstanding", "cardLimit", "cardOutstanding")


def _score(raw):
    if raw is None or isinstance(raw, bool):
        return None
    value = int(round(parse_amount(raw)))
    # 0 is the prompt's "not found"
    return value if 300 <= value <= 900 else None


def _total(raw):
    if raw is None:
        return None
    value = parse_non_negative_amount(raw)
    # 0 is the prompt's "cannot determine"
    return value if value > 0 else None


def _loan(item):
    if not isinstance(item, dict):
        return None

    raw_type = str(item.get("type") or "").strip()
    line = str(item.get("line") or "").strip()
    if not (line or raw_type):
        return None

    raw = item.get("details") if isinstance(item.get("details"), dict) else {}
    details = LoanAccountDetails(
        lender=str(raw.get("lender") or ""),
        account_type=str(raw.get("accountType") or raw_type),
        account_number=str(raw.get("accountNumber") or ""),
        ownership=str(raw.get("ownership") or ""),
        account_status=str(raw.get("accountStatus") or item.get("status") or ""),
        date_opened=str(raw.get("dateOpened") or ""),
        date_reported=str(raw.get("dateReported") or ""),
        date_closed=str(raw.get("dateClosed") or ""),
        sanction_amount=parse_non_negative_amount(raw.get("sanctionAmount")),
        current_balance=parse_non_negative_amount(raw.get("currentBalance")),
        amount_overdue=parse_non_negative_amount(raw.get("amountOverdue")),
        emi_amount=parse_non_negative_amount(raw.get("emiAmount")),
        security_or_collateral=str(raw.get("securityOrCollateral") or ""),
        dpd_history=str(raw.get("dpdHistory") or ""),
        rate_of_interest=parse_rate(raw.get("rateOfInterest")),
        repayment_tenure=normalize_tenure(raw.get("repaymentTenure")),
        total_write_off_amount=parse_non_negative_amount(raw.get("totalWriteOffAmount")),
        principal_write_off=parse_non_negative_amount(raw.get("principalWriteOff")),
        settlement_amount=parse_non_negative_amount(raw.get("settlementAmount")),
    )

    return LoanAccount(
        type=loan_type_label(raw_type or line, raw_type),
        status=classify_status(str(item.get("status") or "")).value,
        line=line or raw_type,
        details=details,
    )


def _enquiry(item):
    if not isinstance(item, dict):
        return None
    return EnquiryRecord(
        institution=str(item.get("institution") or ""),
        enquiry_type=str(item.get("enquiryType") or ""),
        date=str(item.get("date") or ""),
        amount=parse_non_negative_amount(item.get("amount")),
        status=str(item.get("status") or ""),
    )


def normalize_candidate(raw: Any) -> InterpreterCandidate:
    """
    validate interpreter output into an InterpreterCandidate

    raises InterpreterError when the reply is not an object or has no
    totals object
    """
    if isinstance(raw, InterpreterCandidate):
        return raw
    if not isinstance(raw, dict):
        raise InterpreterError(f"Interpreter returned {type(raw).__name__}, expected an object")

    totals = raw.get("totals")
    if not isinstance(totals, dict):
        raise InterpreterError("Interpreter output has no totals object")

    enquiry_count = raw.get("enquiryCount")
    if enquiry_count is not None and not isinstance(enquiry_count, bool):
        enquiry_count = int(parse_non_negative_amount(enquiry_count))
    else:
        enquiry_count = None

    dpd = raw.get("dpd")
    dpd = str(dpd).strip() if dpd else None

    loans = raw.get("loans") if isinstance(raw.get("loans"), list) else []
    enquiries = raw.get("enquiries") if isinstance(raw.get("enquiries"), list) else []

    candidate = InterpreterCandidate(
        score=_score(raw.get("score")),
        enquiry_count=enquiry_count,
        dpd=dpd or None,
        totals={key: _total(totals.get(key)) for key in TOTAL_KEYS},
        loans=[loan for loan in (_loan(item) for item in loans) if loan is not None],
        enquiries=[e for e in (_enquiry(item) for item in enquiries) if e is not None],
    )
    logger.debug(
        f"Interpreter candidate: score={candidate.score}, {len(candidate.loans)} loans, "
        f"{len(candidate.enquiries)} enquiries"
    )
    return candidate
