"""
bureau vocabulary shared by the rule extractors and the interpreter prompt

everything here is ordered: the first matching entry wins.
"""
import re

from bureau.models import LoanType, LoanStatus


BUREAU_NAMES = ["experian", "cibil", "crif", "equifax"]

# (pattern, variant) - specific products before the generic "loan"
LOAN_TYPE_RULES = [
    (re.compile(r"home\s*loan|housing\s*(?:loan|finance)|\bhfl\b|mortgage", re.I), LoanType.HOME_LOAN),
    (re.compile(r"loan\s*against\s*property|property\s*loan|\blap\b", re.I), LoanType.LOAN_AGAINST_PROPERTY),
    (re.compile(r"personal\s*loan|\bpl\b", re.I), LoanType.PERSONAL_LOAN),
    (re.compile(r"credit\s*card|\bcard\b|\bcc\b", re.I), LoanType.CREDIT_CARD),
    (re.compile(r"overdraft|\bod\b", re.I), LoanType.OVERDRAFT),
    (re.compile(r"vehicle|auto|\bcar\b|two[\s-]*wheeler", re.I), LoanType.AUTO_LOAN),
    (re.compile(r"gold", re.I), LoanType.GOLD_LOAN),
    (re.compile(r"business|commercial|\bbl\b", re.I), LoanType.BUSINESS_LOAN),
    (re.compile(r"education", re.I), LoanType.EDUCATION_LOAN),
    (re.compile(r"consumer\s*(?:durable|loan)", re.I), LoanType.CONSUMER_DURABLE),
]

# severe outcomes first, a "closed - settled" row is settled
LOAN_STATUS_RULES = [
    (re.compile(r"written[\s-]*off|write[\s-]*off|\bwo\b", re.I), LoanStatus.WRITTEN_OFF),
    (re.compile(r"settled|settlement", re.I), LoanStatus.SETTLED),
    (re.compile(r"closed", re.I), LoanStatus.CLOSED),
    (re.compile(r"active|\bopen\b|\blive\b|\bstd\b", re.I), LoanStatus.ACTIVE),
]

# line-scan keywords (used when there is no accounts table)
LOAN_KEYWORDS = [
    "loan", "housing finance", "hfl", "mortgage", "overdraft", "od",
    "vehicle loan", "auto loan", "personal loan", "home loan", "lap",
]
CARD_KEYWORDS = ["credit card", "card type", "card account", "cc account"]


def _keyword_re(keywords):
    alternatives = "|".join(k.replace(" ", r"\s+") for k in keywords)
    return re.compile(rf"\b(?:{alternatives})s?\b", re.I)


LOAN_KEYWORD_RE = _keyword_re(LOAN_KEYWORDS)
CARD_KEYWORD_RE = _keyword_re(CARD_KEYWORDS)

OUTSTANDING_LINE_RE = re.compile(
    r"current\s+balance|curr\.?\s+balance|outstanding\s+balance|amt\.?\s+outstanding|amount\s+outstanding",
    re.I,
)
SANCTION_LINE_RE = re.compile(
    r"sanctioned\s+amount|amount\s+sanctioned|disbursed\s+amount|credit\s+limit|high\s+credit",
    re.I,
)

# section markers for the table segmenter
ACCOUNT_SECTION_MARKERS = [
    "Account Information",
    "Account Details",
    "Credit Account Information",
    "Summary of Credit Accounts",
    "Accounts",
]
ENQUIRY_SECTION_MARKERS = [
    "Credit Enquiries",
    "Enquiry Information",
    "Enquiry Details",
    "Enquiries",
]
REPORT_END_MARKERS = ["End of Report", "Disclaimer"]

ACCOUNT_SECTION_END_MARKERS = ENQUIRY_SECTION_MARKERS + REPORT_END_MARKERS
ENQUIRY_SECTION_END_MARKERS = ["Report Summary", "Account Information"] + REPORT_END_MARKERS

# headings that end a table when they show up inside a segmented block
NEXT_SECTION_RE = re.compile(
    r"^\s*(?:credit\s+enquir|enquiry\s+(?:information|details)|report\s+summary|"
    r"current\s+balance\s+amount\s+summary|personal\s+information|contact\s+information|"
    r"employment\s+information|end\s+of\s+report|disclaimer)",
    re.I,
)

# printed aggregates, treated as ground truth for the matching total
ANCHOR_PHRASES = {
    "loanOutstanding": [
        r"total\s+current\s+bal(?:ance)?\.?\s*(?:amt\.?|amount)?",
        r"total\s+outstanding\s+(?:balance|amount)",
    ],
    "loanSanctioned": [
        r"total\s+sanction(?:ed)?\s+(?:amt\.?|amount)",
        r"total\s+disbursed\s+(?:amt\.?|amount)",
    ],
    "cardLimit": [
        r"total\s+credit\s+card\s+limit",
        r"total\s+cc/co\s+high\s+credit(?:\s*/\s*limit)?",
    ],
    "cardOutstanding": [
        r"total\s+credit\s+card\s+current\s+balance",
        r"total\s+cc/co\s+current\s+balance",
    ],
}
SECURED_BALANCE_PHRASE = r"(?<!un)secured\s+accounts?\s+(?:amt\.?|amount)"
UNSECURED_BALANCE_PHRASE = r"unsecured\s+accounts?\s+(?:amt\.?|amount)"

ENQUIRY_TOTAL_PHRASES = [
    r"total\s+(?:credit\s+)?enquir(?:y|ies)",
    r"(?:number|no\.?)\s+of\s+enquir(?:y|ies)",
    r"credit\s+enquir(?:y|ies)\s+\(last\s+\d+\s+days\)",
]
# "in the last 30 days", "(past 6 months)": a period qualifier, never the count
ENQUIRY_PERIOD = r"(?:\s*\(?\s*(?:in\s+)?(?:the\s+)?(?:last|past)\s+\d+\s+(?:days?|months?)\s*\)?)?"

DPD_CONTEXT_RE = re.compile(r"dpd|days\s+past\s+due|payment\s+history", re.I)
DPD_BUCKET_RE = re.compile(r"\b(?:30|60|90|120|150|180)\b")

CLEAN_DPD = "0 - Clean"
POSSIBLE_DELINQUENCY = "Possible delinquencies (30+ DPD found, manual review needed)"


# hints passed to the report interpreter
INTERPRETER_HINTS = [
    "Indian bureau reports (Experian, CIBIL, CRIF, Equifax) score from 300 to 900; ignore range labels such as '300-900'.",
    "Prefer printed summary boxes over summing rows, e.g. Experian 'Current Balance Amount Summary' -> 'Total Current Bal. amt' is the outstanding across all accounts.",
    "If no total is printed, 'Secured Accounts amt' + 'Unsecured Accounts amt' is the outstanding across all accounts.",
    "Sanctioned totals: 'Total Sanctioned Amount' or 'Total Disbursed Amount'. Card totals: 'Total Credit Card Limit', 'Total CC/CO High Credit / Limit', 'Total CC/CO current balance'.",
    "Amounts use Indian grouping (1,50,000). Return plain numbers without commas or currency.",
    "Account status words: Active, Closed, Settled, Written Off.",
    "Enquiry count: prefer 'Total credit enquiries' / 'Last 180 days credit enquiries', else count enquiry rows.",
    "If the report says there are no delinquencies, dpd is exactly '0 - Clean'.",
]


def classify_loan_type(text):
    """first LOAN_TYPE_RULES match, LoanType.OTHER when nothing matches"""
    if not text:
        return LoanType.OTHER
    for pattern, variant in LOAN_TYPE_RULES:
        if pattern.search(text):
            return variant
    return LoanType.OTHER


def classify_status(text):
    if not text:
        return LoanStatus.UNKNOWN
    for pattern, variant in LOAN_STATUS_RULES:
        if pattern.search(text):
            return variant
    return LoanStatus.UNKNOWN


def loan_type_label(text, fallback=""):
    """display label: the matched variant, else the printed text, else Other"""
    variant = classify_loan_type(text)
    if variant is not LoanType.OTHER:
        return variant.value
    fallback = (fallback or "").strip()
    return fallback or LoanType.OTHER.value
