"""Pytest fixtures for testing"""

import json
from types import SimpleNamespace

import pytest

from bureau.exceptions import InterpreterError, OCRError


SAMPLE_REPORT = """EXPERIAN CREDIT REPORT
Report Date: 12-03-2024
Experian Credit Score 750

Current Balance Amount Summary
Total Current Bal. amt      40,88,632
Secured Accounts amt        35,00,000
Unsecured Accounts amt      5,88,632

Account Information
Lender         Account Type     Account Status   Sanction Amt / Highest Credit   Current Balance   Amount Overdue
HDFC Bank      Home Loan        Active           7,50,000                        3,20,000          0
ICICI Bank     Credit Card      Active           2,00,000                        45,000            0
Axis Bank      Personal Loan    Closed           5,00,000                        0                 0
HDFC Bank      Home Loan        Active           7,50,000                        3,20,000          0
Total                                            14,50,000                       3,65,000          0

Credit Enquiries
Member Name    Enquiry Date   Enquiry Purpose   Amount
SBI Card       12-01-2024     Credit Card       50,000
Bajaj Finance  02-02-2024     Personal Loan     3,00,000

End of Report
"""

# between the readable and the sufficient thresholds
SUMMARY_PAGE = """CIBIL Credit Report
CIBIL Score: 720
Name: Test Consumer
This summary page was generated for the consumer and lists the credit score only.
Full details follow on later pages.
"""

# readable, but nothing a bureau report would carry
NARRATIVE = (
    "This document is a consumer declaration form submitted with the application. "
    "It does not contain any bureau data, only the signature of the applicant "
    "and the name of the branch that received it."
)

LINE_SCAN_REPORT = """Home Loan - HDFC Ltd
Account Status: Active
Current Balance: 3,20,000
Sanctioned Amount: 7,50,000
Credit Card - ICICI Bank
Status: Closed
Current Balance: 12,000
Credit Limit: 1,00,000
"""


class StubTextSource:
    """returns a fixed text layer, records every document it is asked for"""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.documents = []

    def extract_native_text(self, document):
        self.documents.append(document)
        if self.error is not None:
            raise self.error
        return self.text


class StubRecognizer:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def recognize_text(self, document):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


class StubInterpreter:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = 0

    def interpret_report_text(self, text):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.reply


class FakeCompletions:
    """stands in for client.chat.completions"""

    def __init__(self, contents=None, error=None):
        self.contents = list(contents or [])
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = self.contents.pop(0) if len(self.contents) > 1 else self.contents[0]
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, contents=None, error=None):
        self.completions = FakeCompletions(contents, error)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def sample_report() -> str:
    """Experian style report with summary box, accounts and enquiries"""
    return SAMPLE_REPORT


@pytest.fixture
def summary_page() -> str:
    return SUMMARY_PAGE


@pytest.fixture
def narrative_text() -> str:
    return NARRATIVE


@pytest.fixture
def line_scan_report() -> str:
    return LINE_SCAN_REPORT


@pytest.fixture
def interpreter_reply() -> dict:
    """what a well-behaved interpreter hands back for the sample report"""
    return {
        "score": 780,
        "enquiryCount": 5,
        "dpd": "30+ DPD in 1 account",
        "totals": {
            "loanSanctioned": 999,
            "loanOutstanding": 111,
            "cardLimit": 222,
            "cardOutstanding": 333,
        },
        "loans": [
            {"type": "HOME LOAN", "status": "Written Off", "line": "HDFC Home Loan XXXX1234"},
            {"type": "Credit Card", "status": "Active", "line": "ICICI Credit Card XXXX9876"},
        ],
        "enquiries": [
            {"institution": "SBI Card", "enquiryType": "Credit Card", "date": "12-01-2024",
             "amount": "50,000", "status": "Approved"},
        ],
    }


@pytest.fixture
def failing_ocr() -> StubRecognizer:
    return StubRecognizer(error=OCRError("vision model unavailable"))


@pytest.fixture
def failing_interpreter() -> StubInterpreter:
    return StubInterpreter(error=InterpreterError("Interpreter call failed: timeout"))


@pytest.fixture
def fake_openai_factory():
    """build a fake OpenAI client replying with the given contents"""

    def factory(*contents, error=None):
        return FakeOpenAI(contents=contents or [""], error=error)

    return factory


@pytest.fixture
def json_reply(interpreter_reply) -> str:
    return json.dumps(interpreter_reply)
