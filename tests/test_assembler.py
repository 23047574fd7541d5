"""Unit tests for result assembly"""

import dataclasses

import pytest

from bureau.assembler import assemble, dedupe_loans
from bureau.models import EnquiryRecord, LoanAccount, LoanAccountDetails, Totals


def _loan(line, status="Active", **details):
    return LoanAccount(type="Home Loan", status=status, line=line,
                       details=LoanAccountDetails(**details))


def test_dedupe_first_line_wins():
    loans = [
        _loan("HDFC | Home Loan", sanction_amount=1),
        _loan("Axis | Personal Loan"),
        _loan("HDFC | Home Loan", sanction_amount=2),
    ]

    unique = dedupe_loans(loans)

    assert [loan.line for loan in unique] == ["HDFC | Home Loan", "Axis | Personal Loan"]
    assert unique[0].details.sanction_amount == 1


def test_assemble_defaults():
    """Test every missing scalar gets its documented default"""
    result = assemble(loans=None, enquiries=None, score=None, enquiry_count=None,
                      dpd=None, totals=None)

    assert result.score is None
    assert result.enquiry_count == 0
    assert result.dpd == "0 - Clean"
    assert result.totals == Totals()
    assert result.loans == ()
    assert result.enquiries == ()


def test_assemble_normalizes_again():
    loans = [
        _loan("a", status="Frozen", sanction_amount="7,50,000", repayment_tenure="3 years"),
        _loan("a"),
    ]
    totals = {"loanSanctioned": "7,50,000", "card_limit": -5, "loanOutstanding": None}

    result = assemble(loans=loans, enquiries=[EnquiryRecord(institution=" SBI ", amount="50,000")],
                      score="750", enquiry_count="3", dpd="  ", totals=totals)

    assert len(result.loans) == 1
    assert result.loans[0].status == "Unknown"
    assert result.loans[0].details.sanction_amount == 750000
    assert result.loans[0].details.repayment_tenure == 36
    assert result.enquiries[0].institution == "SBI"
    assert result.enquiries[0].amount == 50000
    assert result.score == 750
    assert result.enquiry_count == 3
    assert result.dpd == "0 - Clean"
    assert result.totals.loan_sanctioned == 750000
    assert result.totals.card_limit == 0.0
    assert result.totals.loan_outstanding == 0.0


def test_assemble_drops_out_of_range_score():
    result = assemble([], [], score=1200, enquiry_count=0, dpd=None, totals=Totals())
    assert result.score is None


def test_result_is_immutable():
    result = assemble([], [], score=750, enquiry_count=0, dpd=None, totals=Totals())

    with pytest.raises(dataclasses.FrozenInstanceError):
        result.score = 600


def test_to_dict_uses_output_keys():
    result = assemble([_loan("HDFC | Home Loan", sanction_amount=750000)], [], score=750,
                      enquiry_count=1, dpd="Overdues in 1 account(s)",
                      totals=Totals(loan_sanctioned=750000))

    data = result.to_dict()

    assert data["enquiryCount"] == 1
    assert data["totals"]["loanSanctioned"] == 750000
    assert data["loans"][0]["details"]["sanctionAmount"] == 750000
    assert data["loans"][0]["details"]["repaymentTenure"] is None
