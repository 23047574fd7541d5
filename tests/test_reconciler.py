"""Unit tests for per-field reconciliation"""

from bureau.reconciler import (
    ANCHOR,
    DEFAULT,
    EXTERNAL,
    RULE,
    RULE_SUM,
    Reconciler,
    pick,
    reconcile,
)


def test_anchor_wins():
    candidates = {ANCHOR: 4088632.0, RULE_SUM: 640000.0, EXTERNAL: 111.0}
    assert reconcile(candidates) == 4088632.0


def test_rule_sum_when_no_anchor():
    candidates = {ANCHOR: None, RULE_SUM: 640000.0, EXTERNAL: 111.0}
    decision = pick(candidates)

    assert decision.value == 640000.0
    assert decision.source == RULE_SUM


def test_external_last():
    assert reconcile({ANCHOR: None, RULE_SUM: None, EXTERNAL: 111.0}) == 111.0


def test_default_when_nothing_present():
    decision = pick({ANCHOR: None}, default=0)

    assert decision.value == 0
    assert decision.source == DEFAULT


def test_zero_is_a_real_candidate():
    """Test a present zero is not skipped in favour of a lower source"""
    assert reconcile({ANCHOR: 0.0, EXTERNAL: 111.0}) == 0.0


def test_camel_case_source_alias():
    assert reconcile({"ruleSum": 5.0, EXTERNAL: 1.0}) == 5.0


def test_fields_decided_independently():
    """Test one field's anchor has no effect on another field"""
    reconciler = Reconciler()
    decisions = reconciler.decide_all({
        "loanOutstanding": {ANCHOR: 4088632.0, RULE_SUM: 320000.0},
        "loanSanctioned": {ANCHOR: None, RULE_SUM: 1250000.0, EXTERNAL: 999.0},
        "cardLimit": {EXTERNAL: 222.0},
    })

    assert decisions["loanOutstanding"].source == ANCHOR
    assert decisions["loanSanctioned"].source == RULE_SUM
    assert decisions["cardLimit"].source == EXTERNAL


def test_strategy_override_is_partial():
    reconciler = Reconciler(strategy={"loanOutstanding": (EXTERNAL, ANCHOR)})
    candidates = {ANCHOR: 4088632.0, RULE_SUM: 320000.0, EXTERNAL: 111.0}

    assert reconciler.decide("loanOutstanding", candidates).value == 111.0
    assert reconciler.decide("loanSanctioned", candidates).value == 4088632.0


def test_scalar_defaults():
    reconciler = Reconciler()

    assert reconciler.decide("score", {RULE: None, EXTERNAL: None}).value is None
    assert reconciler.decide("enquiryCount", {}).value == 0
    assert reconciler.decide("dpd", {}).value == "0 - Clean"
    assert reconciler.decide("score", {RULE: 750, EXTERNAL: 780}).value == 750


def test_has_candidate():
    assert Reconciler.has_candidate({ANCHOR: None, EXTERNAL: 0.0})
    assert not Reconciler.has_candidate({ANCHOR: None})
    assert not Reconciler.has_candidate({})
