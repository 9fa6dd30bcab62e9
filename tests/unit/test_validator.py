# -*- coding: utf-8 -*-
"""
Test expense validator (verdict merging and precedence)
"""

import logging
import time

import pytest

from expense_audit.types import Abstain, Alert, Decision, Verdict
from expense_audit.validator import ExpenseValidator, merge_verdicts
from tests.test_utils import StaticRule, make_employee, make_expense

FOOD_PENDING = Alert("LIMITE_FOOD", "Gasto food requiere revisión.")
AGE_PENDING = Alert("LIMITE_ANTIGUEDAD", "Gasto excede los 30 días. Requiere revisión.")
COST_CENTER = Alert("POLITICA_CENTRO_COSTO", "core_engineering no puede reportar gastos food.")


def _verdict(decision, *alerts):
    return Verdict("g_001", decision, tuple(alerts))


def _validate(*outcomes):
    with ExpenseValidator([StaticRule(outcome) for outcome in outcomes]) as validator:
        return validator.validate(make_expense(), make_employee())


class TestPrecedence:
    """REJECTED > PENDING > APPROVED; nothing fired -> PENDING"""

    def test_rejected_wins_and_merges_all_firing_alerts(self):
        result = _validate(
            _verdict(Decision.PENDING, FOOD_PENDING),
            _verdict(Decision.REJECTED, COST_CENTER),
            _verdict(Decision.APPROVED),
            _verdict(Decision.PENDING, AGE_PENDING),
        )

        assert result.decision == Decision.REJECTED
        assert result.alerts == (FOOD_PENDING, COST_CENTER, AGE_PENDING)

    def test_pending_wins_over_approved(self):
        result = _validate(_verdict(Decision.APPROVED), _verdict(Decision.PENDING, AGE_PENDING))

        assert result.decision == Decision.PENDING
        assert result.alerts == (AGE_PENDING,)

    def test_all_approved(self):
        result = _validate(_verdict(Decision.APPROVED), Abstain(), _verdict(Decision.APPROVED))

        assert result.decision == Decision.APPROVED
        assert result.alerts == ()

    def test_approved_alerts_are_kept(self):
        note = Alert("NOTA", "informational")

        result = _validate(_verdict(Decision.APPROVED, note))

        assert result.decision == Decision.APPROVED
        assert result.alerts == (note,)

    def test_all_abstain_is_pending_without_alerts(self):
        result = _validate(Abstain("n/a"), Abstain("n/a"))

        assert result.decision == Decision.PENDING
        assert result.alerts == ()

    def test_no_rules_is_pending(self):
        result = ExpenseValidator([]).validate(make_expense(expense_id="g_009"), make_employee())

        assert result == Verdict("g_009", Decision.PENDING)

    def test_abstain_reasons_are_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="expense_audit.validator")

        _validate(Abstain("category is not food"), Abstain("not a food expense from core_engineering"))

        assert "category is not food; not a food expense from core_engineering" in caplog.text


class TestOrdering:
    """Alert order follows rule-list order, not completion order"""

    def test_slow_first_rule_keeps_its_position(self):
        class SlowRule(StaticRule):
            def evaluate(self, expense, employee, context):
                time.sleep(0.05)
                return super().evaluate(expense, employee, context)

        rules = [SlowRule(_verdict(Decision.PENDING, FOOD_PENDING)), StaticRule(_verdict(Decision.PENDING, AGE_PENDING))]
        with ExpenseValidator(rules) as validator:
            result = validator.validate(make_expense(), make_employee())

        assert result.alerts == (FOOD_PENDING, AGE_PENDING)

    def test_final_verdict_uses_expense_id(self):
        with ExpenseValidator([StaticRule(Verdict("other", Decision.APPROVED))]) as validator:
            result = validator.validate(make_expense(expense_id="g_123"), make_employee())

        assert result.expense_id == "g_123"


def test_every_rule_is_evaluated_once():
    rules = [StaticRule(Abstain()), StaticRule(_verdict(Decision.REJECTED, COST_CENTER)), StaticRule(Abstain())]

    with ExpenseValidator(rules) as validator:
        validator.validate(make_expense(), make_employee())

    assert [rule.calls for rule in rules] == [1, 1, 1]


def test_rule_exception_propagates():
    class BrokenRule:
        def evaluate(self, expense, employee, context):
            raise KeyError("broken")

    with ExpenseValidator([BrokenRule()]) as validator:
        with pytest.raises(KeyError):
            validator.validate(make_expense(), make_employee())


def test_merge_verdicts_empty():
    assert merge_verdicts("g_001", []) == Verdict("g_001", Decision.PENDING)
