# -*- coding: utf-8 -*-
"""Policy rule contract."""

from __future__ import annotations

from typing import Protocol

from expense_audit.types import Employee, Expense, RuleContext, RuleOutcome


class PolicyRule(Protocol):
    """
    One unit of policy logic.

    evaluate() must not have side effects other than reads through
    context.rate_source, and returns Abstain when the rule does not apply.
    """

    def evaluate(self, expense: Expense, employee: Employee, context: RuleContext) -> RuleOutcome:
        ...
