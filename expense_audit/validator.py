# -*- coding: utf-8 -*-
"""
Expense validator

Runs every configured rule against one expense (concurrently) and merges
the verdicts that fired into a single final verdict.

Precedence:
1. Any rejected verdict -> REJECTED
2. Any pending verdict  -> PENDING
3. Any verdict at all   -> APPROVED
4. Every rule abstained -> PENDING with no alerts

The merged alerts are those of every verdict that fired, in rule-list
order, whatever that verdict's own decision was.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from expense_audit.rules import PolicyRule
from expense_audit.types import Abstain, Decision, Employee, Expense, RuleContext, Verdict

logger = logging.getLogger(__name__)

_PRECEDENCE = (Decision.REJECTED, Decision.PENDING, Decision.APPROVED)


def merge_verdicts(expense_id: str, verdicts: Sequence[Verdict]) -> Verdict:
    """
    Merge rule verdicts into the final verdict for one expense

    Args:
        expense_id: Expense identifier
        verdicts: Verdicts that fired, in rule-list order

    Returns:
        Final verdict
    """
    if not verdicts:
        return Verdict(expense_id, Decision.PENDING)

    decisions = {verdict.decision for verdict in verdicts}
    decision = next(d for d in _PRECEDENCE if d in decisions)
    alerts = tuple(alert for verdict in verdicts for alert in verdict.alerts)
    return Verdict(expense_id, decision, alerts)


class ExpenseValidator:
    """Evaluates an ordered list of policy rules against expenses"""

    def __init__(
        self,
        rules: Sequence[PolicyRule],
        context: Optional[RuleContext] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            rules: Rules in evaluation order
            context: Shared read-only context (base currency, rate source)
            max_workers: Thread pool size (defaults to one thread per rule)
        """
        self.rules = list(rules)
        self.context = context or RuleContext()
        self.max_workers = max_workers or max(len(self.rules), 1)
        self._executor: Optional[ThreadPoolExecutor] = None

    def validate(self, expense: Expense, employee: Employee) -> Verdict:
        """
        Validate one expense

        Exceptions raised by a rule propagate to the caller.
        """
        if not self.rules:
            return Verdict(expense.id, Decision.PENDING)

        executor = self._get_executor()
        futures = [executor.submit(rule.evaluate, expense, employee, self.context) for rule in self.rules]
        outcomes = [future.result() for future in futures]

        verdicts = [outcome for outcome in outcomes if isinstance(outcome, Verdict)]
        if not verdicts:
            reasons = "; ".join(outcome.reason for outcome in outcomes if isinstance(outcome, Abstain) and outcome.reason)
            logger.info(f"No rule applies to expense {expense.id}, leaving it pending ({reasons})")

        return merge_verdicts(expense.id, verdicts)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "ExpenseValidator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="rule")
        return self._executor
