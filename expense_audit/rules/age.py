# -*- coding: utf-8 -*-
"""Expense age rule: older expenses need review, very old ones are rejected."""

from __future__ import annotations

from datetime import datetime, time
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from expense_audit.errors import AlertCode, render_message
from expense_audit.types import Alert, Decision, Employee, Expense, RuleContext, Verdict

_UTC = ZoneInfo("UTC")


def utc_now() -> datetime:
    return datetime.now(_UTC)


class AgeRule:
    """
    Buckets an expense by whole days elapsed since its date.

    days <= pending_after_days -> approved
    days <= rejected_after_days -> pending
    otherwise -> rejected

    Future dates give zero or negative days and land in the approved bucket.
    """

    def __init__(
        self,
        pending_after_days: int = 30,
        rejected_after_days: int = 60,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.pending_after_days = pending_after_days
        self.rejected_after_days = rejected_after_days
        self.now = now or utc_now

    def elapsed_days(self, expense: Expense) -> int:
        expense_start = datetime.combine(expense.date, time.min, tzinfo=_UTC)
        # timedelta.days is already floored
        return (self.now() - expense_start).days

    def evaluate(self, expense: Expense, employee: Employee, context: RuleContext) -> Verdict:
        days = self.elapsed_days(expense)

        if days <= self.pending_after_days:
            return Verdict(expense.id, Decision.APPROVED)

        if days <= self.rejected_after_days:
            return Verdict(
                expense.id,
                Decision.PENDING,
                (Alert(AlertCode.AGE_LIMIT.value, render_message("age_pending", days=self.pending_after_days)),),
            )

        return Verdict(
            expense.id,
            Decision.REJECTED,
            (Alert(AlertCode.AGE_LIMIT.value, render_message("age_rejected", days=self.rejected_after_days)),),
        )
