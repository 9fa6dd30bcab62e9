# -*- coding: utf-8 -*-
"""
Category amount limit rule (currency aware).

Amounts are converted to the context's base currency before bucketing.
A failed conversion falls back to the raw amount so one bad lookup never
aborts a batch.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Union

from expense_audit.errors import render_message
from expense_audit.types import (
    Abstain,
    Alert,
    Category,
    Decision,
    Employee,
    Expense,
    RuleContext,
    RuleOutcome,
    Verdict,
)

logger = logging.getLogger(__name__)


def limit_alert_code(category: str) -> str:
    """Alert code for a category limit (e.g. food -> LIMITE_FOOD)"""
    return f"LIMITE_{category.upper()}"


class CategoryLimitRule:
    """
    Applies approve/review limits to one category.

    amount <= approved_up_to -> approved
    amount <= pending_up_to -> pending
    otherwise -> rejected
    """

    def __init__(
        self,
        category: str = Category.FOOD.value,
        approved_up_to: Union[Decimal, int, str] = 100,
        pending_up_to: Union[Decimal, int, str] = 150,
    ):
        self.category = category
        self.approved_up_to = Decimal(str(approved_up_to))
        self.pending_up_to = Decimal(str(pending_up_to))
        self.alert_code = limit_alert_code(category)

    def to_base_currency(self, expense: Expense, context: RuleContext) -> Decimal:
        """
        Convert the expense amount to the base currency

        Returns:
            Converted amount, or the raw amount when no rate source is set,
            the currency already is the base, or the lookup fails
        """
        if expense.currency == context.base_currency or context.rate_source is None:
            return expense.amount

        try:
            rate = context.rate_source.get_rate(expense.date, expense.currency)
            return expense.amount / Decimal(str(rate))
        except Exception as e:
            logger.warning(
                f"Could not convert {expense.currency} to {context.base_currency} "
                f"for expense {expense.id}, using raw amount: {e}"
            )
            return expense.amount

    def evaluate(self, expense: Expense, employee: Employee, context: RuleContext) -> RuleOutcome:
        if expense.category != self.category:
            return Abstain(f"category is not {self.category}")

        amount = self.to_base_currency(expense, context)

        if amount <= self.approved_up_to:
            return Verdict(expense.id, Decision.APPROVED)

        if amount <= self.pending_up_to:
            return Verdict(
                expense.id,
                Decision.PENDING,
                (Alert(self.alert_code, render_message("category_pending", category=self.category)),),
            )

        return Verdict(
            expense.id,
            Decision.REJECTED,
            (Alert(self.alert_code, render_message("category_rejected", category=self.category)),),
        )
