# -*- coding: utf-8 -*-
"""Cost-center exclusion rule."""

from __future__ import annotations

from expense_audit.errors import AlertCode, render_message
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

ENGINEERING_COST_CENTER = "core_engineering"


class CostCenterRule:
    """Rejects a category outright for one cost center, regardless of amount or age."""

    def __init__(self, cost_center: str = ENGINEERING_COST_CENTER, forbidden_category: str = Category.FOOD.value):
        self.cost_center = cost_center
        self.forbidden_category = forbidden_category

    def evaluate(self, expense: Expense, employee: Employee, context: RuleContext) -> RuleOutcome:
        if employee.cost_center != self.cost_center or expense.category != self.forbidden_category:
            return Abstain(f"not a {self.forbidden_category} expense from {self.cost_center}")

        message = render_message("cost_center", cost_center=self.cost_center, category=self.forbidden_category)
        return Verdict(
            expense.id,
            Decision.REJECTED,
            (Alert(AlertCode.COST_CENTER_POLICY.value, message),),
        )
