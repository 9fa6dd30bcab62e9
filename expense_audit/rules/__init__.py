# -*- coding: utf-8 -*-
"""
Policy rules.

Each rule evaluates one expense/employee pair and returns a Verdict or an
Abstain. Rules are registered into an ordered list (see expense_audit.policy);
that order decides alert ordering when verdicts are merged.
"""

from expense_audit.rules.age import AgeRule
from expense_audit.rules.base import PolicyRule
from expense_audit.rules.category_limit import CategoryLimitRule
from expense_audit.rules.cost_center import CostCenterRule

__all__ = ["AgeRule", "CategoryLimitRule", "CostCenterRule", "PolicyRule"]
