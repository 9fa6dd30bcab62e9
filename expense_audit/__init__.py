# -*- coding: utf-8 -*-
"""
Expense policy evaluation package.

Validates expense records against reimbursement policies and classifies each
one as approved, pending or rejected, then aggregates a batch and flags
cross-record anomalies (duplicates, negative amounts).

Usage:
    from expense_audit.policy import load_policy, build_rules
    from expense_audit.validator import ExpenseValidator
    from expense_audit.batch_analyzer import BatchAnalyzer
"""
