# -*- coding: utf-8 -*-
"""
Batch expense analyzer

Streams expense records in input order, validates each one and annotates
cross-record anomalies:
- MONTO_NEGATIVO: amount below zero
- DUPLICADO: (amount, currency, date) already seen earlier in the batch

Anomalies only add alerts; they never change a verdict's decision.

Record format (after a header line, which is always skipped):
    expense_id,employee_id,first_name,last_name,cost_center,category,amount,currency,date
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, Union

from expense_audit.errors import AlertCode, MalformedRecordError, render_message
from expense_audit.types import Alert, BatchResult, Employee, Expense
from expense_audit.validator import ExpenseValidator

logger = logging.getLogger(__name__)

FIELD_COUNT = 9

DuplicateKey = tuple[Decimal, str, date]

# Plain signed decimal, optional exponent; no underscores, NaN or Infinity
_AMOUNT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_record(line: str, line_number: int = 0) -> tuple[Expense, Employee]:
    """
    Parse one CSV data line into an expense and its employee

    Args:
        line: Raw line (fields are trimmed)
        line_number: 1-based line number, for error messages

    Returns:
        (Expense, Employee)

    Raises:
        MalformedRecordError: wrong field count, non-numeric amount or invalid date
    """
    # Nine plain fields, never quoted, so no field can contain a comma
    parts = [part.strip() for part in line.split(",")]
    if len(parts) != FIELD_COUNT:
        raise MalformedRecordError(line_number, line, f"expected {FIELD_COUNT} fields, got {len(parts)}")

    expense_id, employee_id, name, surname, cost_center, category, raw_amount, currency, raw_date = parts

    if not _AMOUNT_RE.match(raw_amount):
        raise MalformedRecordError(line_number, line, f"amount is not numeric: {raw_amount!r}")
    amount = Decimal(raw_amount)

    try:
        expense_date = date.fromisoformat(raw_date)
    except ValueError:
        raise MalformedRecordError(line_number, line, f"invalid date: {raw_date!r}")

    expense = Expense(
        id=expense_id,
        amount=amount,
        currency=currency,
        date=expense_date,
        category=category,
    )
    employee = Employee(
        id=employee_id,
        name=name,
        surname=surname,
        cost_center=cost_center,
    )
    return expense, employee


def iter_records(lines: Iterable[str]) -> Iterator[tuple[int, Expense, Employee]]:
    """Yield (line_number, expense, employee), skipping the header and blank lines"""
    for line_number, line in enumerate(lines, start=1):
        if line_number == 1 or not line.strip():
            continue
        expense, employee = parse_record(line.rstrip("\r\n"), line_number)
        yield line_number, expense, employee


def duplicate_key(expense: Expense) -> DuplicateKey:
    # Employee and category are deliberately not part of the key
    return (expense.amount, expense.currency, expense.date)


class BatchAnalyzer:
    """Validates a batch of expense records and flags anomalies"""

    def __init__(self, validator: ExpenseValidator):
        self.validator = validator

    def analyze(self, lines: Iterable[str]) -> BatchResult:
        """
        Analyze a stream of CSV lines

        Args:
            lines: Header line followed by data lines

        Returns:
            BatchResult with counts, anomaly strings and per-expense verdicts

        Raises:
            MalformedRecordError: on the first line that cannot be parsed
        """
        result = BatchResult()
        seen: set[DuplicateKey] = set()

        for _, expense, employee in iter_records(lines):
            key = duplicate_key(expense)
            is_duplicate = key in seen
            seen.add(key)

            verdict = self.validator.validate(expense, employee)

            anomaly_alerts = []
            if expense.amount < 0:
                message = render_message("negative_amount", expense_id=expense.id)
                anomaly_alerts.append(Alert(AlertCode.NEGATIVE_AMOUNT.value, message))

            if is_duplicate:
                message = render_message("duplicate", expense_id=expense.id)
                anomaly_alerts.append(Alert(AlertCode.DUPLICATE.value, message))

            for alert in anomaly_alerts:
                logger.warning(f"Anomaly [{alert.code}] {alert.message}")
                result.anomalies.append(alert.message)

            result.record(verdict.with_alerts(*anomaly_alerts))

        logger.info(
            f"Batch analyzed: {len(result.results)} expenses, "
            f"{result.approved} approved, {result.pending} pending, {result.rejected} rejected, "
            f"{len(result.anomalies)} anomalies"
        )
        return result

    def analyze_file(self, path: Union[str, Path]) -> BatchResult:
        """Analyze a CSV file"""
        with open(path, "r", encoding="utf-8") as f:
            return self.analyze(f)
