from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from expense_audit.types import Decision, Employee, Expense, Verdict

FIXED_NOW = datetime(2025, 11, 30, 12, 0, tzinfo=ZoneInfo("UTC"))

CSV_HEADER = "expense_id,employee_id,first_name,last_name,cost_center,category,amount,currency,date"


def make_expense(
    expense_id: str = "g_001",
    amount: str | int | Decimal = "50",
    currency: str = "USD",
    expense_date: date | None = None,
    category: str = "food",
) -> Expense:
    return Expense(
        id=expense_id,
        amount=Decimal(str(amount)),
        currency=currency,
        date=expense_date or FIXED_NOW.date(),
        category=category,
    )


def make_employee(cost_center: str = "sales_team", employee_id: str = "e_001") -> Employee:
    return Employee(id=employee_id, name="Juan", surname="Perez", cost_center=cost_center)


def days_ago(days: int) -> date:
    return FIXED_NOW.date() - timedelta(days=days)


def make_rates_response(rates: dict | None = None, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    response.json.return_value = {
        "disclaimer": "Usage subject to terms",
        "base": "USD",
        "rates": rates if rates is not None else {"USD": 1, "CLP": 950, "EUR": 0.85},
    }
    return response


def csv_lines(*rows: str) -> list[str]:
    return [CSV_HEADER, *rows]


class StaticRule:
    """Rule stub returning a preset outcome"""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = 0

    def evaluate(self, expense, employee, context):
        self.calls += 1
        return self.outcome


class ScriptedValidator:
    """Validator stub returning preset verdicts per expense id (approved by default)"""

    def __init__(self, verdicts: dict[str, Verdict] | None = None):
        self.verdicts = verdicts or {}
        self.calls: list[str] = []

    def validate(self, expense, employee) -> Verdict:
        self.calls.append(expense.id)
        return self.verdicts.get(expense.id, Verdict(expense.id, Decision.APPROVED))
