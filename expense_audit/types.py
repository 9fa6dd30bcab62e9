# -*- coding: utf-8 -*-
"""
Domain types shared by rules, validator and batch analyzer.

Expense and Employee are immutable records built by the batch loader.
A rule returns a RuleOutcome: either a Verdict or an explicit Abstain.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol, Union

from expense_audit.errors import AlertCode


class Category(str, Enum):
    """Expense categories (raw strings outside this set are still accepted)"""

    FOOD = "food"
    TRANSPORT = "transport"
    SOFTWARE = "software"
    OTHER = "other"


class Decision(Enum):
    """Tri-state outcome of policy evaluation"""

    APPROVED = "APPROVED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class Alert:
    """Machine-readable code plus human-readable message"""

    code: str
    message: str

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class Verdict:
    """Decision for one expense plus the alerts explaining it"""

    expense_id: str
    decision: Decision
    alerts: tuple[Alert, ...] = ()

    def with_alerts(self, *alerts: Alert) -> "Verdict":
        """Return a copy with alerts appended; the decision is unchanged."""
        return replace(self, alerts=self.alerts + tuple(alerts))

    def to_dict(self) -> dict:
        return {
            "expense_id": self.expense_id,
            "decision": self.decision.value,
            "alerts": [alert.to_dict() for alert in self.alerts],
        }


@dataclass(frozen=True)
class Abstain:
    """Returned by a rule that does not apply to the expense."""

    reason: str = ""


RuleOutcome = Union[Verdict, Abstain]


@dataclass(frozen=True)
class Expense:
    """Single expense record"""

    id: str
    amount: Decimal          # signed; negative amounts are flagged, not rejected
    currency: str
    date: date
    category: str


@dataclass(frozen=True)
class Employee:
    """Employee submitting an expense"""

    id: str
    name: str
    surname: str
    cost_center: str


class RateSource(Protocol):
    """Anything that can answer "units of currency per 1 base unit on date"."""

    def get_rate(self, rate_date: Union[date, str], currency: str) -> float:
        ...


@dataclass(frozen=True)
class RuleContext:
    """Read-only context handed to every rule"""

    base_currency: str = "USD"
    rate_source: Optional[RateSource] = None


@dataclass
class BatchResult:
    """Aggregate outcome of a batch run, filled in record by record"""

    approved: int = 0
    pending: int = 0
    rejected: int = 0
    anomalies: list[str] = field(default_factory=list)
    results: list[Verdict] = field(default_factory=list)

    def record(self, verdict: Verdict) -> None:
        """Append a per-expense verdict and bump its decision counter."""
        self.results.append(verdict)
        if verdict.decision is Decision.APPROVED:
            self.approved += 1
        elif verdict.decision is Decision.PENDING:
            self.pending += 1
        else:
            self.rejected += 1

    def count_alerts(self, code: str) -> int:
        return sum(1 for verdict in self.results for alert in verdict.alerts if alert.code == code)

    def to_dict(self) -> dict:
        """Serialize for JSON output"""
        return {
            "summary": {
                "approved": self.approved,
                "pending": self.pending,
                "rejected": self.rejected,
                "total_expenses": len(self.results),
                "total_anomalies": len(self.anomalies),
            },
            "results": [verdict.to_dict() for verdict in self.results],
            "anomalies": list(self.anomalies),
            "anomalies_by_type": {
                "duplicates": self.count_alerts(AlertCode.DUPLICATE.value),
                "negative_amounts": self.count_alerts(AlertCode.NEGATIVE_AMOUNT.value),
            },
        }
