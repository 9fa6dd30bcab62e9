# -*- coding: utf-8 -*-
"""
Error and alert types.

Alert codes are stable identifiers that downstream consumers branch on;
messages are rendered from templates so every rule words them the same way.
"""

from enum import Enum
from typing import Optional


class AlertCode(Enum):
    """Alert codes attached to verdicts"""

    AGE_LIMIT = "LIMITE_ANTIGUEDAD"            # expense too old
    FOOD_LIMIT = "LIMITE_FOOD"                 # food amount above limit
    COST_CENTER_POLICY = "POLITICA_CENTRO_COSTO"
    NEGATIVE_AMOUNT = "MONTO_NEGATIVO"
    DUPLICATE = "DUPLICADO"


# Message templates
ALERT_MESSAGES = {
    "age_pending": "Gasto excede los {days} días. Requiere revisión.",
    "age_rejected": "Gasto excede los {days} días.",
    "category_pending": "Gasto {category} requiere revisión.",
    "category_rejected": "Gasto {category} excede el límite permitido.",
    "cost_center": "{cost_center} no puede reportar gastos {category}.",
    "negative_amount": "Monto negativo en gasto {expense_id}",
    "duplicate": "Duplicado detectado en gasto {expense_id}",
}


def render_message(template_key: str, **kwargs) -> str:
    """Render an alert message template"""
    return ALERT_MESSAGES[template_key].format(**kwargs)


class RateLookupError(Exception):
    """
    Raised when an exchange rate cannot be obtained.

    Covers upstream failures, malformed responses and a currency missing
    from the rate table (including a cached one).
    """

    def __init__(self, message: str, date: Optional[str] = None, currency: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.date = date
        self.currency = currency

    def __str__(self) -> str:
        return self.message


class MalformedRecordError(Exception):
    """Raised when a batch line cannot be turned into an expense record"""

    def __init__(self, line_number: int, line: str, reason: str):
        super().__init__(f"Line {line_number}: {reason}")
        self.line_number = line_number
        self.line = line
        self.reason = reason


class PolicyConfigError(ValueError):
    """Raised when a policy YAML file has a wrong shape or inconsistent thresholds"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message
