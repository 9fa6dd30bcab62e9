# -*- coding: utf-8 -*-
"""
Policy configuration.

Loads reimbursement thresholds from YAML (expense_audit/config/policy.yaml by
default) and builds the ordered rule list the validator runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

from expense_audit.errors import PolicyConfigError
from expense_audit.rules import AgeRule, CategoryLimitRule, CostCenterRule, PolicyRule

logger = logging.getLogger(__name__)

DEFAULT_POLICY_PATH = Path(__file__).resolve().parent / "config" / "policy.yaml"


@dataclass(frozen=True)
class CategoryLimit:
    approved_up_to: Decimal
    pending_up_to: Decimal


@dataclass(frozen=True)
class CostCenterRestriction:
    cost_center: str
    forbidden_category: str


@dataclass(frozen=True)
class Policy:
    """Reimbursement thresholds; defaults match the shipped policy.yaml"""

    base_currency: str = "USD"
    pending_after_days: int = 30
    rejected_after_days: int = 60
    category_limits: dict[str, CategoryLimit] = field(
        default_factory=lambda: {"food": CategoryLimit(Decimal("100"), Decimal("150"))}
    )
    cost_center_rules: tuple[CostCenterRestriction, ...] = (
        CostCenterRestriction("core_engineering", "food"),
    )

    @classmethod
    def from_dict(cls, data: dict) -> "Policy":
        """
        Build a policy from parsed YAML, falling back to defaults per section

        Raises:
            PolicyConfigError: a section has the wrong shape, a value is not
                numeric, or a lower bound is above its upper bound
        """
        defaults = cls()
        data = _mapping(data, "policy")
        age_limit = _mapping(data.get("age_limit") or {}, "age_limit")

        pending_after_days = _number(
            age_limit.get("pending_after_days", defaults.pending_after_days), "age_limit.pending_after_days", int
        )
        rejected_after_days = _number(
            age_limit.get("rejected_after_days", defaults.rejected_after_days), "age_limit.rejected_after_days", int
        )
        if pending_after_days > rejected_after_days:
            raise PolicyConfigError(
                f"age_limit.pending_after_days ({pending_after_days}) is above "
                f"rejected_after_days ({rejected_after_days})"
            )

        category_limits = defaults.category_limits
        if "category_limits" in data:
            category_limits = {
                category: _category_limit(category, limits)
                for category, limits in _mapping(data.get("category_limits") or {}, "category_limits").items()
            }

        cost_center_rules = defaults.cost_center_rules
        if "cost_center_rules" in data:
            items = data.get("cost_center_rules") or []
            if not isinstance(items, list):
                raise PolicyConfigError(f"cost_center_rules must be a list, got {type(items).__name__}")
            cost_center_rules = tuple(
                CostCenterRestriction(
                    _required(item, "cost_center", f"cost_center_rules[{index}]"),
                    _required(item, "forbidden_category", f"cost_center_rules[{index}]"),
                )
                for index, item in enumerate(items)
            )

        return cls(
            base_currency=data.get("base_currency") or defaults.base_currency,
            pending_after_days=pending_after_days,
            rejected_after_days=rejected_after_days,
            category_limits=category_limits,
            cost_center_rules=cost_center_rules,
        )


def _mapping(value, section: str) -> dict:
    if not isinstance(value, dict):
        raise PolicyConfigError(f"{section} must be a mapping, got {type(value).__name__}")
    return value


def _required(item, key: str, section: str):
    item = _mapping(item, section)
    if item.get(key) is None:
        raise PolicyConfigError(f"{section} is missing '{key}'")
    return item[key]


def _number(value, where: str, kind=Decimal):
    if isinstance(value, bool):
        raise PolicyConfigError(f"{where} is not numeric: {value!r}")
    try:
        number = kind(str(value)) if kind is Decimal else kind(value)
    except (ArithmeticError, TypeError, ValueError):
        raise PolicyConfigError(f"{where} is not numeric: {value!r}")
    if kind is Decimal and not number.is_finite():
        raise PolicyConfigError(f"{where} is not finite: {value!r}")
    return number


def _category_limit(category: str, limits) -> CategoryLimit:
    section = f"category_limits.{category}"
    limit = CategoryLimit(
        _number(_required(limits, "approved_up_to", section), f"{section}.approved_up_to"),
        _number(_required(limits, "pending_up_to", section), f"{section}.pending_up_to"),
    )
    if limit.approved_up_to > limit.pending_up_to:
        raise PolicyConfigError(
            f"{section}.approved_up_to ({limit.approved_up_to}) is above pending_up_to ({limit.pending_up_to})"
        )
    return limit


@lru_cache(maxsize=4)
def _load_policy_yaml(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Policy file {config_path} not found, using default thresholds")
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise PolicyConfigError(f"invalid YAML: {e}", path=path) from e


def load_policy(path: Optional[str] = None) -> Policy:
    """
    Load the reimbursement policy

    Args:
        path: YAML file path (defaults to the packaged policy.yaml)

    Returns:
        Policy with any missing section filled from defaults

    Raises:
        PolicyConfigError: unreadable YAML or invalid thresholds
    """
    policy_path = str(path or DEFAULT_POLICY_PATH)
    data = _load_policy_yaml(policy_path)
    try:
        return Policy.from_dict(data)
    except PolicyConfigError as e:
        logger.error(f"Invalid policy file {policy_path}: {e}")
        raise PolicyConfigError(e.message, path=policy_path) from e


def build_rules(policy: Policy) -> list[PolicyRule]:
    """
    Build the ordered rule list: category limits, cost-center exclusions, age

    The order decides alert ordering when verdicts are merged.
    """
    rules: list[PolicyRule] = [
        CategoryLimitRule(category, limit.approved_up_to, limit.pending_up_to)
        for category, limit in policy.category_limits.items()
    ]
    rules.extend(
        CostCenterRule(restriction.cost_center, restriction.forbidden_category)
        for restriction in policy.cost_center_rules
    )
    rules.append(AgeRule(policy.pending_after_days, policy.rejected_after_days))
    return rules
