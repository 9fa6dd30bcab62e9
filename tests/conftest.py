from __future__ import annotations

from pathlib import Path

import pytest

from expense_audit.exchange_rate import MockExchangeRateClient
from expense_audit.types import RuleContext
from tests.test_utils import FIXED_NOW


def _top_level_tests_group(path: Path) -> str | None:
    parts = path.parts
    try:
        tests_index = parts.index("tests")
    except ValueError:
        return None
    if tests_index + 1 >= len(parts):
        return None
    return parts[tests_index + 1]


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    for item in items:
        group = _top_level_tests_group(Path(str(item.fspath)))
        if group == "unit":
            item.add_marker(pytest.mark.unit)
        elif group == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW


@pytest.fixture
def mock_context() -> RuleContext:
    """USD context backed by the offline rate table (no delay)"""
    return RuleContext(base_currency="USD", rate_source=MockExchangeRateClient(delay=0))
