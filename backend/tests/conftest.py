import asyncio
import inspect
import pathlib
import sys
from typing import Callable, Sequence

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from networth.services.snapshots import MonthlySnapshot  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**pyfuncitem.funcargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


def build_series(start_year: int, start_month: int, values: Sequence[float]) -> list[MonthlySnapshot]:
    """Consecutive monthly snapshots beginning at ``start_year``/``start_month``."""

    snapshots = []
    index = start_year * 12 + start_month - 1
    for offset, value in enumerate(values):
        year, month = divmod(index + offset, 12)
        snapshots.append(MonthlySnapshot(year=year, month=month + 1, total_net_worth=value))
    return snapshots


@pytest.fixture
def make_series() -> Callable[..., list[MonthlySnapshot]]:
    return build_series
