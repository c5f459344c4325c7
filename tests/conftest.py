# tests/conftest.py

import pytest

from clustercost.models.prometheus_metrics import QueryResult, Vector


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Pytest fixture to mock environment variables for the config module.

    This fixture runs automatically for every test (`autouse=True`) so that
    the configuration seen by the code under test does not depend on the
    developer's environment.
    """
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.delenv("CLOUD_PROVIDER", raising=False)


def make_result(value=None, values=None, **labels):
    """
    Helper to build a QueryResult from labels and samples.

    `value` adds a single sample at timestamp 0; `values` takes (ts, value) pairs.
    """
    if values is None:
        values = [] if value is None else [(0, value)]
    return QueryResult(metric=labels, values=[Vector(timestamp=ts, value=v) for ts, v in values])


@pytest.fixture
def result_factory():
    return make_result
