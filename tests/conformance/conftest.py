"""Pytest configuration for the minilang conformance suite."""

import pytest
from tests.conformance.runners.parser_runner import SourceRunner, StagedRunner

RUNNERS = (SourceRunner, StagedRunner)


def get_available_runners():
    """Instantiate every runner the suite is checked against."""
    return [cls() for cls in RUNNERS]


@pytest.fixture(params=get_available_runners(), ids=lambda r: r.name)
def runner(request):
    """Conformance runner, parametrised over both entry points.

    - source: one ``parse_source`` call with a shared collector
    - staged: ``tokenize`` and ``parse`` called separately
    """
    return request.param


@pytest.fixture
def expect_outcome():
    """Assert that a result matches ``"valid"`` or ``"error: <text>"``."""

    def check(result, expected):
        if expected == "valid":
            assert result.valid, f"Expected valid but got errors: {result.diagnostics}"
            return
        assert not result.valid, "Expected error but got valid"
        error_text = expected.removeprefix("error: ").lower()
        assert any(error_text in d.lower() for d in result.diagnostics), \
            f"Expected '{error_text}' in diagnostics: {result.diagnostics}"

    return check
