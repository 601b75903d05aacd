"""
Pytest configuration.

Registers the integration marker and command-line option, and provides
shared fixtures for the bill parser tests.
"""

import pytest

from autobook.services.extraction import BillTextParser, ExtractionRules


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real Azure / LLM resources"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring real external services"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def rules():
    """Bundled default extraction rules"""
    return ExtractionRules()


@pytest.fixture
def parser(rules):
    return BillTextParser(rules)
