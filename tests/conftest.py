"""
Shared pytest fixtures and configuration for dynabatch tests.

This module provides common fixtures used across unit and integration tests,
including mocked boto3 clients, recorded sleeps, LocalStack clients, and test
model definitions.
"""

import os
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.config import Config
from pydantic import BaseModel, ConfigDict

from dynabatch import BackoffConfig, Key, SortKey, Table, set_client
from tests.helpers.responses import Sleeps

if TYPE_CHECKING:
    from tests.helpers.localstack import LocalStackHelper


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests against LocalStack")


class MonthlyReport(BaseModel):
    """Model keyed by ID (hash) and Month (range), as in the BatchGetItem docs examples."""

    id: int = Key(alias="ID")
    month: str = SortKey(alias="Month")
    views: int = 0

    model_config = ConfigDict(populate_by_name=True)


@pytest.fixture(autouse=True)
def reset_default_client():
    """Prevents a global client injected by one test from leaking into the next."""
    yield
    set_client(None)


@pytest.fixture
def mock_client():
    """
    Creates a fully mocked boto3 DynamoDB client.

    Tests configure `batch_get_item.return_value` or `.side_effect`.
    """
    return MagicMock()


@pytest.fixture
def sleeps() -> Sleeps:
    return Sleeps()


@pytest.fixture
def reports_table(mock_client, sleeps) -> Table:
    """A table backed by the mock client whose backoff waits are recorded, not slept."""
    return Table(
        "Reports",
        client=mock_client,
        backoff=BackoffConfig(randomization_factor=0.0),
        sleep=sleeps,
    )


@pytest.fixture
def report_model() -> type[MonthlyReport]:
    return MonthlyReport


@pytest.fixture
def requested_keys() -> list[tuple[int, str]]:
    return [(1, "2015-10"), (42, "2015-12"), (42, "1992-02")]


# Integration Test Fixtures


@pytest.fixture(scope="session")
def localstack_endpoint() -> str:
    """Get LocalStack endpoint URL from environment or default."""
    return os.getenv("LOCALSTACK_ENDPOINT", "http://localhost:4566")


@pytest.fixture(scope="session")
def localstack_client(localstack_endpoint: str):
    """
    Creates a boto3 client connected to LocalStack.

    This fixture is session-scoped to avoid creating multiple clients.
    Integration tests are skipped when LocalStack is not reachable.
    """
    client = boto3.client(
        "dynamodb",
        endpoint_url=localstack_endpoint,
        region_name="eu-south-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
        config=Config(connect_timeout=2, retries={"max_attempts": 1}),
    )
    try:
        client.list_tables(Limit=1)
    except Exception as e:
        pytest.skip(f"LocalStack not reachable at {localstack_endpoint}: {e}")
    return client


@pytest.fixture(scope="session")
def localstack_helper(localstack_client, localstack_endpoint: str) -> "LocalStackHelper":
    """Provides a LocalStackHelper instance for integration tests."""
    from tests.helpers.localstack import LocalStackHelper

    return LocalStackHelper(endpoint_url=localstack_endpoint)


@pytest.fixture
def integration_reports_table(localstack_helper, localstack_client):
    """
    Creates a fresh ID/Month table in LocalStack and cleans up after.
    """
    table_name = "integration_test_reports"
    localstack_helper.create_table(
        table_name=table_name, pk_name="ID", pk_type="N", sk_name="Month", sk_type="S"
    )
    localstack_helper.clear_table(table_name=table_name, pk_name="ID", sk_name="Month")

    yield Table(table_name, client=localstack_client)

    localstack_helper.clear_table(table_name=table_name, pk_name="ID", sk_name="Month")
