from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import boto3

from ._logging import logger
from .exceptions import handle_dynamo_errors

# Sends one BatchGetItem request and returns the raw response.
# Failures are raised as DynabatchError subclasses.
Transport = Callable[[dict[str, Any]], dict[str, Any]]

_client: Any | None = None
_client_context: ContextVar[Any | None] = ContextVar("dynabatch_client", default=None)


def get_client(region: str | None = None) -> Any:
    """
    Returns the Boto3 DynamoDB client used by tables without an explicit client.

    Resolution order:
    1. Client scoped with using_client() (thread-safe/async-safe override)
    2. Global client injected with set_client()
    3. Lazily created boto3.client("dynamodb")
    """
    ctx_client = _client_context.get()
    if ctx_client is not None:
        return ctx_client

    global _client
    if _client is None:
        kwargs = {"region_name": region} if region else {}
        _client = boto3.client("dynamodb", **kwargs)
    return _client


def set_client(client: Any | None) -> None:
    """
    Injects the global default client. Passing None drops it so the
    next call to get_client() creates a fresh one.
    """
    global _client
    _client = client


@contextmanager
def using_client(client: Any) -> Generator[None, None, None]:
    """
    Context manager to scope a client to a block of code.
    Thread-safe and Async-safe using contextvars.

    Usage:
        with using_client(my_client):
            table.batch("ID").get(1, 2, 3).all()
    """
    token = _client_context.set(client)
    try:
        yield
    finally:
        _client_context.reset(token)


class ClientTransport:
    """
    Default transport: calls `batch_get_item` on a Boto3 DynamoDB client.

    With no explicit client the client is resolved on every call, so
    using_client() blocks apply to batches created outside of them.
    """

    def __init__(
        self, table_name: str, client: Any | None = None, region: str | None = None
    ) -> None:
        self.table_name = table_name
        self.client = client
        self.region = region

    def __call__(self, request: dict[str, Any]) -> dict[str, Any]:
        client = self.client if self.client is not None else get_client(self.region)
        logger.debug(
            "Sending batch_get_item",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "key_count": len(request["RequestItems"].get(self.table_name, {}).get("Keys", [])),
            },
        )
        with handle_dynamo_errors(table_name=self.table_name):
            response: dict[str, Any] = client.batch_get_item(**request)
        return response
