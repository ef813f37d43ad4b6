import time
from typing import Any

from pydantic import BaseModel

from .backoff import Sleep
from .config import DEFAULT_BACKOFF, BackoffConfig
from .keys import KeySpec
from .request import BatchGet
from .serializer import DynamoSerializer
from .transport import ClientTransport, Transport


class Table:
    """
    A DynamoDB table that batches are run against.

    Args:
        name: Table name
        client: Boto3 DynamoDB client (default: resolved with get_client())
        region: Region used when a default client has to be created
        transport: Replaces the client transport entirely (e.g. for tests)
        backoff: Backoff parameters for unprocessed keys and transport retries
        sleep: Function used to wait between attempts

    Usage:
        table = Table("Movies")
        movies = table.batch("year", "title").get((2013, "Rush"), (2014, "Interstellar")).all()
    """

    def __init__(
        self,
        name: str,
        client: Any | None = None,
        region: str | None = None,
        transport: Transport | None = None,
        backoff: BackoffConfig | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.name = name
        self.serializer = DynamoSerializer()
        if transport is None:
            transport = ClientTransport(name, client=client, region=region)
        self.transport: Transport = transport
        self.backoff_config = backoff or DEFAULT_BACKOFF
        self.sleep = sleep

    def batch(self, *key_names: str) -> "Batch":
        """
        Creates a batch with the given hash key name, and range key name if provided.
        Too many names is reported when the batch is run, not here.
        """
        return Batch(self, KeySpec.from_names(*key_names))

    def batch_for(self, model_cls: type[BaseModel]) -> "Batch":
        """
        Creates a batch keyed by the Key()/SortKey() fields of `model_cls`.
        Items are decoded into `model_cls` unless told otherwise.
        """
        return Batch(self, KeySpec.from_model(model_cls), model=model_cls)

    def __repr__(self) -> str:
        return f"Table({self.name!r})"


class Batch:
    """Key names of a table, ready to start batch operations."""

    def __init__(
        self, table: Table, key_spec: KeySpec, model: type[BaseModel] | None = None
    ) -> None:
        self.table = table
        self.key_spec = key_spec
        self.model = model

    def get(self, *keys: Any) -> BatchGet:
        """
        Creates a new batch get request for the given keys.

        Usage:
            table.batch("ID", "Month").get(Keys(1, "2015-10"), Keys(42, "2015-12")).all()
        """
        return BatchGet(self, *keys)
