from .backoff import ExponentialBackoff
from .config import MAX_BATCH_GET_KEYS, BackoffConfig
from .decoding import DictDecoder, ModelDecoder
from .exceptions import (
    BatchCancelledError,
    DecodeError,
    DynabatchError,
    DynamoSerializationError,
    InternalServerError,
    ItemNotFoundError,
    ProvisionedThroughputExceededError,
    RequestTimeoutError,
    TableNotFoundError,
    TransportError,
    ValidationError,
)
from .fields import Key, SortKey
from .iterator import BatchGetIterator, IterState
from .keys import Keys, KeySpec
from .pagination import ResponsePage
from .request import BatchGet, PendingRequest
from .table import Batch, Table
from .transport import ClientTransport, get_client, set_client, using_client

__all__ = [
    "Table",
    "Batch",
    "BatchGet",
    "BatchGetIterator",
    "IterState",
    "Keys",
    "KeySpec",
    "Key",
    "SortKey",
    "PendingRequest",
    "ResponsePage",
    # Decoding
    "DictDecoder",
    "ModelDecoder",
    # Backoff & transport
    "BackoffConfig",
    "ExponentialBackoff",
    "MAX_BATCH_GET_KEYS",
    "ClientTransport",
    "get_client",
    "set_client",
    "using_client",
    # Exceptions
    "DynabatchError",
    "TableNotFoundError",
    "TransportError",
    "ItemNotFoundError",
    "ProvisionedThroughputExceededError",
    "RequestTimeoutError",
    "InternalServerError",
    "ValidationError",
    "DynamoSerializationError",
    "DecodeError",
    "BatchCancelledError",
]
