import re
import threading
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from ._logging import logger
from .config import MAX_BATCH_GET_KEYS
from .exceptions import DynabatchError, DynamoSerializationError, ValidationError
from .keys import as_keys
from .serializer import DynamoSerializer

if TYPE_CHECKING:
    from .decoding import Decoder
    from .iterator import BatchGetIterator
    from .table import Batch

M = TypeVar("M", bound=BaseModel)

# "info.ratings[0]" -> segments "info", "ratings" with the "[0]" suffix kept as-is
_PATH_SEGMENT = re.compile(r"^([^\[\]]+)((?:\[\d+\])*)$")


def _fingerprint(key: dict[str, Any]) -> tuple[Any, ...]:
    """
    Identity of a serialized key as the service sees it.
    Numbers compare by value, so {"N": "1"} and {"N": "1.0"} are the same key.
    """
    parts = []
    for name, value in key.items():
        attr_type, raw = next(iter(value.items()))
        if attr_type == "N":
            raw = Decimal(raw).normalize()
        parts.append((name, attr_type, raw))
    return tuple(sorted(parts))


class GetRequest:
    """
    Lookup descriptor for a single item of a batch.

    Holds the serialized primary key. Errors are recorded on the descriptor
    instead of raised so a batch can report them when it is executed.
    """

    def __init__(self, serializer: DynamoSerializer, hash_key: str, value: Any) -> None:
        self.serializer = serializer
        self.key: dict[str, Any] = {}
        self.error: DynabatchError | None = None

        if not hash_key:
            self.error = ValidationError("batch get requires the name of the hash key")
            return
        self._set(hash_key, value)

    def range(self, name: str, value: Any) -> "GetRequest":
        """Adds an equality condition on the range key."""
        self._set(name, value)
        return self

    def _set(self, name: str, value: Any) -> None:
        try:
            self.key[name] = self.serializer.to_dynamo_key(name, value)
        except DynamoSerializationError as e:
            self._set_error(
                ValidationError(
                    f"Invalid value for key attribute '{name}': {e.message}",
                    field=name,
                    value=value,
                    original_error=e,
                )
            )

    def _set_error(self, err: DynabatchError) -> None:
        if self.error is None:
            self.error = err


@dataclass
class PendingRequest:
    """One BatchGetItem call against a single table."""

    table_name: str
    keys: list[dict[str, Any]]
    projection_expression: str | None = None
    expression_attribute_names: dict[str, str] = field(default_factory=dict)
    consistent_read: bool = False

    def with_keys(self, keys: list[dict[str, Any]]) -> "PendingRequest":
        """Same table and options, restricted to `keys`."""
        return replace(self, keys=list(keys))

    def to_request(self) -> dict[str, Any]:
        """Builds the boto3 `batch_get_item` arguments."""
        keys_and_attributes: dict[str, Any] = {"Keys": self.keys}
        if self.projection_expression:
            keys_and_attributes["ProjectionExpression"] = self.projection_expression
            keys_and_attributes["ExpressionAttributeNames"] = self.expression_attribute_names
        if self.consistent_read:
            keys_and_attributes["ConsistentRead"] = True
        return {"RequestItems": {self.table_name: keys_and_attributes}}


def compile_projection(paths: tuple[str, ...]) -> tuple[str, dict[str, str]]:
    """
    Compiles attribute paths into a ProjectionExpression.

    Every path segment is replaced by a placeholder so reserved words
    (e.g. "Year", "Name") can be projected.

    Usage:
        compile_projection(("ID", "info.rating"))
        -> ("#p0, #p1.#p2", {"#p0": "ID", "#p1": "info", "#p2": "rating"})
    """
    names: dict[str, str] = {}
    placeholders: dict[str, str] = {}
    expressions = []

    for path in paths:
        parts = []
        for segment in path.split("."):
            match = _PATH_SEGMENT.match(segment)
            if not match:
                raise ValidationError(
                    f"Invalid projection path '{path}'", field="projection", value=path
                )
            name, index = match.groups()
            if name not in placeholders:
                placeholder = f"#p{len(placeholders)}"
                placeholders[name] = placeholder
                names[placeholder] = name
            parts.append(placeholders[name] + index)
        expressions.append(".".join(parts))

    return ", ".join(expressions), names


class BatchGet:
    """
    Implements the Builder Pattern for a BatchGetItem operation.

    Keys are accumulated with get()/and_() and only turned into a request
    when the batch is iterated. Key errors are sticky: the first one is kept
    and reported when the batch runs, later ones are dropped.

    Usage:
        table.batch("ID", "Month").get(
            Keys(1, "2015-10"), Keys(42, "2015-12"), Keys(42, "1992-02")
        ).all()
    """

    def __init__(self, batch: "Batch", *keys: Any) -> None:
        self.batch = batch
        self.reqs: list[GetRequest] = []
        self.projection: tuple[str, ...] = ()
        self.consistent_read = False
        self.error: DynabatchError | None = batch.key_spec.error
        self._add(keys)

    def and_(self, *keys: Any) -> "BatchGet":
        """Adds more keys to be gotten."""
        self._add(keys)
        return self

    def consistent(self, on: bool = True) -> "BatchGet":
        """
        Makes this batch use strongly consistent reads if `on` is True.
        Reads are eventually consistent by default and cost half as much.
        """
        self.consistent_read = on
        return self

    def project(self, *paths: str) -> "BatchGet":
        """Limits the returned attributes to `paths` (dotted paths are allowed)."""
        self.projection = paths
        return self

    def _add(self, keys: tuple[Any, ...]) -> None:
        spec = self.batch.key_spec
        serializer = self.batch.table.serializer
        for key in keys:
            try:
                keyed = as_keys(key)
            except ValidationError as e:
                self._set_error(e)
                continue
            get = GetRequest(serializer, spec.hash_key, keyed.hash_key)
            if spec.has_range_key and keyed.range_key is not None:
                get.range(spec.range_key, keyed.range_key)
            if get.error is not None:
                self._set_error(get.error)
            self.reqs.append(get)

    def _set_error(self, err: DynabatchError) -> None:
        if self.error is None:
            self.error = err

    def build(self) -> PendingRequest:
        """
        Merges every key of this batch into one request.

        Raises:
            ValidationError: If a key was invalid, the key spec was invalid,
                the batch is empty or too large, or holds the same key twice
        """
        if self.error is not None:
            raise self.error

        table_name = self.batch.table.name
        if not self.reqs:
            raise ValidationError("batch get requires at least one key")
        if len(self.reqs) > MAX_BATCH_GET_KEYS:
            raise ValidationError(
                f"batch get accepts at most {MAX_BATCH_GET_KEYS} keys, got {len(self.reqs)}",
                value=len(self.reqs),
            )

        seen: set[tuple[Any, ...]] = set()
        keys = []
        for get in self.reqs:
            fingerprint = _fingerprint(get.key)
            if fingerprint in seen:
                raise ValidationError("batch get contains duplicate keys", value=get.key)
            seen.add(fingerprint)
            keys.append(get.key)

        pending = PendingRequest(
            table_name=table_name, keys=keys, consistent_read=self.consistent_read
        )
        if self.projection:
            expression, names = compile_projection(self.projection)
            pending.projection_expression = expression
            pending.expression_attribute_names = names

        logger.debug(
            "Built batch get request",
            extra={
                "table": table_name,
                "operation": "batch_get",
                "key_count": len(keys),
                "consistent": self.consistent_read,
                "has_projection": bool(self.projection),
            },
        )
        return pending

    # --- EXECUTION ---

    def iter(
        self, model: type[M] | None = None, decoder: "Decoder[Any] | None" = None
    ) -> "BatchGetIterator[Any]":
        """
        Returns a results iterator for this batch.
        Nothing is sent to DynamoDB until the iterator is advanced.

        Args:
            model: Pydantic model to decode items into (default: the batch's model)
            decoder: Custom decode function; takes precedence over `model`
        """
        from .decoding import resolve_decoder
        from .iterator import BatchGetIterator

        table = self.batch.table
        return BatchGetIterator(
            self,
            decoder=resolve_decoder(table.serializer, model or self.batch.model, decoder),
            transport=table.transport,
            backoff=table.backoff_config,
            sleep=table.sleep,
        )

    def __iter__(self) -> "BatchGetIterator[Any]":
        return self.iter()

    def all(
        self,
        model: type[M] | None = None,
        out: list[Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Any]:
        """
        Executes the batch and collects every item into a list.

        Args:
            model: Pydantic model to decode items into
            out: Existing list to append to (a new list is created otherwise)
            cancel: Event that aborts the batch when set

        Raises:
            ItemNotFoundError: If none of the keys exist
            DynabatchError: Any other error that stopped the batch
        """
        return self.iter(model=model).all(out=out, cancel=cancel)
