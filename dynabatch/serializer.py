from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, cast
from uuid import UUID

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from .exceptions import DynamoSerializationError

# DynamoDB only accepts scalar String, Number or Binary values as key attributes.
KEY_ATTRIBUTE_TYPES = frozenset({"S", "N", "B"})


class DynamoSerializer:
    """
    Handles the conversion between Python values and DynamoDB Low-Level format.

    Architectural Note:
    -------------------
    Batch requests travel through the low-level client, so key values have to be
    sent as DynamoDB JSON ({"S": "..."}), and fetched items come back the same way.
    Boto3's TypeSerializer rejects floats, so values are prepared recursively
    (float -> Decimal, datetime -> ISO string, ...) before serialization and
    restored (Decimal -> int/float) after deserialization.
    """

    def __init__(self) -> None:
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def to_dynamo_value(self, value: Any) -> dict[str, Any]:
        """
        Serializes a single scalar value to DynamoDB format.
        E.g.: 10.5 -> {'N': '10.5'}
        """
        clean_value = self._prepare_for_dynamo(value)
        try:
            result = cast(dict[str, Any], self._serializer.serialize(clean_value))
        except TypeError as e:
            raise DynamoSerializationError(
                f"Failed to serialize value '{value}'. error={e!s}", original_error=e
            ) from e
        return result

    def to_dynamo_key(self, name: str, value: Any) -> dict[str, Any]:
        """
        Serializes a key attribute value.

        Unlike regular attributes, key attributes must be a String, Number or
        Binary: None, booleans, lists, maps and sets are rejected here so the
        error is raised while building the batch instead of by the service.
        """
        serialized = self.to_dynamo_value(value)
        attr_type = next(iter(serialized))
        if attr_type not in KEY_ATTRIBUTE_TYPES:
            raise DynamoSerializationError(
                f"Key attribute '{name}' must be a string, number or binary value, "
                f"got {type(value).__name__} ({attr_type})"
            )
        return serialized

    def from_dynamo(self, item: dict[str, Any]) -> dict[str, Any]:
        """Converts DynamoDB JSON format back to standard Python dict."""
        try:
            python_data = {k: self._deserializer.deserialize(v) for k, v in item.items()}
        except (TypeError, ValueError) as e:
            raise DynamoSerializationError(
                f"Failed to deserialize item. error={e!s}", original_error=e
            ) from e
        result = self._restore_to_python(python_data)
        assert isinstance(result, dict)
        return result

    def _prepare_for_dynamo(self, value: Any) -> Any:
        """
        Recursively prepares Python values for Boto3 TypeSerializer.

        Converts:
        - float -> Decimal (boto3 requirement)
        - datetime/date -> ISO 8601 string
        - UUID -> string
        - Enum -> value
        """
        if isinstance(value, float):
            # Convert to string first to avoid float precision artifacts during Decimal creation
            return Decimal(str(value))
        if isinstance(value, datetime):
            utc_offset = value.utcoffset()
            if utc_offset is not None and utc_offset.total_seconds() == 0:
                # UTC timezone - use 'Z' suffix like Pydantic does
                return value.replace(tzinfo=None).isoformat() + "Z"
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (set, frozenset)):
            return {self._prepare_for_dynamo(v) for v in value}
        if isinstance(value, (list, tuple)):
            return [self._prepare_for_dynamo(v) for v in value]
        if isinstance(value, dict):
            return {k: self._prepare_for_dynamo(v) for k, v in value.items()}
        return value

    def _restore_to_python(self, value: Any) -> Any:
        """
        Recursively restores DynamoDB values to Python-friendly types.

        Converts:
        - Decimal -> int (if whole number) or float
        - Binary -> bytes
        """
        if isinstance(value, Decimal):
            if value % 1 == 0:
                return int(value)
            return float(value)
        if isinstance(value, Binary):
            return bytes(value.value)
        if isinstance(value, set):
            return {self._restore_to_python(v) for v in value}
        if isinstance(value, list):
            return [self._restore_to_python(v) for v in value]
        if isinstance(value, dict):
            return {k: self._restore_to_python(v) for k, v in value.items()}
        return value
