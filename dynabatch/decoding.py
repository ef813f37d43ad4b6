from collections.abc import Callable
from typing import Any, Generic, TypeVar

import pydantic
from pydantic import BaseModel

from .exceptions import DecodeError, DynamoSerializationError
from .serializer import DynamoSerializer

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

# Takes one raw DynamoDB item ({"attr": {"S": "..."}}), returns the decoded value.
Decoder = Callable[[dict[str, Any]], T]


class DictDecoder:
    """Decodes raw items into plain Python dicts."""

    def __init__(self, serializer: DynamoSerializer) -> None:
        self.serializer = serializer

    def __call__(self, item: dict[str, Any]) -> dict[str, Any]:
        try:
            return self.serializer.from_dynamo(item)
        except DynamoSerializationError as e:
            raise DecodeError(e.message, item=item, original_error=e) from e


class ModelDecoder(Generic[M]):
    """
    Decodes raw items into instances of a Pydantic model.

    DynamoDB JSON -> Python dict -> model_validate(); Pydantic validation
    failures are reported as DecodeError.
    """

    def __init__(self, model_cls: type[M], serializer: DynamoSerializer) -> None:
        self.model_cls = model_cls
        self.serializer = serializer

    def __call__(self, item: dict[str, Any]) -> M:
        try:
            raw_data = self.serializer.from_dynamo(item)
            return self.model_cls.model_validate(raw_data)
        except DynamoSerializationError as e:
            raise DecodeError(e.message, item=item, original_error=e) from e
        except pydantic.ValidationError as e:
            raise DecodeError(
                f"Failed to decode item as {self.model_cls.__name__}: "
                f"{e.error_count()} validation error(s)",
                item=item,
                original_error=e,
            ) from e


def resolve_decoder(
    serializer: DynamoSerializer,
    model: type[BaseModel] | None = None,
    decoder: Decoder[Any] | None = None,
) -> Decoder[Any]:
    """Picks the decoder for a batch: explicit decoder > model > plain dict."""
    if decoder is not None:
        return decoder
    if model is not None:
        return ModelDecoder(model, serializer)
    return DictDecoder(serializer)
