from dataclasses import dataclass
from typing import Any, NamedTuple

from pydantic import BaseModel

from .exceptions import ValidationError
from .fields import key_names


class Keys(NamedTuple):
    """
    The primary key of one item to fetch.

    Usage:
        Keys(42)                # hash key only
        Keys(42, "2015-12")     # hash + range key
    """

    hash_key: Any
    range_key: Any = None


def as_keys(key: Any) -> Keys:
    """
    Normalizes the accepted key shapes into a Keys tuple.

    Accepts a Keys instance, a 1- or 2-tuple, any object exposing
    `hash_key` / `range_key` attributes, or a bare scalar (hash key only).
    """
    if isinstance(key, Keys):
        return key
    if isinstance(key, tuple):
        if not 1 <= len(key) <= 2:
            raise ValidationError(
                f"A key tuple holds a hash key and an optional range key, got {len(key)} values",
                value=key,
            )
        return Keys(*key)
    if hasattr(key, "hash_key"):
        return Keys(key.hash_key, getattr(key, "range_key", None))
    return Keys(key)


@dataclass(frozen=True)
class KeySpec:
    """
    Names of the hash key and optional range key used by a batch.

    Construction never raises: supplying too many names stores a
    ValidationError that every batch built from this spec reports on use.
    """

    hash_key: str = ""
    range_key: str = ""
    error: ValidationError | None = None

    @classmethod
    def from_names(cls, *names: str) -> "KeySpec":
        """
        Builds a KeySpec from 0, 1 or 2 attribute names.

        0 names is only meaningful for write batches; 1 is a hash key;
        2 are hash key then range key.
        """
        if len(names) == 0:
            return cls()
        if len(names) == 1:
            return cls(hash_key=names[0])
        if len(names) == 2:
            return cls(hash_key=names[0], range_key=names[1])
        return cls(
            error=ValidationError(
                "batch: you may only provide the name of a hash key and range key, "
                f"got {len(names)} names",
                value=names,
            )
        )

    @classmethod
    def from_model(cls, model_cls: type[BaseModel]) -> "KeySpec":
        """
        Builds a KeySpec from the Key() and SortKey() fields of a model.

        Raises:
            ValueError: If the model has no Key() field
        """
        pk_name, sk_name = key_names(model_cls)
        if not pk_name:
            raise ValueError(f"Model {model_cls.__name__} must have a field defined with Key()")
        return cls(hash_key=pk_name, range_key=sk_name or "")

    @property
    def has_range_key(self) -> bool:
        return bool(self.range_key)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error
