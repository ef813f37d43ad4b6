from typing import Any

from pydantic import BaseModel, Field


def Key(default: Any = ..., **kwargs: Any) -> Any:
    """
    Marks a Pydantic field as the table's hash key (Partition Key).

    Usage:
        id: int = Key()

    Architectural Note:
    -------------------
    This function wraps the standard Pydantic Field. It injects a hidden flag
    ('_dynamo_pk') into 'json_schema_extra'. KeySpec.from_model() inspects this
    flag to find the key names of a model without requiring them to be repeated
    when a batch is created.
    """
    # Extract existing extra dict or create new one
    json_schema_extra = kwargs.pop("json_schema_extra", {})

    # Inject our internal flag
    json_schema_extra["_dynamo_pk"] = True

    # The '...' (Ellipsis) is Pydantic's way of saying "Required field" if no default is provided.
    return Field(default, json_schema_extra=json_schema_extra, **kwargs)


def SortKey(default: Any = ..., **kwargs: Any) -> Any:
    """Marks a Pydantic field as the table's range key (Sort Key)."""
    json_schema_extra = kwargs.pop("json_schema_extra", {})
    json_schema_extra["_dynamo_sk"] = True
    return Field(default, json_schema_extra=json_schema_extra, **kwargs)


def key_names(model_cls: type[BaseModel]) -> tuple[str | None, str | None]:
    """
    Scans a model's fields for Key() and SortKey() markers.

    Returns:
        (hash_key_name, range_key_name); the alias is used when one is set,
        since that is the attribute name stored in DynamoDB.

    Raises:
        ValueError: If more than one field carries the same marker
    """
    pk_name: str | None = None
    sk_name: str | None = None

    for field_name, field_info in model_cls.model_fields.items():
        extra = field_info.json_schema_extra
        if not isinstance(extra, dict):
            continue

        dynamo_name = field_info.alias or field_name
        if extra.get("_dynamo_pk"):
            if pk_name is not None:
                raise ValueError(
                    f"Model {model_cls.__name__} can have only one field defined with Key()"
                )
            pk_name = dynamo_name
        elif extra.get("_dynamo_sk"):
            if sk_name is not None:
                raise ValueError(
                    f"Model {model_cls.__name__} can have only one field defined with SortKey()"
                )
            sk_name = dynamo_name

    return pk_name, sk_name
