"""
Response pages of a BatchGetItem operation.

A batch may come back over several pages: each page carries the items the
service managed to read and the keys it did not get to, which have to be
requested again.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResponsePage:
    """
    Represents a single BatchGetItem response for one table.

    Attributes:
        items: Raw DynamoDB items returned in this page (in service order)
        unprocessed_keys: Keys to request again (empty if the batch is complete)
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    unprocessed_keys: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_more(self) -> bool:
        """Returns True if some keys of the request were not processed."""
        return len(self.unprocessed_keys) > 0

    @property
    def count(self) -> int:
        return len(self.items)

    @classmethod
    def from_response(cls, response: dict[str, Any], table_name: str) -> "ResponsePage":
        """Extracts the page for `table_name` from a raw batch_get_item response."""
        items = (response.get("Responses") or {}).get(table_name) or []
        unprocessed = (response.get("UnprocessedKeys") or {}).get(table_name) or {}
        return cls(items=list(items), unprocessed_keys=list(unprocessed.get("Keys") or []))
