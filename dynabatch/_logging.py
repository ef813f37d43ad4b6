import hashlib
import logging
from typing import Any

# Create the library logger
logger = logging.getLogger("dynabatch")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_key(key: dict[str, Any] | Any) -> str:
    """
    Redacts key values for logging.
    Hashes the values so batches can be correlated without revealing PII.
    Wire-format values ({"S": "..."}) are hashed on their inner value.
    """
    try:
        if isinstance(key, dict):
            redacted = {}
            for k, v in key.items():
                if isinstance(v, dict) and len(v) == 1:
                    # DynamoDB JSON: {"S": "value"}
                    v = next(iter(v.values()))
                val_str = str(v).encode("utf-8")
                redacted[k] = hashlib.sha256(val_str).hexdigest()[:8]
            return str(redacted)
        return hashlib.sha256(str(key).encode("utf-8")).hexdigest()[:8]
    except Exception:
        return "<redaction_failed>"


def redact_keys(keys: list[dict[str, Any]], limit: int = 5) -> list[str]:
    """Redacts the first `limit` keys of a batch; the rest are only counted."""
    return [redact_key(k) for k in keys[:limit]]
