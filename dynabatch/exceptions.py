from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    HTTPClientError,
    ParamValidationError,
    ReadTimeoutError,
)
from botocore.exceptions import ConnectionError as BotoConnectionError


class DynabatchError(Exception):
    """Base exception for all dynabatch errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class TableNotFoundError(DynabatchError):
    """Raised when the DynamoDB table does not exist."""

    def __init__(self, table_name: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Table '{table_name}' not found", original_error)
        self.table_name = table_name


class ItemNotFoundError(DynabatchError):
    """Raised when none of the requested keys exist."""

    def __init__(
        self,
        table_name: str | None = None,
        key_count: int = 0,
        original_error: Exception | None = None,
    ) -> None:
        msg = "Item not found"
        if table_name:
            msg = f"None of the {key_count} requested keys were found in table '{table_name}'"
        super().__init__(msg, original_error)
        self.table_name = table_name
        self.key_count = key_count


class ProvisionedThroughputExceededError(DynabatchError):
    """Raised when DynamoDB throttles requests."""

    def __init__(
        self, message: str = "Request rate exceeded", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class RequestTimeoutError(DynabatchError):
    """Raised when a request to DynamoDB times out."""

    def __init__(
        self, message: str = "Request timed out", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class InternalServerError(DynabatchError):
    """Raised when DynamoDB answers with a server-side (5xx) failure."""

    def __init__(
        self, message: str = "Internal server error", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ValidationError(DynabatchError):
    """Raised for invalid batch definitions and validation errors from DynamoDB."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.field = field
        self.value = value


class BatchCancelledError(DynabatchError):
    """Raised when a caller-owned cancellation signal interrupts a batch."""

    def __init__(
        self, message: str = "Batch get cancelled", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class TransportError(DynabatchError):
    """Raised when DynamoDB could not be reached or the connection dropped."""

    def __init__(
        self,
        message: str = "Connection to DynamoDB failed",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)


# Errors worth sending again: the request itself was fine, the service was not.
RETRYABLE_ERRORS: tuple[type[DynabatchError], ...] = (
    ProvisionedThroughputExceededError,
    RequestTimeoutError,
    InternalServerError,
    TransportError,
)


def is_retryable(error: BaseException) -> bool:
    """Returns True if the transport error may succeed when sent again."""
    return isinstance(error, RETRYABLE_ERRORS)


@contextmanager
def handle_dynamo_errors(table_name: str | None = None) -> Generator[None, None, None]:
    """
    Context manager that catches botocore ClientError and BotoCoreError
    (connection and timeout failures) and raises the appropriate
    DynabatchError subclass.

    Args:
        table_name: Optional table name for better error messages

    Usage:
        with handle_dynamo_errors(table_name="users"):
            client.batch_get_item(...)
    """
    try:
        yield
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_message = e.response.get("Error", {}).get("Message", str(e))
        status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)

        # Handle specific error types
        if error_code == "ResourceNotFoundException":
            raise TableNotFoundError(table_name=table_name or "unknown", original_error=e) from e

        if error_code in (
            "ProvisionedThroughputExceededException",
            "ThrottlingException",
            "RequestLimitExceeded",
        ):
            raise ProvisionedThroughputExceededError(message=error_message, original_error=e) from e

        if error_code in ("ValidationException", "SerializationException"):
            raise ValidationError(message=error_message, original_error=e) from e

        if error_code in ("RequestTimeout", "RequestTimeoutException"):
            raise RequestTimeoutError(message=error_message, original_error=e) from e

        if error_code in ("InternalServerError", "ServiceUnavailable") or status_code >= 500:
            raise InternalServerError(message=error_message, original_error=e) from e

        # Unknown error: wrap in generic DynabatchError
        raise DynabatchError(
            message=f"DynamoDB error ({error_code}): {error_message}", original_error=e
        ) from e
    except (ReadTimeoutError, ConnectTimeoutError) as e:
        raise RequestTimeoutError(message=str(e), original_error=e) from e
    except (BotoConnectionError, HTTPClientError) as e:
        # Endpoint unreachable, connection closed or reset mid-request
        raise TransportError(message=str(e), original_error=e) from e
    except ParamValidationError as e:
        raise ValidationError(message=str(e), original_error=e) from e
    except BotoCoreError as e:
        raise DynabatchError(message=f"botocore error: {e!s}", original_error=e) from e


class DynamoSerializationError(DynabatchError):
    """Raised when serialization to DynamoDB format fails (e.g. unsupported type)."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, original_error)


class DecodeError(DynamoSerializationError):
    """Raised when a fetched item cannot be decoded into the requested type."""

    def __init__(
        self, message: str, item: Any | None = None, original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)
        self.item = item
