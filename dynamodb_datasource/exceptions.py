class DynamoDBDataSourceError(Exception):
    """Base exception for all DynamoDB data source exceptions."""


class DataSourceNotInitializedError(DynamoDBDataSourceError, RuntimeError):
    """Exception raised when an operation runs before `initialize`."""


class ItemNotFoundError(DynamoDBDataSourceError, LookupError):
    """Exception raised when an item is in neither the cache nor the table."""


class CacheError(DynamoDBDataSourceError):
    """Exception raised from the key-value cache.

    The table operation it follows has already completed, only the
    cached copy may be stale or missing.
    """


class CacheWriteError(CacheError):
    """Exception raised when a cache set or delete fails."""

    def __init__(self, message: str, keys: list[str] | None = None) -> None:
        super().__init__(message)
        self.keys = keys or []


class DynamoDBClientError(DynamoDBDataSourceError):
    """Exception raised from a DynamoDB ClientError."""


class DynamoDBInvalidInputError(DynamoDBClientError, ValueError):
    """Exception raised when the input to a function is invalid."""


class DynamoDBProvisionedThroughputExceededError(DynamoDBClientError):
    """Exception raised when the provisioned throughput is exceeded."""


class ConditionalCheckFailedError(DynamoDBClientError):
    """Exception raised when a condition expression evaluates to false."""


class ClientCreationError(DynamoDBClientError):
    """Exception raised when the DynamoDB client cannot be created."""


class TableNotFoundError(DynamoDBClientError, ValueError):
    """Exception raised when the DynamoDB table is not found."""
