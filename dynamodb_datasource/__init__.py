from dynamodb_datasource.cache import DynamoDBCache
from dynamodb_datasource.client import DynamoDBDocumentClient
from dynamodb_datasource.constants import CACHE_PREFIX_KEY, TTL_SEC
from dynamodb_datasource.datasource import DynamoDBDataSource
from dynamodb_datasource.types import ItemsDetails, ItemsList, KeySchemaElement

__all__ = [
    "CACHE_PREFIX_KEY",
    "TTL_SEC",
    "DynamoDBCache",
    "DynamoDBDataSource",
    "DynamoDBDocumentClient",
    "ItemsDetails",
    "ItemsList",
    "KeySchemaElement",
]
