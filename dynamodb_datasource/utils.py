from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dynamodb_datasource import constants, exceptions
from dynamodb_datasource.types import CacheKeyItemMap, ItemT, Key, KeySchema


def validate_key_schema(key_schema: KeySchema) -> tuple:
    """Check the key schema has one HASH element and at most one RANGE element.

    :param key_schema: The key schema of the table.
    :return: The key schema as a tuple, partition element first.
    :raises DynamoDBInvalidInputError: If the key schema is malformed.
    """
    partition = [
        element
        for element in key_schema
        if element.get("KeyType") == constants.PARTITION_KEY_TYPE
    ]
    sort = [
        element
        for element in key_schema
        if element.get("KeyType") == constants.RANGE_KEY_TYPE
    ]
    if len(partition) != 1 or len(sort) > 1:
        raise exceptions.DynamoDBInvalidInputError(
            "Key schema needs exactly one HASH and at most one RANGE element, "
            f"got: {list(key_schema)}",
        )
    if len(partition) + len(sort) != len(key_schema):
        raise exceptions.DynamoDBInvalidInputError(
            f"Unknown KeyType in key schema: {list(key_schema)}",
        )
    return (*partition, *sort)


def build_key(key_schema: KeySchema, item: Mapping[str, Any]) -> Key:
    """Extract the primary key attributes of an item.

    :param key_schema: The key schema of the table.
    :param item: The item to read the key attributes from.
    :return: The primary key, in key schema order.
    :raises KeyError: If the item lacks one of the key attributes.
    """
    return {
        element["AttributeName"]: item[element["AttributeName"]]
        for element in key_schema
    }


def build_cache_key(prefix: str, table_name: str, key: Mapping[str, Any]) -> str:
    """Build the cache key of an item, e.g. ``sup:orders:id-o1``."""
    fragments = "-".join(f"{name}-{value}" for name, value in key.items())
    return f"{prefix}{table_name}:{fragments}"


def build_items_cache_map(
    prefix: str,
    table_name: str,
    key_schema: KeySchema,
    items: Iterable[ItemT],
) -> CacheKeyItemMap[ItemT]:
    """Map each item to its cache key.

    Items sharing a primary key overwrite each other, the last one wins.
    """
    return {
        build_cache_key(prefix, table_name, build_key(key_schema, item)): item
        for item in items
    }
