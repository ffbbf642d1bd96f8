from decimal import Decimal

import pytest
from conftest import COMPOSITE_KEY_SCHEMA, HASH_ONLY_KEY_SCHEMA

from dynamodb_datasource import CACHE_PREFIX_KEY, exceptions, utils


def test_build_key_hash_only() -> None:
    """Only the key attributes of the item are kept."""
    item = {"id": "testId", "test": "testing"}
    assert utils.build_key(HASH_ONLY_KEY_SCHEMA, item) == {"id": "testId"}


def test_build_key_composite_follows_schema_order() -> None:
    """Composite keys list the partition key before the sort key."""
    item = {"timestamp": "2020-01-01", "test": "testing", "id": "testId"}
    key = utils.build_key(COMPOSITE_KEY_SCHEMA, item)
    assert list(key.items()) == [("id", "testId"), ("timestamp", "2020-01-01")]


def test_build_key_missing_attribute() -> None:
    """An item without every key attribute has no key."""
    with pytest.raises(KeyError):
        utils.build_key(COMPOSITE_KEY_SCHEMA, {"id": "testId"})


def test_build_cache_key() -> None:
    """Cache keys join the prefix, the table and the key attributes."""
    assert (
        utils.build_cache_key(CACHE_PREFIX_KEY, "test", {"id": "testId"})
        == "sup:test:id-testId"
    )
    assert (
        utils.build_cache_key(
            "prefix:",
            "test_composite",
            {"id": "testId", "timestamp": "2020-01-01"},
        )
        == "prefix:test_composite:id-testId-timestamp-2020-01-01"
    )


def test_build_cache_key_is_deterministic() -> None:
    """The same item always maps to the same cache key."""
    item = {"id": "testId", "timestamp": "2020-01-01", "test": "testing"}
    first = utils.build_cache_key(
        CACHE_PREFIX_KEY,
        "test",
        utils.build_key(COMPOSITE_KEY_SCHEMA, item),
    )
    second = utils.build_cache_key(
        CACHE_PREFIX_KEY,
        "test",
        utils.build_key(COMPOSITE_KEY_SCHEMA, dict(item)),
    )
    assert first == second


def test_build_cache_key_numbers_from_table_and_caller_match() -> None:
    """Numbers read from DynamoDB are Decimals, callers usually pass ints."""
    assert utils.build_cache_key(
        CACHE_PREFIX_KEY,
        "test",
        {"id": Decimal("10")},
    ) == utils.build_cache_key(CACHE_PREFIX_KEY, "test", {"id": 10})


@pytest.mark.parametrize(
    "other",
    [
        {"id": "testId2", "timestamp": "2020-01-01"},
        {"id": "testId", "timestamp": "2020-01-02"},
    ],
)
def test_build_cache_key_distinct_keys(other: dict) -> None:
    """Items with different keys get different cache keys."""
    key = {"id": "testId", "timestamp": "2020-01-01"}
    assert utils.build_cache_key(
        CACHE_PREFIX_KEY,
        "test",
        key,
    ) != utils.build_cache_key(CACHE_PREFIX_KEY, "test", other)


def test_build_items_cache_map_empty() -> None:
    """No items make an empty map."""
    assert (
        utils.build_items_cache_map(CACHE_PREFIX_KEY, "test", HASH_ONLY_KEY_SCHEMA, [])
        == {}
    )


def test_build_items_cache_map() -> None:
    """Each item is mapped under its own cache key."""
    items = [{"id": f"testId{i}", "test": f"testing{i}"} for i in range(3)]
    actual = utils.build_items_cache_map(
        CACHE_PREFIX_KEY,
        "test",
        HASH_ONLY_KEY_SCHEMA,
        items,
    )
    assert actual == {
        "sup:test:id-testId0": items[0],
        "sup:test:id-testId1": items[1],
        "sup:test:id-testId2": items[2],
    }


def test_build_items_cache_map_duplicate_keys_last_wins() -> None:
    """The last item wins when two items share a key."""
    items = [{"id": "testId", "test": "first"}, {"id": "testId", "test": "last"}]
    actual = utils.build_items_cache_map(
        CACHE_PREFIX_KEY,
        "test",
        HASH_ONLY_KEY_SCHEMA,
        items,
    )
    assert actual == {"sup:test:id-testId": {"id": "testId", "test": "last"}}


def test_validate_key_schema_puts_partition_first() -> None:
    """The partition key element is returned first."""
    schema = [
        {"AttributeName": "timestamp", "KeyType": "RANGE"},
        {"AttributeName": "id", "KeyType": "HASH"},
    ]
    assert utils.validate_key_schema(schema) == (schema[1], schema[0])


@pytest.mark.parametrize(
    "schema",
    [
        [],
        [{"AttributeName": "timestamp", "KeyType": "RANGE"}],
        [
            {"AttributeName": "id", "KeyType": "HASH"},
            {"AttributeName": "other", "KeyType": "HASH"},
        ],
        [
            {"AttributeName": "id", "KeyType": "HASH"},
            {"AttributeName": "a", "KeyType": "RANGE"},
            {"AttributeName": "b", "KeyType": "RANGE"},
        ],
        [
            {"AttributeName": "id", "KeyType": "HASH"},
            {"AttributeName": "a", "KeyType": "SORT"},
        ],
    ],
)
def test_validate_key_schema_invalid(schema: list) -> None:
    """Schemas without exactly one partition key are rejected."""
    with pytest.raises(exceptions.DynamoDBInvalidInputError):
        utils.validate_key_schema(schema)
