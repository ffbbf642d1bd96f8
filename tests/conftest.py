import os
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from aiobotocore.session import get_session
from aiocache import SimpleMemoryCache

from dynamodb_datasource import DynamoDBCache, DynamoDBDataSource, DynamoDBDocumentClient

ENDPOINT_URL = os.environ.get("DYNAMODB_ENDPOINT_URL")
TEST_TABLE_NAME = "test_hash_only"
TEST_COMPOSITE_TABLE_NAME = "test_composite"

HASH_ONLY_KEY_SCHEMA = [{"AttributeName": "id", "KeyType": "HASH"}]
COMPOSITE_KEY_SCHEMA = [
    {"AttributeName": "id", "KeyType": "HASH"},
    {"AttributeName": "timestamp", "KeyType": "RANGE"},
]


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:
    if ENDPOINT_URL:
        return
    skip = pytest.mark.skip(reason="DYNAMODB_ENDPOINT_URL is not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture()
async def memory_cache() -> AsyncGenerator[SimpleMemoryCache, Any]:
    cache = SimpleMemoryCache()
    yield cache
    await cache.clear()


@pytest.fixture()
def doc_client() -> AsyncMock:
    """Document client returning empty responses unless told otherwise."""
    client = AsyncMock(spec=DynamoDBDocumentClient)
    client.get.return_value = {}
    client.query.return_value = {"Items": [], "Count": 0, "ScannedCount": 0}
    client.scan.return_value = {"Items": [], "Count": 0, "ScannedCount": 0}
    client.put.return_value = {}
    client.update.return_value = {}
    client.delete.return_value = {}
    return client


@pytest.fixture()
def dynamodb_cache(
    doc_client: AsyncMock,
    memory_cache: SimpleMemoryCache,
) -> DynamoDBCache:
    return DynamoDBCache(doc_client, memory_cache)


@pytest.fixture()
def data_source(
    doc_client: AsyncMock,
    memory_cache: SimpleMemoryCache,
) -> DynamoDBDataSource:
    data_source = DynamoDBDataSource(
        TEST_TABLE_NAME,
        HASH_ONLY_KEY_SCHEMA,
        client=doc_client,
    )
    data_source.initialize(context={}, cache=memory_cache)
    return data_source


@pytest.fixture()
def composite_data_source(
    doc_client: AsyncMock,
    memory_cache: SimpleMemoryCache,
) -> DynamoDBDataSource:
    data_source = DynamoDBDataSource(
        TEST_COMPOSITE_TABLE_NAME,
        COMPOSITE_KEY_SCHEMA,
        client=doc_client,
    )
    data_source.initialize(context={}, cache=memory_cache)
    return data_source


@pytest.fixture()
def aws_credentials() -> dict[str, Any]:
    """Credentials for aws localstack."""
    return {
        "endpoint_url": ENDPOINT_URL,
        "aws_access_key_id": "your-aws-id",
        "aws_secret_access_key": "your-aws-access-key",
        "region_name": "us-east-1",
    }


@pytest.fixture()
async def test_table(aws_credentials: dict[str, Any]) -> AsyncGenerator[str, Any]:
    async with get_session().create_client("dynamodb", **aws_credentials) as client:
        response = await client.create_table(
            TableName=TEST_TABLE_NAME,
            AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
            KeySchema=HASH_ONLY_KEY_SCHEMA,
            ProvisionedThroughput={
                "ReadCapacityUnits": 1,
                "WriteCapacityUnits": 1,
            },
        )
        yield response["TableDescription"]["TableName"]
        # Delete the table after the test
        await client.delete_table(TableName=TEST_TABLE_NAME)
