import asyncio


async def test_smoke_dynamodb_data_source() -> None:
    """Smoke test for DynamoDBDataSource initialization."""
    try:
        from dynamodb_datasource import DynamoDBDataSource

        data_source = DynamoDBDataSource(
            "test-table",
            [{"AttributeName": "id", "KeyType": "HASH"}],
            config={"region_name": "us-east-1"},
        )
        data_source.initialize()
    except Exception as e:
        raise RuntimeError("DynamoDBDataSource smoke test failed") from e


async def main() -> None:
    await test_smoke_dynamodb_data_source()


if __name__ == "__main__":
    asyncio.run(main())
    print("Smoke tests completed successfully.")
