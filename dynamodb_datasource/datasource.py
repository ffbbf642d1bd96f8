from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic

from dynamodb_datasource import constants, exceptions
from dynamodb_datasource.cache import DynamoDBCache
from dynamodb_datasource.client import DynamoDBDocumentClient
from dynamodb_datasource.types import (
    CacheKeyItemMap,
    ItemsDetails,
    ItemsList,
    ItemT,
    Key,
    KeySchema,
)
from dynamodb_datasource.utils import (
    build_cache_key,
    build_items_cache_map,
    build_key,
    validate_key_schema,
)

if TYPE_CHECKING:  # pragma: no cover
    from aiocache.base import BaseCache

logger = logging.getLogger(__name__)


class DynamoDBDataSource(Generic[ItemT]):
    """
    Data source for a single DynamoDB table with a read-through and
    write-through cache in front of it.

    The table is always the source of truth: every operation runs against
    it, the cache is only populated (when a ``ttl`` is given) or evicted
    afterwards. Mutating operations return what DynamoDB reports, never
    cached data.

    The data source is built in two phases. The constructor takes the
    static configuration, then :meth:`initialize` binds the context and
    the aiocache cache before the first operation::

        orders = DynamoDBDataSource("orders", [{"AttributeName": "id", "KeyType": "HASH"}])
        orders.initialize(context=request_context, cache=Cache(Cache.REDIS))
        await orders.put({"id": "o1", "total": 10}, ttl=30)
        await orders.get_item({"Key": {"id": "o1"}})

    :param table_name: The name of the DynamoDB table.
    :type table_name: str
    :param table_key_schema: The key schema of the table, one ``HASH`` element
        and optionally one ``RANGE`` element.
    :type table_key_schema: list of dict
    :param config: Keyword arguments for
        :class:`~dynamodb_datasource.client.DynamoDBDocumentClient`, such as
        ``region_name`` and ``endpoint_url``.
    :type config: dict, optional
    :param client: An initialized document client, used as is. Can't be
        combined with ``config``.
    :type client: :class:`~dynamodb_datasource.client.DynamoDBDocumentClient`, optional
    :param cache_prefix: Prefix of every cache key. Defaults to "sup:".
    :type cache_prefix: str, optional
    """

    def __init__(
        self,
        table_name: str,
        table_key_schema: KeySchema,
        config: Mapping[str, Any] | None = None,
        client: DynamoDBDocumentClient | None = None,
        cache_prefix: str = constants.CACHE_PREFIX_KEY,
    ) -> None:
        if client is not None and config:
            raise ValueError("Pass either a client or a client config, not both.")
        self.table_name = table_name
        self.table_key_schema = validate_key_schema(table_key_schema)
        self.cache_prefix = cache_prefix
        self._owns_client = client is None
        self.doc_client = (
            client if client is not None else DynamoDBDocumentClient(**(config or {}))
        )
        self.context: Any = None
        self._dynamodb_cache: DynamoDBCache[ItemT] | None = None

    def initialize(self, context: Any = None, cache: BaseCache | None = None) -> None:
        """Binds the context and the key-value cache to the data source.

        Must be called before any other operation. Without ``cache`` the
        items are cached in a :class:`aiocache.SimpleMemoryCache` local
        to this data source.

        :param context: The request or process context, kept as ``self.context``.
        :param cache: The aiocache cache to store items in.
        """
        self.context = context
        self._dynamodb_cache = DynamoDBCache(
            self.doc_client,
            cache,
            prefix=self.cache_prefix,
        )

    @property
    def dynamodb_cache(self) -> DynamoDBCache[ItemT]:
        if self._dynamodb_cache is None:
            raise exceptions.DataSourceNotInitializedError(
                f"{self!r} used before initialize() was called.",
            )
        return self._dynamodb_cache

    async def __aenter__(self) -> DynamoDBDataSource[ItemT]:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Closes the document client, if this data source created it."""
        if self._owns_client:
            await self.doc_client.close()

    def _with_table_name(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {"TableName": self.table_name, **params}

    async def get_item(
        self,
        get_item_input: Mapping[str, Any],
        ttl: int | None = None,
    ) -> ItemT:
        """Retrieves an item, from the cache if possible.

        :param get_item_input: The GetItem request, at least ``Key``.
            ``TableName`` defaults to the table of this data source.
        :param ttl: The time to live of the item in the cache, in seconds.
            The item is not cached without it.
        :return: The item.
        :raises ItemNotFoundError: If the item is not in the table.
        """
        get_item_input = self._with_table_name(get_item_input)
        get_item_input["Key"] = build_key(self.table_key_schema, get_item_input["Key"])
        return await self.dynamodb_cache.get_item(get_item_input, ttl)

    async def cache_items(self, items: list[ItemT], ttl: int | None = None) -> None:
        """Stores the items in the cache, if there are any and a ttl is given."""
        if items and ttl:
            cache_key_item_map: CacheKeyItemMap[ItemT] = build_items_cache_map(
                self.cache_prefix,
                self.table_name,
                self.table_key_schema,
                items,
            )
            logger.debug(
                "Caching %d items of %s for %ss",
                len(cache_key_item_map),
                self.table_name,
                ttl,
            )
            await self.dynamodb_cache.set_items_in_cache(cache_key_item_map, ttl)

    async def query(
        self,
        query_input: Mapping[str, Any],
        ttl: int | None = None,
    ) -> list[ItemT]:
        """Queries the table, caching the returned items when ``ttl`` is given.

        :param query_input: The Query request, e.g. ``KeyConditionExpression``
            and ``ExpressionAttributeValues``.
        :param ttl: The time to live of the items in the cache, in seconds.
        :return: The items of the page.
        """
        return (await self.query_details(query_input, ttl)).items

    async def query_details(
        self,
        query_input: Mapping[str, Any],
        ttl: int | None = None,
    ) -> ItemsList[ItemT]:
        """Same as :meth:`query`, also returning counts and the pagination key."""
        output = await self.dynamodb_cache.doc_client.query(
            **self._with_table_name(query_input),
        )
        return await self._build_items_list(output, ttl)

    async def scan(
        self,
        scan_input: Mapping[str, Any] | None = None,
        ttl: int | None = None,
    ) -> list[ItemT]:
        """Scans the table, caching the returned items when ``ttl`` is given.

        :param scan_input: The Scan request, e.g. ``FilterExpression``.
        :param ttl: The time to live of the items in the cache, in seconds.
        :return: The items of the page.
        """
        return (await self.scan_details(scan_input, ttl)).items

    async def scan_details(
        self,
        scan_input: Mapping[str, Any] | None = None,
        ttl: int | None = None,
    ) -> ItemsList[ItemT]:
        """Same as :meth:`scan`, also returning counts and the pagination key."""
        output = await self.dynamodb_cache.doc_client.scan(
            **self._with_table_name(scan_input or {}),
        )
        return await self._build_items_list(output, ttl)

    async def _build_items_list(
        self,
        output: Mapping[str, Any],
        ttl: int | None,
    ) -> ItemsList[ItemT]:
        items: list[ItemT] = output.get("Items", [])
        details = ItemsDetails(
            count=output.get("Count"),
            scanned_count=output.get("ScannedCount"),
            last_evaluated_key=output.get("LastEvaluatedKey"),
        )
        await self.cache_items(items, ttl)
        return ItemsList(items=items, details=details)

    async def put(
        self,
        item: ItemT,
        ttl: int | None = None,
        condition_expression: str | None = None,
    ) -> ItemT:
        """Stores the item in the table, and in the cache when ``ttl`` is given.

        :param item: The item to store. Must hold the key attributes.
        :param ttl: The time to live of the item in the cache, in seconds.
        :param condition_expression: Only store the item if the condition
            holds for the stored one.
        :return: The item.
        :raises ConditionalCheckFailedError: If the condition does not hold.
        :raises CacheWriteError: If the item is stored but could not be cached.
        """
        await self.dynamodb_cache.doc_client.put(
            TableName=self.table_name,
            Item=item,
            ConditionExpression=condition_expression,
        )

        if ttl:
            cache_key = build_cache_key(
                self.cache_prefix,
                self.table_name,
                build_key(self.table_key_schema, item),
            )
            await self.dynamodb_cache.set_in_cache(cache_key, item, ttl)

        return item

    async def update(
        self,
        key: Key,
        update_expression: str,
        expression_attribute_names: Mapping[str, str] | None,
        expression_attribute_values: Mapping[str, Any] | None,
        ttl: int | None = None,
        condition_expression: str | None = None,
    ) -> ItemT | None:
        """Updates the item in the table and resets it in the cache.

        :param key: The primary key of the item.
        :param update_expression: e.g. ``"SET #test = :test"``.
        :param expression_attribute_names: Substitutions for ``#`` names.
        :param expression_attribute_values: Substitutions for ``:`` values.
        :param ttl: The time to live of the updated item in the cache, in seconds.
        :param condition_expression: Only update the item if the condition holds.
        :return: The item as it is after the update.
        :raises ConditionalCheckFailedError: If the condition does not hold.
        """
        key = build_key(self.table_key_schema, key)
        output = await self.dynamodb_cache.doc_client.update(
            TableName=self.table_name,
            Key=key,
            ReturnValues="ALL_NEW",
            UpdateExpression=update_expression,
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=expression_attribute_values,
            ConditionExpression=condition_expression,
        )
        updated: ItemT | None = output.get("Attributes")

        if updated and ttl:
            cache_key = build_cache_key(self.cache_prefix, self.table_name, key)
            await self.dynamodb_cache.set_in_cache(cache_key, updated, ttl)

        return updated

    async def update_conditional(
        self,
        key: Key,
        update_expression: str,
        condition_expression: str,
        expression_attribute_names: Mapping[str, str] | None,
        expression_attribute_values: Mapping[str, Any] | None,
        ttl: int | None = None,
    ) -> ItemT | None:
        """Updates the item only if ``condition_expression`` holds.

        See :meth:`update`.

        :raises ConditionalCheckFailedError: If the condition does not hold.
        """
        return await self.update(
            key,
            update_expression,
            expression_attribute_names,
            expression_attribute_values,
            ttl=ttl,
            condition_expression=condition_expression,
        )

    async def delete(self, key: Key) -> None:
        """Deletes the item from the table, then evicts it from the cache.

        :param key: The primary key of the item.
        :raises CacheWriteError: If the item is deleted but could not be evicted.
        """
        key = build_key(self.table_key_schema, key)
        await self.dynamodb_cache.doc_client.delete(TableName=self.table_name, Key=key)
        await self.dynamodb_cache.remove_item_from_cache(self.table_name, key)

    def __repr__(self) -> str:
        return "DynamoDBDataSource ({})".format(self.table_name)
