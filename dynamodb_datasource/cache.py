from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Generic

from aiocache import SimpleMemoryCache

from dynamodb_datasource import constants, exceptions
from dynamodb_datasource.serializers import ItemJsonSerializer
from dynamodb_datasource.types import CacheKeyItemMap, ItemT, Key
from dynamodb_datasource.utils import build_cache_key

if TYPE_CHECKING:  # pragma: no cover
    from aiocache.base import BaseCache
    from aiocache.serializers import BaseSerializer

    from dynamodb_datasource.client import DynamoDBDocumentClient

logger = logging.getLogger(__name__)


class DynamoDBCache(Generic[ItemT]):
    """Read-through and write-through cache of DynamoDB items.

    Items are stored in ``key_value_cache`` as JSON strings under the key
    built by :func:`dynamodb_datasource.utils.build_cache_key`, bypassing
    the serializer the cache was configured with. Reads that
    fail are treated as misses, writes and deletes that fail raise
    :class:`~dynamodb_datasource.exceptions.CacheWriteError`.

    :param doc_client: The client used on cache misses.
    :param key_value_cache: Any aiocache cache. Defaults to a
        :class:`aiocache.SimpleMemoryCache` local to this instance.
    :param serializer: Used to turn items into cache values. Defaults to
        :class:`~dynamodb_datasource.serializers.ItemJsonSerializer`.
    :param prefix: Prefix of every cache key.
    """

    def __init__(
        self,
        doc_client: DynamoDBDocumentClient,
        key_value_cache: BaseCache | None = None,
        serializer: BaseSerializer | None = None,
        prefix: str = constants.CACHE_PREFIX_KEY,
    ) -> None:
        self.doc_client = doc_client
        self.key_value_cache = (
            key_value_cache if key_value_cache is not None else SimpleMemoryCache()
        )
        self.serializer = serializer or ItemJsonSerializer()
        self.prefix = prefix

    async def get_item(
        self,
        get_item_input: dict[str, Any],
        ttl: int | None = None,
    ) -> ItemT:
        """Retrieves an item, from the cache if possible.

        On a cache miss the item is read from the table and, when ``ttl``
        is given, stored in the cache for ``ttl`` seconds.

        :param get_item_input: The GetItem request, ``TableName`` and ``Key``
            are required.
        :param ttl: The time to live of the item in the cache, in seconds.
        :return: The item.
        :raises ItemNotFoundError: If the item is not in the table.
        :raises CacheWriteError: If the item could not be cached.
        """
        cache_key = build_cache_key(
            self.prefix,
            get_item_input["TableName"],
            get_item_input["Key"],
        )
        item = await self.retrieve_from_cache(cache_key)
        if item is not None:
            logger.debug("Cache hit for %s", cache_key)
            return item

        logger.debug("Cache miss for %s", cache_key)
        response = await self.doc_client.get(**get_item_input)
        item = response.get("Item")
        if not item:
            raise exceptions.ItemNotFoundError(
                f"Item {get_item_input['Key']} not found in "
                f"table {get_item_input['TableName']}",
            )
        if ttl:
            await self.set_in_cache(cache_key, item, ttl)
        return item

    async def retrieve_from_cache(self, cache_key: str) -> ItemT | None:
        """Retrieves an item from the cache.

        :param cache_key: The cache key of the item.
        :return: The item, or None if it is not cached or can't be read.
        """
        try:
            return await self.key_value_cache.get(
                cache_key,
                loads_fn=self.serializer.loads,
            )
        except Exception:
            logger.debug("Failed to read %s from the cache", cache_key, exc_info=True)
            return None

    async def set_in_cache(
        self,
        cache_key: str,
        item: ItemT,
        ttl: int = constants.TTL_SEC,
    ) -> None:
        """Stores an item in the cache, replacing any previous value.

        :param cache_key: The cache key of the item.
        :param item: The item to store.
        :param ttl: The time to live of the item in the cache, in seconds.
        :raises CacheWriteError: If the item could not be stored.
        """
        try:
            await self.key_value_cache.set(
                cache_key,
                item,
                ttl=ttl,
                dumps_fn=self.serializer.dumps,
            )
        except Exception as e:
            logger.warning("Failed to store %s in the cache: %s", cache_key, e)
            raise exceptions.CacheWriteError(
                f"Failed to store {cache_key} in the cache: {e}",
                keys=[cache_key],
            ) from e

    async def set_items_in_cache(
        self,
        cache_key_item_map: CacheKeyItemMap[ItemT],
        ttl: int = constants.TTL_SEC,
    ) -> None:
        """Stores several items in the cache.

        All items are attempted, even when some of them fail.

        :param cache_key_item_map: Items by cache key.
        :param ttl: The time to live of the items in the cache, in seconds.
        :raises CacheWriteError: If any of the items could not be stored.
        """
        results = await asyncio.gather(
            *(
                self.set_in_cache(cache_key, item, ttl)
                for cache_key, item in cache_key_item_map.items()
            ),
            return_exceptions=True,
        )
        failed = [
            cache_key
            for cache_key, result in zip(cache_key_item_map, results)
            if isinstance(result, Exception)
        ]
        if failed:
            raise exceptions.CacheWriteError(
                f"Failed to store {len(failed)} of {len(results)} items in the cache",
                keys=failed,
            )
        logger.debug("Stored %d items in the cache", len(results))

    async def remove_item_from_cache(self, table_name: str, key: Key) -> bool:
        """Removes an item from the cache.

        :param table_name: The table the item belongs to.
        :param key: The primary key of the item.
        :return: True if the item was cached.
        :raises CacheWriteError: If the item could not be removed.
        """
        cache_key = build_cache_key(self.prefix, table_name, key)
        try:
            deleted = await self.key_value_cache.delete(cache_key)
        except Exception as e:
            logger.warning("Failed to evict %s from the cache: %s", cache_key, e)
            raise exceptions.CacheWriteError(
                f"Failed to evict {cache_key} from the cache: {e}",
                keys=[cache_key],
            ) from e
        return bool(deleted)

    def __repr__(self) -> str:
        return "DynamoDBCache ({!r})".format(self.key_value_cache)
