from __future__ import annotations

from typing import Any

import simplejson
from aiocache.serializers import JsonSerializer


def _default(value: Any) -> Any:
    """Encode the sets the DynamoDB deserializer produces."""
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class ItemJsonSerializer(JsonSerializer):
    """Transform DynamoDB items to and from compact JSON strings.

    Numbers with a fractional part are read back as :class:`decimal.Decimal`
    with every digit DynamoDB stored, so cached items can be sent back to
    DynamoDB unchanged.

    Not every item survives the trip:

    - String and number sets are stored as sorted lists, and read back
      as lists.
    - Binary attributes and sets (``bytes`` or :class:`boto3.dynamodb.types.Binary`)
      can't be encoded, :meth:`dumps` raises :class:`TypeError`. Items
      holding them are stored in the table but caching them fails with a
      :class:`~dynamodb_datasource.exceptions.CacheWriteError`, so don't
      pass a ``ttl`` for them.
    """

    def dumps(self, value: Any) -> str:
        return simplejson.dumps(
            value,
            use_decimal=True,
            encoding=None,
            default=_default,
            separators=(",", ":"),
        )

    def loads(self, value: str | None) -> Any:
        if value is None:
            return None
        return simplejson.loads(value, use_decimal=True)
