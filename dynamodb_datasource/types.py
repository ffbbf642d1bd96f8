from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypedDict, TypeVar

ItemT = TypeVar("ItemT", bound=dict[str, Any])

Key = dict[str, Any]
CacheKeyItemMap = dict[str, ItemT]


class KeySchemaElement(TypedDict):
    """One entry of a table key schema, in the botocore shape."""

    AttributeName: str
    KeyType: Literal["HASH", "RANGE"]


KeySchema = Sequence[KeySchemaElement]


@dataclass(frozen=True)
class ItemsDetails:
    """Metadata of a query or scan response.

    :param count: Number of items returned, after any filter was applied.
    :param scanned_count: Number of items evaluated before any filter was applied.
        Equal to ``count`` when no filter was used.
    :param last_evaluated_key: Primary key where the operation stopped. Pass it as
        ``ExclusiveStartKey`` to fetch the next page. ``None`` on the last page.
    """

    count: int | None = None
    scanned_count: int | None = None
    last_evaluated_key: Key | None = None


@dataclass
class ItemsList(Generic[ItemT]):
    """A page of items returned by a query or a scan, with its details."""

    items: list[ItemT] = field(default_factory=list)
    details: ItemsDetails = field(default_factory=ItemsDetails)
