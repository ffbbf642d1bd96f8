from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Generator, Mapping
from typing import TYPE_CHECKING, Any

from aiobotocore.session import get_session
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from dynamodb_datasource import constants, exceptions

if TYPE_CHECKING:  # pragma: no cover
    from types_aiobotocore_dynamodb.client import DynamoDBClient

logger = logging.getLogger(__name__)

_MARSHALLED_FIELDS = ("Key", "Item", "ExpressionAttributeValues", "ExclusiveStartKey")
_UNMARSHALLED_FIELDS = ("Item", "Attributes", "LastEvaluatedKey")


class DynamoDBDocumentClient:
    """DynamoDB client working with plain python values.

    Wraps the low level aiobotocore client and converts the request
    and response payloads from and to the DynamoDB attribute value
    format, e.g. ``{"id": "o1"}`` <-> ``{"id": {"S": "o1"}}``.

    The underlying client is created on first use, or can be injected
    with ``client`` when the caller manages its lifecycle.

    :param endpoint_url: The endpoint URL to use for the DynamoDB client.
    :param region_name: The region name to use for the DynamoDB client.
    :param aws_access_key_id: The AWS access key ID to use for the DynamoDB client.
    :param aws_secret_access_key: The AWS secret access key to use for the
        DynamoDB client.
    :param client: An already initialized aiobotocore DynamoDB client.
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        region_name: str = constants.DEFAULT_REGION,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        client: DynamoDBClient | None = None,
    ) -> None:
        self._aws_region = region_name
        self._aws_endpoint_url = endpoint_url
        self._aws_access_key_id = aws_access_key_id
        self._aws_secret_access_key = aws_secret_access_key
        self._session = get_session()
        self._dynamodb_client: DynamoDBClient | None = client
        self._client_lock = asyncio.Lock()
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    async def _get_client(self) -> DynamoDBClient:
        """
        Creates the DynamoDB client.

        :return: The DynamoDB client.
        :raises ClientCreationError: If the client cannot be created.
        """
        try:
            self._client_context_creator = self._session.create_client(
                "dynamodb",
                region_name=self._aws_region,
                endpoint_url=self._aws_endpoint_url,
                aws_access_key_id=self._aws_access_key_id,
                aws_secret_access_key=self._aws_secret_access_key,
            )
            client = await self._client_context_creator.__aenter__()
            logger.debug("Created DynamoDB client for %s", self._aws_region)
            return client
        except Exception as e:
            raise exceptions.ClientCreationError(
                f"Failed to create DynamoDB client: {e}",
            ) from e

    @property
    async def dynamodb_client(self) -> DynamoDBClient:
        """Returns the DynamoDB client."""
        if not self._dynamodb_client:
            async with self._client_lock:
                if not self._dynamodb_client:
                    self._dynamodb_client = await self._get_client()
        return self._dynamodb_client

    async def __aenter__(self) -> DynamoDBDocumentClient:
        await self.dynamodb_client
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Closes the DynamoDB client, if it was created here."""
        if hasattr(self, "_client_context_creator"):
            await self._client_context_creator.__aexit__(None, None, None)
            del self._client_context_creator
            self._dynamodb_client = None

    @contextlib.contextmanager
    def _handle_exceptions(self) -> Generator[None, None, None]:
        """Handle exceptions raised by the DynamoDB client."""
        try:
            yield
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code")
            error_message = error.get("Message")
            if code == "ConditionalCheckFailedException":
                raise exceptions.ConditionalCheckFailedError(error_message) from e
            elif code == "ResourceNotFoundException":
                raise exceptions.TableNotFoundError(error_message) from e
            elif code == "ValidationException":
                raise exceptions.DynamoDBInvalidInputError(error_message) from e
            elif code == "ProvisionedThroughputExceededException":
                raise exceptions.DynamoDBProvisionedThroughputExceededError(
                    error_message,
                ) from e
            else:
                raise exceptions.DynamoDBClientError(error_message) from e

    def _serialize(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return {name: self._serializer.serialize(v) for name, v in value.items()}

    def _deserialize(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return {name: self._deserializer.deserialize(v) for name, v in value.items()}

    def _build_request(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Converts the document fields of a request to attribute values.

        :param params: The request in document form.
        :return: The request accepted by botocore.
        """
        request = {name: value for name, value in params.items() if value is not None}
        for name in _MARSHALLED_FIELDS:
            if name in request:
                request[name] = self._serialize(request[name])
        return request

    def _parse_response(self, response: Mapping[str, Any]) -> dict[str, Any]:
        """Converts the attribute values of a response to documents.

        :param response: The response returned by botocore.
        :return: The response in document form.
        """
        parsed = dict(response)
        for name in _UNMARSHALLED_FIELDS:
            if name in parsed:
                parsed[name] = self._deserialize(parsed[name])
        if "Items" in parsed:
            parsed["Items"] = [self._deserialize(item) for item in parsed["Items"]]
        return parsed

    async def get(self, **params: Any) -> dict[str, Any]:
        """Retrieves a single item by its primary key.

        :param params: The GetItem request, e.g. ``TableName`` and ``Key``.
        :return: The response, holding ``Item`` when the item exists.
        """
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.get_item(**self._build_request(params))
        return self._parse_response(response)

    async def query(self, **params: Any) -> dict[str, Any]:
        """Runs a query.

        :param params: The Query request.
        :return: The response with ``Items``, ``Count``, ``ScannedCount`` and
            ``LastEvaluatedKey`` when there are more pages.
        """
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.query(**self._build_request(params))
        return self._parse_response(response)

    async def scan(self, **params: Any) -> dict[str, Any]:
        """Runs a scan. Same response envelope as :meth:`query`."""
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.scan(**self._build_request(params))
        return self._parse_response(response)

    async def put(self, **params: Any) -> dict[str, Any]:
        """Creates or replaces an item.

        :raises ConditionalCheckFailedError: If ``ConditionExpression`` is false.
        """
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.put_item(**self._build_request(params))
        return self._parse_response(response)

    async def update(self, **params: Any) -> dict[str, Any]:
        """Updates the attributes of an item.

        :raises ConditionalCheckFailedError: If ``ConditionExpression`` is false.
        """
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.update_item(**self._build_request(params))
        return self._parse_response(response)

    async def delete(self, **params: Any) -> dict[str, Any]:
        dynamodb_client = await self.dynamodb_client
        with self._handle_exceptions():
            response = await dynamodb_client.delete_item(**self._build_request(params))
        return self._parse_response(response)

    def __repr__(self) -> str:
        return "DynamoDBDocumentClient ({})".format(self._aws_region)
