"""SQSQueue — pull-queue adapter with long-polling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import DecodeError, PublishError
from ..ports import IPullQueue
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from ..config import QueueConfig
    from ..envelope import MessageEnvelope
    from .connection import SQSConnectionManager

logger = logging.getLogger(__name__)


class SQSQueue(IPullQueue):
    """SQS adapter implementing the pull-queue capability.

    Polls the queue named by ``config.destination_name``; publishes to any
    queue by name. Message bodies are the JSON envelope record. SQS messages
    received look like::

        {"MessageId": "...", "ReceiptHandle": "...", "Body": "<json>"}
    """

    def __init__(
        self,
        connection: SQSConnectionManager,
        config: QueueConfig,
        *,
        serializer: EnvelopeSerializer | None = None,
        owns_connection: bool = False,
    ) -> None:
        """Configure the queue.

        Args:
            connection: Connection manager (owns the client).
            config: Queue name, batch size, long-poll wait, visibility timeout.
            serializer: Envelope serializer; default EnvelopeSerializer().
            owns_connection: Close *connection* in :meth:`close`. Leave False
                when the manager is shared with other adapters.
        """
        super().__init__()
        self._connection = connection
        self._owns_connection = owns_connection
        self._config = config
        self._serializer = serializer or EnvelopeSerializer()
        self._queue_url: str | None = None

    @property
    def destination_name(self) -> str:
        return self._config.destination_name

    @property
    def queue_url(self) -> str | None:
        return self._queue_url

    async def initialize(self) -> None:
        """Resolve the polled queue's URL."""
        if self._queue_url is None:
            self._queue_url = await self._connection.get_queue_url(
                self._config.destination_name
            )

    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        """Send the envelope to the queue named *destination*."""
        body = self._serializer.serialize(message).decode("utf-8")
        try:
            queue_url = await self._connection.get_queue_url(destination)
            client = await self._connection.get_client()
            await client.send_message(QueueUrl=queue_url, MessageBody=body)
        except Exception as e:
            raise PublishError(
                f"Failed to send message to SQS queue {destination!r}: {e}",
                destination=destination,
            ) from e

    def decode(self, raw: Any) -> MessageEnvelope:
        """Decode the ``Body`` of a received SQS message."""
        if not isinstance(raw, dict):
            raise DecodeError(f"Unexpected SQS message: {raw!r}")
        return self._serializer.deserialize(raw.get("Body") or "{}")

    async def receive_batch(self) -> list[Any]:
        """Long-poll the queue for up to ``batch_size`` messages."""
        await self.initialize()
        client = await self._connection.get_client()
        params: dict[str, Any] = {
            "QueueUrl": self._queue_url,
            "MaxNumberOfMessages": self._config.batch_size,
            "WaitTimeSeconds": self._config.wait_time_seconds,
        }
        if self._config.visibility_timeout is not None:
            params["VisibilityTimeout"] = self._config.visibility_timeout
        out = await client.receive_message(**params)
        return list(out.get("Messages", []))

    async def acknowledge(self, raw: Any) -> None:
        """Delete a processed message by its receipt handle."""
        receipt = raw.get("ReceiptHandle") if isinstance(raw, dict) else None
        if not receipt:
            logger.debug("SQS message without ReceiptHandle, nothing to delete")
            return
        client = await self._connection.get_client()
        await client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=receipt)

    async def close(self) -> None:
        """Forget the resolved URL; close the connection only if owned."""
        self._queue_url = None
        if self._owns_connection:
            await self._connection.close()

    async def health_check(self) -> bool:
        """Return True if SQS is reachable."""
        return await self._connection.health_check()
