"""PubSubPublisher — push-delivered Google Cloud Pub/Sub adapter."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..exceptions import DecodeError, PublishError
from ..ports import IMessagePublisher
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from ..envelope import MessageEnvelope
    from .topics import TopicCache

logger = logging.getLogger(__name__)


class PubSubPublisher(IMessagePublisher):
    """Publishes envelopes to Pub/Sub topics.

    Inbound delivery is by push subscription: the host's HTTP endpoint passes
    the request body to ``bus.handle_message``. That body looks like::

        {"message": {"data": "<base64 JSON envelope>", "messageId": "..."}}
    """

    def __init__(
        self,
        topics: TopicCache,
        *,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        self._topics = topics
        self._serializer = serializer or EnvelopeSerializer()

    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        """Publish the envelope to topic *destination* and wait for the ack."""
        data = self._serializer.serialize(message)
        try:
            topic_path = self._topics.topic_path(destination)
            future = self._topics.client.publish(topic_path, data=data)
            await asyncio.wrap_future(future)
        except Exception as e:
            raise PublishError(
                f"Failed to publish to Pub/Sub topic {destination!r}: {e}",
                destination=destination,
            ) from e

    def decode(self, raw: Any) -> MessageEnvelope:
        """Strip the push-subscription wrapper and base64 framing."""
        message = raw.get("message") if isinstance(raw, Mapping) else None
        data = message.get("data") if isinstance(message, Mapping) else None
        if not isinstance(data, (str, bytes)):
            raise DecodeError(f"Not a Pub/Sub push body: {raw!r}")
        try:
            decoded = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Invalid base64 message data: {e}") from e
        envelope = self._serializer.deserialize(decoded)
        logger.debug("Decoded Pub/Sub message %s", message.get("messageId"))
        return envelope
