"""DevQPublisher — local development queue reached over HTTP."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from ..exceptions import PublishError
from ..ports import IMessagePublisher
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..envelope import MessageEnvelope

logger = logging.getLogger(__name__)


class DevQPublisher(IMessagePublisher):
    """
    Publishes envelopes to a DevQ endpoint (local testing only).

    DevQ pushes messages back to the host as plain JSON, so ``decode`` only
    validates the record. Authentication tokens come from the host through
    ``token_provider``.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        token_provider: Callable[[], str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._token_provider = token_provider
        self._transport = transport
        self._serializer = serializer or EnvelopeSerializer()

    def _headers(self, message: MessageEnvelope) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Correlation-ID": message.correlation_id,
        }
        if self._token_provider is not None:
            headers["Authorization"] = f"Bearer {self._token_provider()}"
        return headers

    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        """POST the envelope to the DevQ endpoint.

        DevQ has a single queue, so *destination* is only used in errors.
        """
        body = self._serializer.serialize(message)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint,
                    content=body,
                    headers=self._headers(message),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "DevQ HTTP error: %s - %s", e.response.status_code, e.response.text
            )
            raise PublishError(
                f"DevQ rejected message: HTTP {e.response.status_code}",
                destination=destination,
            ) from e
        except httpx.HTTPError as e:
            logger.error("Failed to reach DevQ at %s: %s", self.endpoint, e)
            raise PublishError(
                f"Failed to reach DevQ at {self.endpoint}: {e}",
                destination=destination,
            ) from e

    def decode(self, raw: Any) -> MessageEnvelope:
        """Validate the already-parsed JSON body (or raw JSON bytes)."""
        return self._serializer.deserialize(raw)
