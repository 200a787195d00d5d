"""TopicCache — owned Pub/Sub publisher client and topic-path cache."""

from __future__ import annotations

from typing import Any

from google.cloud import pubsub_v1


class TopicCache:
    """Holds one ``PublisherClient`` and the topic paths resolved through it.

    Inject a single instance into every :class:`PubSubPublisher` that should
    share a client; call :meth:`close` when the host shuts down.
    """

    def __init__(self, project_id: str, *, client: Any = None) -> None:
        """Configure the cache.

        Args:
            project_id: GCP project owning the topics.
            client: Optional pre-built ``PublisherClient``; created lazily otherwise.
        """
        self._project_id = project_id
        self._client = client
        self._paths: dict[str, str] = {}

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = pubsub_v1.PublisherClient()
        return self._client

    def topic_path(self, topic_name: str) -> str:
        """Return the fully qualified path for *topic_name*, memoised."""
        path = self._paths.get(topic_name)
        if path is None:
            path = self.client.topic_path(self._project_id, topic_name)
            self._paths[topic_name] = path
        return path

    def __contains__(self, topic_name: object) -> bool:
        return topic_name in self._paths

    def close(self) -> None:
        """Flush and stop the client, forgetting cached topics."""
        if self._client is not None:
            self._client.stop()
            self._client = None
        self._paths.clear()
