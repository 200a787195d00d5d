"""Google Cloud Pub/Sub adapter (optional extra: toto-pubsub[pubsub])."""

from __future__ import annotations

from .publisher import PubSubPublisher
from .topics import TopicCache

__all__ = [
    "PubSubPublisher",
    "TopicCache",
]
