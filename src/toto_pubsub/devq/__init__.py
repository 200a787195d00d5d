"""DevQ adapter for local development (optional extra: toto-pubsub[devq])."""

from __future__ import annotations

from .publisher import DevQPublisher

__all__ = ["DevQPublisher"]
