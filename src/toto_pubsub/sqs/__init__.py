"""SQS transport adapter (optional extra: toto-pubsub[sqs])."""

from __future__ import annotations

from .connection import SQSConnectionManager
from .queue import SQSQueue

__all__ = [
    "SQSConnectionManager",
    "SQSQueue",
]
