"""Chat history aggregation and send-message orchestration."""

from .broadcast import SnapshotBroadcaster
from .history import ChatHistory
from .session import ChatSession, SendResult

__all__ = ["ChatHistory", "ChatSession", "SendResult", "SnapshotBroadcaster"]
