"""エスカレーション通知

深刻度しきい値を超えたアラートの外部通知。
"""

from .dispatcher import (
    DESCRIPTION_LIMIT,
    NotificationDispatcher,
    NotificationOutcome,
    build_message,
)
from .relay import RelayClient, RelayError

__all__ = [
    "DESCRIPTION_LIMIT",
    "NotificationDispatcher",
    "NotificationOutcome",
    "build_message",
    "RelayClient",
    "RelayError",
]
