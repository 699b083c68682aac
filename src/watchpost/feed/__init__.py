"""ライブアラートフィード"""

from .subscriber import AlertFeed, AlertSnapshot, FeedEvent, FeedFailure, FeedSubscription

__all__ = [
    "AlertFeed",
    "AlertSnapshot",
    "FeedEvent",
    "FeedFailure",
    "FeedSubscription",
]
