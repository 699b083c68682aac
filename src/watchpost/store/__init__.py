"""アラートストア

追記専用の永続化と変更通知。
"""

from .base import AlertStore
from .jsonl import JsonlAlertStore, collection_path

__all__ = [
    "AlertStore",
    "JsonlAlertStore",
    "collection_path",
]
