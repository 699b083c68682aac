"""アラートストアのインターフェース

外部のドキュメントストアに対する追記専用の書き込みと、
順序保証なしの一括読み込み、変更通知の購読を定義する。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from datetime import datetime

from ..core.models import Alert, AlertInput


class AlertStore(ABC):
    """アラートコレクションのアダプター

    - add: 1件追記（IDはストアが採番）。失敗時は何も見えない
    - list_all: 全件読み込み（順序保証なし）
    - watch: コレクションが変化するたびに値を返す非同期イテレータ。
      購読開始直後に1回返す。aclose() で購読を解除する
    """

    @abstractmethod
    async def add(self, data: AlertInput, created_at: datetime) -> Alert:
        """アラートを追記

        Raises:
            StoreUnavailableError: 書き込みに失敗した場合
        """

    @abstractmethod
    async def list_all(self) -> list[Alert]:
        """全アラートを取得

        Raises:
            StoreUnavailableError: 読み込みに失敗した場合
        """

    @abstractmethod
    def watch(self) -> AsyncGenerator[None, None]:
        """変更通知を購読"""

    async def close(self) -> None:
        """ストアを閉じる"""
