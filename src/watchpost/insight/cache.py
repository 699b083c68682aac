"""インサイトキャッシュ（セッション単位）

alert_id ごとの状態機械:

    absent -> pending -> resolved | failed

- pending 中の重複要求は実行中の呼び出しに合流する（同一IDの同時呼び出しは常に1つ）
- resolved / failed は再要求されるまで変化しない（再要求で pending に戻る）
- 成功済みのアラートの再要求が失敗した場合は、以前の resolved を保持する
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidRequest, WatchpostError
from .client import InsightClient

logger = logging.getLogger(__name__)


class InsightState(StrEnum):
    """インサイトの状態"""

    ABSENT = "absent"
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class InsightEntry:
    """1アラート分のインサイト状態"""

    alert_id: str
    state: InsightState
    text: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """辞書に変換"""
        return {
            "alert_id": self.alert_id,
            "state": str(self.state),
            "text": self.text,
            "error": self.error,
        }


class InsightCache:
    """セッション専用のインサイトキャッシュ

    セッション間で共有しない。close() 後に完了した要求の結果は破棄する。
    """

    def __init__(self, client: InsightClient) -> None:
        self._client = client
        self._entries: dict[str, InsightEntry] = {}
        self._inflight: dict[str, asyncio.Task[InsightEntry]] = {}
        self._closed = False

    def get(self, alert_id: str) -> InsightEntry:
        """現在の状態を取得（未要求なら absent）"""
        return self._entries.get(alert_id, InsightEntry(alert_id, InsightState.ABSENT))

    def entries(self) -> dict[str, InsightEntry]:
        """全エントリのコピー"""
        return dict(self._entries)

    def is_pending(self, alert_id: str) -> bool:
        return alert_id in self._inflight

    async def request(self, alert_id: str, title: str, description: str) -> InsightEntry:
        """インサイトを要求し、確定した状態を返す

        pending 中なら新たな呼び出しは行わず、実行中の結果を待つ。

        Raises:
            InvalidRequest: タイトルまたは説明が空の場合（状態は変更しない）
        """
        if self._closed:
            raise RuntimeError("insight cache is closed")
        if not title or not title.strip() or not description or not description.strip():
            raise InvalidRequest()

        task = self._inflight.get(alert_id)
        if task is None:
            previous = self._entries.get(alert_id)
            self._entries[alert_id] = InsightEntry(
                alert_id,
                InsightState.PENDING,
                text=previous.text if previous else None,
            )
            task = asyncio.create_task(
                self._resolve(alert_id, title, description, previous),
                name=f"insight-{alert_id}",
            )
            self._inflight[alert_id] = task
        else:
            logger.debug("インサイト要求を合流: %s", alert_id)

        return await asyncio.shield(task)

    async def _resolve(
        self,
        alert_id: str,
        title: str,
        description: str,
        previous: InsightEntry | None,
    ) -> InsightEntry:
        """上流を1回呼び出して状態を確定させる"""
        try:
            text = await self._client.request_insight(alert_id, title, description)
            entry = InsightEntry(alert_id, InsightState.RESOLVED, text=text)
        except WatchpostError as e:
            entry = self._failed(alert_id, previous, str(e))
        except Exception:
            logger.exception(f"インサイト要求中の予期しないエラー: {alert_id}")
            entry = self._failed(alert_id, previous, "Failed to generate insight")

        self._inflight.pop(alert_id, None)
        if self._closed:
            logger.debug("セッション終了済みのためインサイト結果を破棄: %s", alert_id)
        else:
            self._entries[alert_id] = entry
        return entry

    @staticmethod
    def _failed(alert_id: str, previous: InsightEntry | None, error: str) -> InsightEntry:
        if previous is not None and previous.state == InsightState.RESOLVED:
            return replace(previous, error=error)
        return InsightEntry(alert_id, InsightState.FAILED, error=error)

    def close(self) -> None:
        """セッション終了（実行中の要求はキャンセルせず、結果を破棄する）"""
        self._closed = True
        self._entries.clear()
