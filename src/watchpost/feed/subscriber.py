"""アラートフィード（ファンアウト購読）

ストアの変更通知を1本購読し、変化のたびに全件を読み直して並べ替え、
ソート済みの完全なスナップショットを全オブザーバーに再配信する。

閲覧セッションごとに1つ作成し、セッション終了時に stop() で破棄する。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..core.models import Alert, sort_alerts
from ..store.base import AlertStore

logger = logging.getLogger(__name__)


# =============================================================================
# フィードイベント
# =============================================================================


@dataclass(frozen=True)
class AlertSnapshot:
    """ソート済みの全アラート"""

    alerts: tuple[Alert, ...]
    sequence: int
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    kind = "snapshot"

    def to_dict(self) -> dict[str, Any]:
        """SSE配信用の辞書に変換"""
        return {
            "sequence": self.sequence,
            "published_at": self.published_at.isoformat(),
            "alerts": [a.to_public() for a in self.alerts],
        }


@dataclass(frozen=True)
class FeedFailure:
    """取得失敗（回復可能）。フィードは自動で再購読する"""

    error: str
    sequence: int
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    kind = "error"

    def to_dict(self) -> dict[str, Any]:
        """SSE配信用の辞書に変換"""
        return {
            "sequence": self.sequence,
            "published_at": self.published_at.isoformat(),
            "error": "Failed to fetch alerts",
            "details": self.error,
        }


FeedEvent = AlertSnapshot | FeedFailure

_CLOSED = object()


# =============================================================================
# FeedSubscription
# =============================================================================


class FeedSubscription:
    """オブザーバー1つ分の購読ハンドル

    未読のイベントは最新の1件だけを保持する。遅いオブザーバーは
    途中のスナップショットを読み飛ばすが、最終状態には必ず追いつく。
    """

    def __init__(self, feed: AlertFeed) -> None:
        self._feed = feed
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, item: Any) -> None:
        """未読イベントを新しいもので置き換える"""
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def deliver(self, event: FeedEvent) -> None:
        """フィードからイベントを受け取る"""
        if not self._closed:
            self._offer(event)

    async def get(self) -> FeedEvent | None:
        """次のイベントを待つ（購読終了後は None）"""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        """購読を解除"""
        if self._closed:
            return
        self._closed = True
        self._feed._detach(self)
        self._offer(_CLOSED)

    def __aiter__(self) -> FeedSubscription:
        return self

    async def __anext__(self) -> FeedEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> FeedSubscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


# =============================================================================
# AlertFeed
# =============================================================================


class AlertFeed:
    """アラートのファンアウト購読

    - オブザーバーは常にソート済みの完全なスナップショットを受け取る
    - 直前と同じ内容のスナップショットは再配信しない（失敗からの回復直後を除く）
    - 読み込みや購読の失敗は FeedFailure として配信し、
      指数バックオフの後に購読を張り直す
    """

    def __init__(
        self,
        store: AlertStore,
        retry_initial_seconds: float = 1.0,
        retry_max_seconds: float = 30.0,
    ) -> None:
        """
        Args:
            store: 購読対象のアラートストア
            retry_initial_seconds: 再購読までの初回待機秒
            retry_max_seconds: 再購読までの最大待機秒
        """
        self._store = store
        self._retry_initial = retry_initial_seconds
        self._retry_max = retry_max_seconds
        self._subscriptions: list[FeedSubscription] = []
        self._latest: FeedEvent | None = None
        self._last_ids: tuple[str, ...] | None = None
        self._recovering = False
        self._sequence = 0
        self._running = False
        self._task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # ライフサイクル
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """購読を開始"""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name="alert-feed")

    async def stop(self) -> None:
        """購読を停止し、全オブザーバーとストアの購読を解放する"""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for subscription in list(self._subscriptions):
            subscription.close()

    async def __aenter__(self) -> AlertFeed:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # オブザーバー
    # ------------------------------------------------------------------

    def subscribe(self) -> FeedSubscription:
        """オブザーバーを登録

        配信済みのイベントがあれば、最新のものを即座に受け取る。
        """
        subscription = FeedSubscription(self)
        self._subscriptions.append(subscription)
        if self._latest is not None:
            subscription.deliver(self._latest)
        return subscription

    def _detach(self, subscription: FeedSubscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def latest(self) -> FeedEvent | None:
        """最後に配信したイベント"""
        return self._latest

    # ------------------------------------------------------------------
    # 配信
    # ------------------------------------------------------------------

    def _broadcast(self, event: FeedEvent) -> None:
        self._latest = event
        for subscription in list(self._subscriptions):
            subscription.deliver(event)

    def _publish_snapshot(self, alerts: list[Alert]) -> None:
        ids = tuple(a.id for a in alerts)
        if ids == self._last_ids and not self._recovering:
            return
        self._last_ids = ids
        self._recovering = False
        self._sequence += 1
        self._broadcast(AlertSnapshot(alerts=tuple(alerts), sequence=self._sequence))

    def _publish_failure(self, error: str) -> None:
        self._recovering = True
        self._sequence += 1
        self._broadcast(FeedFailure(error=error, sequence=self._sequence))

    async def refresh(self) -> None:
        """全件を読み直してスナップショットを配信"""
        alerts = await self._store.list_all()
        self._publish_snapshot(sort_alerts(alerts))

    async def _run(self) -> None:
        """購読ループ（失敗時は待機して張り直す）"""
        delay = self._retry_initial

        while self._running:
            watch = self._store.watch()
            try:
                async for _ in watch:
                    await self.refresh()
                    delay = self._retry_initial
            except Exception as e:
                logger.warning("アラートフィード取得失敗 (%.1fs後に再購読): %s", delay, e)
                self._publish_failure(str(e))
            finally:
                await watch.aclose()

            if not self._running:
                break
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._retry_max)
