"""プロセス共有リソース

ストア・外部クライアント・コーディネーターを起動時に1回だけ生成し、
まとめて Resources として返す。initialize() は冪等。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .core.config import WatchpostSettings, get_settings
from .feed.subscriber import AlertFeed
from .ingest.coordinator import IngestionCoordinator
from .insight.cache import InsightCache
from .insight.client import InsightClient
from .notify.dispatcher import NotificationDispatcher
from .notify.relay import RelayClient
from .session import SessionManager
from .store.base import AlertStore
from .store.jsonl import JsonlAlertStore

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    """プロセス単位のリソース一式"""

    settings: WatchpostSettings
    store: AlertStore
    relay: RelayClient
    dispatcher: NotificationDispatcher
    coordinator: IngestionCoordinator
    insight_client: InsightClient
    sessions: SessionManager = field(init=False)

    def __post_init__(self) -> None:
        self.sessions = SessionManager(self.new_feed, self.new_insight_cache)

    def new_feed(self) -> AlertFeed:
        """閲覧セッション用のフィードを生成"""
        return AlertFeed(
            self.store,
            retry_initial_seconds=self.settings.feed.retry_initial_seconds,
            retry_max_seconds=self.settings.feed.retry_max_seconds,
        )

    def new_insight_cache(self) -> InsightCache:
        """閲覧セッション用のインサイトキャッシュを生成"""
        return InsightCache(self.insight_client)

    async def close(self) -> None:
        """全リソースを解放（実行中の通知は完了を待つ）"""
        await self.sessions.close_all()
        await self.coordinator.drain()
        await self.relay.close()
        await self.insight_client.close()
        await self.store.close()


def build_resources(
    settings: WatchpostSettings, store: AlertStore | None = None
) -> Resources:
    """設定からリソース一式を生成

    Args:
        settings: 設定
        store: ストア（省略時は設定に従いJSONLストアを生成）
    """
    if store is None:
        store = JsonlAlertStore(
            settings.get_vault_path(),
            app_id=settings.app.app_id,
            poll_interval=settings.store.poll_interval_seconds,
            lock_timeout=settings.store.write_timeout_seconds,
        )
    relay = RelayClient(settings.relay)
    dispatcher = NotificationDispatcher(relay)
    coordinator = IngestionCoordinator(
        store, dispatcher, write_timeout=settings.store.write_timeout_seconds
    )
    insight_client = InsightClient(settings.insight)

    return Resources(
        settings=settings,
        store=store,
        relay=relay,
        dispatcher=dispatcher,
        coordinator=coordinator,
        insight_client=insight_client,
    )


# グローバルリソース（initialize で生成）
_resources: Resources | None = None


def initialize(
    settings: WatchpostSettings | None = None, store: AlertStore | None = None
) -> Resources:
    """リソースを初期化（2回目以降は既存のものを返す）"""
    global _resources
    if _resources is not None:
        return _resources

    settings = settings or get_settings()
    for problem in settings.diagnostics():
        logger.warning("設定不足: %s", problem)

    _resources = build_resources(settings, store)
    logger.info(
        "Watchpost初期化: app_id=%s, store=%s", settings.app.app_id, settings.get_vault_path()
    )
    return _resources


async def shutdown(resources: Resources | None = None) -> None:
    """リソースを解放

    Args:
        resources: 解放対象（省略時はグローバルリソース）
    """
    global _resources
    target = resources or _resources
    if target is None:
        return
    if target is _resources:
        _resources = None
    await target.close()
