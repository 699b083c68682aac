"""閲覧セッション管理

閲覧セッションごとにアラートフィードの購読とインサイトキャッシュを1つずつ持つ。
セッションを閉じるとフィードの購読を解放し、インサイトの結果を破棄する。
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ulid import ULID

from .feed.subscriber import AlertFeed
from .insight.cache import InsightCache


@dataclass
class ViewerSession:
    """閲覧セッション"""

    feed: AlertFeed
    insights: InsightCache
    session_id: str = field(default_factory=lambda: str(ULID()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    closed: bool = False

    async def open_feed(self) -> AlertFeed:
        """フィードの購読を開始（開始済みならそのまま）"""
        await self.feed.start()
        return self.feed

    async def close(self) -> None:
        """セッションを終了"""
        if self.closed:
            return
        self.closed = True
        await self.feed.stop()
        self.insights.close()


class SessionManager:
    """セッションマネージャー

    複数の閲覧セッションを管理する。
    """

    def __init__(
        self,
        feed_factory: Callable[[], AlertFeed],
        insight_factory: Callable[[], InsightCache],
    ) -> None:
        """
        Args:
            feed_factory: セッション用のAlertFeedを生成する関数
            insight_factory: セッション用のInsightCacheを生成する関数
        """
        self._feed_factory = feed_factory
        self._insight_factory = insight_factory
        self._sessions: dict[str, ViewerSession] = {}

    def create_session(self) -> ViewerSession:
        """新しいセッションを作成"""
        session = ViewerSession(feed=self._feed_factory(), insights=self._insight_factory())
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> ViewerSession | None:
        """セッションを取得"""
        return self._sessions.get(session_id)

    async def close_session(self, session_id: str) -> bool:
        """セッションを終了"""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    def list_sessions(self) -> list[ViewerSession]:
        """全セッションを取得"""
        return list(self._sessions.values())

    async def close_all(self) -> None:
        """全セッションを終了"""
        for session_id in list(self._sessions):
            await self.close_session(session_id)
