"""投稿コーディネーター

入力検証 → ストアへの1回の書き込み → 通知ディスパッチの起動
を担当する。投稿の成否は永続化の成否のみで決まり、
通知の遅延や失敗が投稿を遅らせたり失敗させたりすることはない。
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import InternalError, SubmissionError
from ..core.models import Alert, AlertInput, utc_now
from ..notify.dispatcher import NotificationDispatcher
from ..store.base import AlertStore

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    """アラート投稿の調停役

    通知はバックグラウンドタスクとして起動し、完了を待たない。
    起動したタスクは参照を保持し、シャットダウン時に drain() で待てる。
    """

    def __init__(
        self,
        store: AlertStore,
        dispatcher: NotificationDispatcher,
        write_timeout: float = 10.0,
    ) -> None:
        """
        Args:
            store: アラートストア
            dispatcher: 通知ディスパッチャー
            write_timeout: 書き込み完了を待つ目安の秒数（超えたら警告し、結果が出るまで待つ）
        """
        self._store = store
        self._dispatcher = dispatcher
        self._write_timeout = write_timeout
        self._pending: set[asyncio.Task] = set()

    async def submit(self, payload: Mapping[str, Any] | AlertInput) -> Alert:
        """アラートを投稿

        Args:
            payload: 投稿内容（生の辞書または検証済み入力）

        Returns:
            永続化されたアラート

        Raises:
            ValidationError: 入力不正（I/Oは発生していない）
            StoreUnavailableError: 書き込み失敗（ロック取得のタイムアウトを含む、再試行可能）
            InternalError: 想定外のエラー
        """
        data = payload if isinstance(payload, AlertInput) else AlertInput.parse(payload)

        # 書き込みは取り消さない。ロック待ちの上限はストア側で効く
        write = asyncio.ensure_future(self._store.add(data, created_at=utc_now()))
        try:
            try:
                alert = await asyncio.wait_for(asyncio.shield(write), timeout=self._write_timeout)
            except TimeoutError:
                logger.warning(
                    "アラート書き込みが %.1fs を超過、完了を待機", self._write_timeout
                )
                alert = await write
        except asyncio.CancelledError:
            # 呼び出し側が離脱しても、記録されたアラートは通知する
            write.add_done_callback(self._dispatch_if_written)
            raise
        except SubmissionError:
            raise
        except Exception as e:
            logger.exception("アラート投稿中の予期しないエラー")
            raise InternalError() from e

        logger.info(
            "アラート投稿: %s (type=%s, severity=%s)", alert.id, alert.type, alert.severity
        )
        self._schedule_dispatch(alert)
        return alert

    def _dispatch_if_written(self, write: asyncio.Future) -> None:
        if write.cancelled() or write.exception() is not None:
            return
        self._schedule_dispatch(write.result())

    def _schedule_dispatch(self, alert: Alert) -> None:
        """通知をファイア・アンド・フォーゲットで起動"""
        task = asyncio.create_task(
            self._dispatcher.maybe_notify(alert), name=f"notify-{alert.id}"
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending_dispatches(self) -> int:
        """実行中の通知タスク数"""
        return len(self._pending)

    async def drain(self) -> None:
        """実行中の通知タスクの完了を待つ"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
