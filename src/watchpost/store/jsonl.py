"""JSONLファイルによるアラートストア

Vault/artifacts/{app_id}/public/data/alerts.jsonl に1行1アラートで追記する。
ファイルロックで複数プロセスからの同時書き込みを直列化する。
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

import portalocker
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import StoreUnavailableError
from ..core.models import Alert, AlertInput
from .base import AlertStore

logger = logging.getLogger(__name__)

# ファイルロック取得のタイムアウト秒
LOCK_TIMEOUT_SECONDS = 10


def collection_path(vault_path: Path | str, app_id: str) -> Path:
    """名前空間ごとのアラートコレクションのファイルパス"""
    return Path(vault_path) / "artifacts" / app_id / "public" / "data" / "alerts.jsonl"


class JsonlAlertStore(AlertStore):
    """JSONL永続化ストア

    書き込みは1行を1回のwriteで追記してfsyncする。途中で失敗した
    行は読み込み時にスキップされるため、部分的なアラートは見えない。

    Attributes:
        path: コレクションのJSONLファイル
    """

    def __init__(
        self,
        vault_path: Path | str,
        app_id: str = "default-app-id",
        poll_interval: float = 1.0,
        lock_timeout: float = LOCK_TIMEOUT_SECONDS,
    ) -> None:
        """
        Args:
            vault_path: ストアのルートディレクトリ
            app_id: コレクションの名前空間ID
            poll_interval: 他プロセスの追記を検出するポーリング間隔（秒）
            lock_timeout: 書き込みロック取得の待ち上限（秒）。超えたら何も書かずに失敗する
        """
        self.path = collection_path(vault_path, app_id)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.poll_interval = poll_interval
        self.lock_timeout = lock_timeout
        self._watchers: set[asyncio.Event] = set()

    # ------------------------------------------------------------------
    # 書き込み
    # ------------------------------------------------------------------

    async def add(self, data: AlertInput, created_at: datetime) -> Alert:
        """アラートを追記"""
        alert = Alert.create(data, created_at=created_at)
        try:
            await asyncio.to_thread(self._append_line, alert)
        except (OSError, portalocker.LockException) as e:
            logger.error("アラート書き込み失敗: %s: %s", self.path, e)
            raise StoreUnavailableError(f"Failed to write alert: {e}") from e

        logger.debug("アラート記録: %s (severity=%s)", alert.id, alert.severity)
        self._notify_watchers()
        return alert

    def _append_line(self, alert: Alert) -> None:
        line = json.dumps(alert.to_record(), ensure_ascii=False, sort_keys=True) + "\n"
        with portalocker.Lock(self.path, mode="ab", timeout=self.lock_timeout) as f:
            f.write(line.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())

    def _notify_watchers(self) -> None:
        for signal in self._watchers:
            signal.set()

    # ------------------------------------------------------------------
    # 読み込み
    # ------------------------------------------------------------------

    async def list_all(self) -> list[Alert]:
        """全アラートを取得（ファイル上の順序のまま）"""
        try:
            return await asyncio.to_thread(self._read_all)
        except (OSError, portalocker.LockException) as e:
            logger.error("アラート読み込み失敗: %s: %s", self.path, e)
            raise StoreUnavailableError(f"Failed to read alerts: {e}") from e

    def _read_all(self) -> list[Alert]:
        if not self.path.exists():
            return []

        alerts: list[Alert] = []
        with portalocker.Lock(
            self.path, mode="r", encoding="utf-8", timeout=LOCK_TIMEOUT_SECONDS
        ) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    alerts.append(Alert.model_validate(json.loads(line)))
                except (json.JSONDecodeError, PydanticValidationError) as e:
                    logger.warning(f"アラート読み込みエラー: {self.path}:{line_num}: {e}")
        return alerts

    # ------------------------------------------------------------------
    # 変更通知
    # ------------------------------------------------------------------

    def _stat(self) -> tuple[int, int]:
        """変更検出用の (サイズ, 更新時刻ns)"""
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return (0, 0)
        return (st.st_size, st.st_mtime_ns)

    async def watch(self) -> AsyncGenerator[None, None]:
        """変更通知を購読

        同一プロセスの追記は即時に、他プロセスの追記はポーリングで検出する。
        """
        signal = asyncio.Event()
        self._watchers.add(signal)
        try:
            last = await asyncio.to_thread(self._stat)
            yield None

            while True:
                try:
                    await asyncio.wait_for(signal.wait(), timeout=self.poll_interval)
                except TimeoutError:
                    pass
                signal.clear()

                current = await asyncio.to_thread(self._stat)
                if current != last:
                    last = current
                    yield None
        finally:
            self._watchers.discard(signal)

    @property
    def watcher_count(self) -> int:
        """購読中のwatch数"""
        return len(self._watchers)
