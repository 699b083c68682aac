"""通知ディスパッチャー

深刻度が High 以上のアラートを外部リレーにベストエフォートで通知する。
呼び出し元（投稿処理）には決して例外を返さず、結果はログにのみ残す。
"""

from __future__ import annotations

import logging
from enum import StrEnum

from ..core.errors import ConfigurationIncomplete
from ..core.models import Alert
from .relay import RelayClient, RelayError

logger = logging.getLogger(__name__)

# 通知本文に含める説明文の最大文字数
DESCRIPTION_LIMIT = 100

MESSAGE_TEMPLATE = (
    "🚨 New Security Alert: {title}\n"
    "Location: {location}\n"
    "Severity: {severity}\n"
    "Description: {description}..."
)


class NotificationOutcome(StrEnum):
    """通知試行の結果"""

    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


def build_message(alert: Alert) -> str:
    """通知本文を組み立てる（説明文は先頭100文字まで、パディングなし）"""
    return MESSAGE_TEMPLATE.format(
        title=alert.title,
        location=alert.location,
        severity=alert.severity,
        description=alert.description[:DESCRIPTION_LIMIT],
    )


class NotificationDispatcher:
    """深刻度に応じたエスカレーション通知

    ディスパッチ間で共有する可変状態は持たないため、
    異なるアラートの通知は並行に実行してよい。
    """

    def __init__(self, relay: RelayClient) -> None:
        self._relay = relay

    async def maybe_notify(self, alert: Alert) -> NotificationOutcome:
        """必要であれば通知を送る

        失敗は全てログに記録して握りつぶす。

        Returns:
            通知試行の結果（ログ・テスト用）
        """
        if not alert.severity.is_escalated:
            logger.debug("通知対象外: %s (severity=%s)", alert.id, alert.severity)
            return NotificationOutcome.SKIPPED

        try:
            result = await self._relay.send(build_message(alert))
        except ConfigurationIncomplete as e:
            logger.warning("リレー設定が不完全なため通知をスキップ: %s (%s)", alert.id, e)
            return NotificationOutcome.SKIPPED
        except RelayError as e:
            logger.error("通知送信失敗: %s: %s", alert.id, e)
            return NotificationOutcome.FAILED
        except Exception:
            logger.exception(f"通知送信中の予期しないエラー: {alert.id}")
            return NotificationOutcome.FAILED

        sid = result.get("sid", "-") if isinstance(result, dict) else "-"
        logger.info("通知送信: %s (sid=%s)", alert.id, sid)
        return NotificationOutcome.SENT
