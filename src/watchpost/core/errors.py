"""エラー分類

投稿・インサイト・設定に関する例外階層。
API層はこれらをHTTPステータスに変換する。
"""

from __future__ import annotations

from typing import Any


class WatchpostError(Exception):
    """Watchpost例外の基底クラス"""

    #: クライアントに返すエラーメッセージ（詳細はログのみ）
    public_message: str = "Unexpected error"

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        super().__init__(message or self.public_message)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """エラーレスポンス用の辞書に変換"""
        body: dict[str, Any] = {"error": str(self)}
        if self.details is not None:
            body["details"] = self.details
        return body


# --- 投稿 ---


class SubmissionError(WatchpostError):
    """アラート投稿の失敗"""

    public_message = "Failed to submit alert"


class ValidationError(SubmissionError):
    """入力不正（I/O発生前に検出）

    details にはフィールド名 → 理由 の辞書が入る。
    """

    public_message = "Missing or invalid alert fields"


class StoreUnavailableError(SubmissionError):
    """永続化層に到達できない、またはタイムアウト（再試行可能）"""

    public_message = "Alert store unavailable"


class InternalError(SubmissionError):
    """想定外のエラー

    原因はログに残し、クライアントには汎用メッセージのみ返す。
    """

    public_message = "Internal error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.public_message}


# --- インサイト ---


class InsightError(WatchpostError):
    """インサイト生成の失敗"""

    public_message = "Failed to generate insight"


class InvalidRequest(InsightError):
    """タイトルまたは説明が欠けている"""

    public_message = "Missing required fields: title or description"


class UpstreamUnavailable(InsightError):
    """外部サービスに到達できない（ネットワーク・タイムアウト・非2xx）"""

    public_message = "Upstream service unavailable"


class MalformedUpstreamResponse(InsightError):
    """外部サービスは応答したが期待する構造ではない"""

    public_message = "Unexpected response structure from upstream service"


# --- 設定 ---


class ConfigurationIncomplete(WatchpostError):
    """必要な設定値が欠けている

    通知ではログのみ、インサイトでは要求元に返す。
    """

    public_message = "Configuration incomplete"

    def __init__(self, missing: list[str], message: str | None = None) -> None:
        super().__init__(
            message or f"{self.public_message}: missing {', '.join(missing)}",
            details={"missing": missing},
        )
        self.missing = missing
