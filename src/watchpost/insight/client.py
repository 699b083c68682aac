"""インサイト クライアント

テキスト生成サービス（Gemini generateContent 互換 API）にアラートの
要約と推奨対応を問い合わせる。投稿処理やストアとは独立している。
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.config import InsightConfig
from ..core.errors import (
    ConfigurationIncomplete,
    InvalidRequest,
    MalformedUpstreamResponse,
    UpstreamUnavailable,
)
from ..prompts.insight import format_insight_prompt

logger = logging.getLogger(__name__)


def extract_text(data: Any) -> str:
    """最初の候補からテキストを取り出す

    Raises:
        MalformedUpstreamResponse: candidates[0].content.parts[0].text が無い場合
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedUpstreamResponse(details={"reason": f"missing {e}"}) from e
    if not isinstance(text, str):
        raise MalformedUpstreamResponse(details={"reason": "text is not a string"})
    return text


class InsightClient:
    """インサイト クライアント

    運用上の注意:
        - APIキーは環境変数で管理（config.api_key_env で指定）
        - リトライしない（ユーザー操作ごとに独立したリクエスト）
        - 到達不能（UpstreamUnavailable）と応答不正（MalformedUpstreamResponse）を区別する
    """

    def __init__(self, config: InsightConfig) -> None:
        self.config = config
        self._http_client: httpx.AsyncClient | None = None

    def check_api_key(self) -> bool:
        """APIキーが設定されているか（起動時バリデーション用）"""
        return bool(self.config.get_api_key())

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTPクライアントを取得"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """クライアントを閉じる"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def request_insight(self, alert_id: str | None, title: str, description: str) -> str:
        """アラートのインサイトを1回問い合わせる

        Args:
            alert_id: 対象アラートのID（ログ用。ステートレス呼び出しでは None）
            title: アラートのタイトル
            description: アラートの説明

        Returns:
            生成されたテキスト

        Raises:
            InvalidRequest: タイトルまたは説明が空の場合（呼び出し前に検出）
            ConfigurationIncomplete: APIキーが未設定の場合
            UpstreamUnavailable: ネットワークエラー・タイムアウト・非2xx応答
            MalformedUpstreamResponse: 応答が期待する構造でない場合
        """
        if not title or not title.strip() or not description or not description.strip():
            raise InvalidRequest()

        api_key = self.config.get_api_key()
        if not api_key:
            raise ConfigurationIncomplete([self.config.api_key_env])

        body = {
            "contents": [
                {"role": "user", "parts": [{"text": format_insight_prompt(title, description)}]}
            ]
        }

        client = await self._get_client()
        try:
            response = await client.post(
                self.config.get_url(),
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.warning("インサイト要求失敗: alert=%s: %s", alert_id, e)
            raise UpstreamUnavailable(details={"reason": str(e)}) from e

        if not 200 <= response.status_code < 300:
            logger.warning(
                "インサイト要求失敗: alert=%s: status=%d", alert_id, response.status_code
            )
            raise UpstreamUnavailable(details={"status_code": response.status_code})

        try:
            data = response.json()
        except ValueError as e:
            logger.error("インサイト応答がJSONではない: alert=%s", alert_id)
            raise MalformedUpstreamResponse(details={"reason": "response is not JSON"}) from e

        try:
            return extract_text(data)
        except MalformedUpstreamResponse:
            logger.error("インサイト応答の構造が想定外: alert=%s: %s", alert_id, data)
            raise
