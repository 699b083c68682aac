"""メッセージリレー クライアント

httpx ベースの非同期クライアント。
Twilio互換のメッセージAPI（フォーム形式 To / From / Body、Basic認証）に送信する。
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.config import RelayConfig
from ..core.errors import ConfigurationIncomplete

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """リレー呼び出しの失敗（ネットワークエラー・非2xx応答）"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RelayClient:
    """メッセージリレー クライアント

    運用上の注意:
        - 認証シークレットは環境変数で管理（config.auth_token_env で指定）
        - 5項目のいずれかが未設定なら送信前に ConfigurationIncomplete
        - リトライしない（呼び出し側でベストエフォートとして扱う）
    """

    def __init__(self, config: RelayConfig) -> None:
        self.config = config
        self._http_client: httpx.AsyncClient | None = None

    def is_configured(self) -> bool:
        """送信に必要な設定が揃っているか"""
        return not self.config.missing_fields()

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

    async def send(self, body: str) -> dict[str, Any]:
        """メッセージを1通送信する

        Args:
            body: メッセージ本文

        Returns:
            リレーの応答（JSONでなければ空辞書）

        Raises:
            ConfigurationIncomplete: 設定が欠けている場合
            RelayError: 送信に失敗した場合
        """
        missing = self.config.missing_fields()
        if missing:
            raise ConfigurationIncomplete(missing)

        client = await self._get_client()
        form = {
            "To": self.config.to_address,
            "From": self.config.from_address,
            "Body": body,
        }
        try:
            response = await client.post(
                self.config.endpoint,
                data=form,
                auth=(self.config.account_sid, self.config.get_auth_token()),
            )
        except httpx.HTTPError as e:
            raise RelayError(f"Relay request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise RelayError(
                f"Relay returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            return {}
