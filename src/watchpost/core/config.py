"""Watchpost 設定管理モジュール

Pydantic Settingsを使用した型安全な設定管理。
watchpost.config.yaml と環境変数から設定を読み込む。

設定が欠けていても起動は失敗しない。該当機能が無効化されるだけで、
欠落している項目は diagnostics() で名前付きで報告する。
"""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """アプリケーション基本設定"""

    app_id: str = Field(
        default="default-app-id",
        min_length=1,
        description="アラートコレクションのパスを区切る名前空間ID",
    )


class StoreConfig(BaseModel):
    """アラートストア設定"""

    vault_path: str = Field(default="./Vault", description="ストアのルートディレクトリ")
    write_timeout_seconds: float = Field(default=10.0, gt=0, description="書き込みロック取得のタイムアウト秒")
    poll_interval_seconds: float = Field(
        default=1.0, gt=0, le=60, description="他プロセスからの追記を検出するポーリング間隔"
    )


class RelayConfig(BaseModel):
    """外部通知リレー設定（Twilio互換のメッセージAPI）

    認証シークレットは auth_token_env で指定した環境変数から読む。
    """

    endpoint: str | None = Field(default=None, description="メッセージ送信エンドポイントURL")
    account_sid: str | None = Field(default=None, description="アカウントID")
    auth_token_env: str = Field(
        default="WATCHPOST_RELAY_AUTH_TOKEN", description="認証シークレットの環境変数名"
    )
    from_address: str | None = Field(default=None, description="送信元アドレス")
    to_address: str | None = Field(default=None, description="送信先アドレス")
    timeout_seconds: float = Field(default=10.0, gt=0)

    def get_auth_token(self) -> str:
        """認証シークレットを取得（未設定時は空文字）"""
        return os.environ.get(self.auth_token_env, "")

    def missing_fields(self) -> list[str]:
        """送信に必要な5項目のうち欠けているものを返す"""
        values = {
            "endpoint": self.endpoint,
            "account_sid": self.account_sid,
            "auth_token": self.get_auth_token(),
            "from_address": self.from_address,
            "to_address": self.to_address,
        }
        return [name for name, value in values.items() if not value]


class InsightConfig(BaseModel):
    """テキスト生成サービス設定"""

    endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        description="generateContent APIのベースURL",
    )
    model: str = Field(default="gemini-2.0-flash")
    api_key_env: str = Field(default="GEMINI_API_KEY", description="APIキーの環境変数名")
    timeout_seconds: float = Field(default=30.0, gt=0)

    def get_api_key(self) -> str:
        """APIキーを取得（未設定時は空文字）"""
        return os.environ.get(self.api_key_env, "")

    def get_url(self) -> str:
        """generateContent のURL"""
        return f"{self.endpoint.rstrip('/')}/{self.model}:generateContent"


class FeedConfig(BaseModel):
    """ライブフィード設定"""

    retry_initial_seconds: float = Field(default=1.0, gt=0, description="再接続の初回待機秒")
    retry_max_seconds: float = Field(default=30.0, gt=0, description="再接続の最大待機秒")
    keepalive_seconds: float = Field(default=15.0, gt=0, description="SSE keep-alive 間隔")


class CORSConfig(BaseModel):
    """CORS設定"""

    enabled: bool = Field(default=True, description="CORSを有効にするか")
    allow_origins: list[str] = Field(
        default=["*"],
        description="許可するオリジン（本番では具体的なオリジンを指定）",
    )
    allow_credentials: bool = Field(default=True)
    allow_methods: list[str] = Field(default=["*"])
    allow_headers: list[str] = Field(default=["*"])


class ServerConfig(BaseModel):
    """サーバー設定"""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    cors: CORSConfig = Field(default_factory=CORSConfig)


class LoggingConfig(BaseModel):
    """ロギング設定"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class WatchpostSettings(BaseSettings):
    """Watchpost全体設定

    設定の優先順位:
    1. watchpost.config.yaml（指定したセクションは丸ごと採用）
    2. 環境変数 (WATCHPOST_RELAY__ENDPOINT など)
    3. デフォルト値

    シークレットは設定に書かず、*_env で指定した環境変数から読む。
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHPOST_",
        env_nested_delimiter="__",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    insight: InsightConfig = Field(default_factory=InsightConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: Path | str | None = None) -> "WatchpostSettings":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス。Noneの場合はデフォルトパスを探索

        Returns:
            WatchpostSettings インスタンス
        """
        if config_path is None:
            search_paths = [
                Path.cwd() / "watchpost.config.yaml",
                Path.cwd() / "watchpost.config.yml",
                Path.home() / ".watchpost" / "config.yaml",
            ]
            for path in search_paths:
                if path.exists():
                    config_path = path
                    break

        if config_path and Path(config_path).exists():
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
            return cls(**yaml_config)

        return cls()

    def get_vault_path(self) -> Path:
        """ストアのルートを絶対パスで取得"""
        vault = Path(self.store.vault_path)
        if not vault.is_absolute():
            vault = Path.cwd() / vault
        return vault.resolve()

    def diagnostics(self) -> list[str]:
        """欠けている設定を人が読める形で列挙

        空リストなら全機能が有効。
        """
        problems = []
        missing_relay = self.relay.missing_fields()
        if missing_relay:
            problems.append(
                "relay: 通知は無効 (未設定: " + ", ".join(missing_relay) + ")"
            )
        if not self.insight.get_api_key():
            problems.append(f"insight: インサイトは無効 (環境変数 {self.insight.api_key_env} 未設定)")
        return problems


# グローバル設定インスタンス（遅延初期化）
_settings: WatchpostSettings | None = None


def get_settings() -> WatchpostSettings:
    """設定シングルトンを取得"""
    global _settings
    if _settings is None:
        _settings = WatchpostSettings.from_yaml()
    return _settings


def reload_settings(config_path: Path | str | None = None) -> WatchpostSettings:
    """設定を再読み込み"""
    global _settings
    _settings = WatchpostSettings.from_yaml(config_path)
    return _settings
