"""Watchpost テスト設定"""

from datetime import UTC, datetime, timedelta

import pytest

from watchpost.core.config import (
    CORSConfig,
    ServerConfig,
    StoreConfig,
    WatchpostSettings,
)
from watchpost.core.models import Alert, AlertInput

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

SECRET_ENV_VARS = ("WATCHPOST_RELAY_AUTH_TOKEN", "GEMINI_API_KEY")


@pytest.fixture(autouse=True)
def clear_secrets(monkeypatch):
    """実行環境のシークレットがテストに漏れないようにする"""
    for name in SECRET_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def valid_payload() -> dict:
    """投稿可能なペイロード"""
    return {
        "title": "Break-in",
        "description": "Rear door forced open",
        "location": "12 Elm St",
        "type": "Physical",
        "severity": "High",
        "reporter_id": "u-123",
    }


@pytest.fixture
def make_alert():
    """テスト用アラートのファクトリ"""

    def _make(
        alert_id: str = "01HX0000000000000000000000",
        seconds: int = 0,
        severity: str = "High",
        title: str = "Break-in",
        description: str = "Rear door forced open",
    ) -> Alert:
        data = AlertInput(
            title=title,
            description=description,
            location="12 Elm St",
            type="Physical",
            severity=severity,
            reporter_id="u-123",
        )
        return Alert(
            id=alert_id,
            created_at=BASE_TIME + timedelta(seconds=seconds),
            **data.model_dump(),
        )

    return _make


@pytest.fixture
def settings(tmp_path) -> WatchpostSettings:
    """テスト用の設定（一時Vault、CORS無効、短いリトライ間隔）"""
    return WatchpostSettings(
        store=StoreConfig(vault_path=str(tmp_path / "Vault"), poll_interval_seconds=0.05),
        server=ServerConfig(cors=CORSConfig(enabled=False)),
        feed={"retry_initial_seconds": 0.01, "retry_max_seconds": 0.05},
    )


@pytest.fixture
def resources(settings):
    """テスト用のリソース一式"""
    from watchpost.resources import build_resources

    return build_resources(settings)


@pytest.fixture
def client(resources):
    """テスト用FastAPIクライアント"""
    from fastapi.testclient import TestClient

    from watchpost.api.dependencies import AppState
    from watchpost.api.server import app

    # グローバル状態をリセットしてテスト用リソースを注入
    AppState.reset()
    AppState.get_instance().resources = resources

    with TestClient(app) as client:
        yield client

    # クリーンアップ
    AppState.reset()
