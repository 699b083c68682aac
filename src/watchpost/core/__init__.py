"""Watchpost Core モジュール

- Config: 設定管理
- Models: アラートのドメインモデル
- Errors: エラー分類
"""

from .config import WatchpostSettings, get_settings, reload_settings
from .errors import (
    ConfigurationIncomplete,
    InsightError,
    InternalError,
    InvalidRequest,
    MalformedUpstreamResponse,
    StoreUnavailableError,
    SubmissionError,
    UpstreamUnavailable,
    ValidationError,
    WatchpostError,
)
from .models import Alert, AlertInput, AlertType, Severity, sort_alerts

__all__ = [
    # Config
    "get_settings",
    "reload_settings",
    "WatchpostSettings",
    # Models
    "Alert",
    "AlertInput",
    "AlertType",
    "Severity",
    "sort_alerts",
    # Errors
    "WatchpostError",
    "SubmissionError",
    "ValidationError",
    "StoreUnavailableError",
    "InternalError",
    "InsightError",
    "InvalidRequest",
    "UpstreamUnavailable",
    "MalformedUpstreamResponse",
    "ConfigurationIncomplete",
]
