"""API リクエスト/レスポンスモデル

FastAPIエンドポイントで使用するPydanticモデル。
アラート投稿の入力は core.models.AlertInput で検証する。
"""

from datetime import datetime

from pydantic import BaseModel, Field

# --- Alert モデル ---


class SubmitAlertResponse(BaseModel):
    """アラート投稿レスポンス"""

    message: str
    id: str


class AlertResponse(BaseModel):
    """アラート"""

    id: str
    title: str
    description: str
    location: str
    type: str
    severity: str
    reporter_id: str = Field(..., alias="reporterId", description="投稿者の匿名ID")
    timestamp: str = Field(..., description="作成時刻 (ISO-8601)")


# --- Insight モデル ---


class InsightRequest(BaseModel):
    """インサイト要求

    空欄の検証は InsightClient / InsightCache 側で行い、400 を返す。
    """

    title: str = Field(default="")
    description: str = Field(default="")
    alert_id: str | None = Field(default=None, description="対象アラートID（ログ用）")


class InsightResponse(BaseModel):
    """インサイトレスポンス"""

    insight: str


class InsightEntryResponse(BaseModel):
    """セッション内のインサイト状態"""

    alert_id: str
    state: str
    text: str | None = None
    error: str | None = None


class SessionInsightsResponse(BaseModel):
    """セッション内の全インサイト状態"""

    session_id: str
    insights: dict[str, InsightEntryResponse]


# --- Session モデル ---


class SessionResponse(BaseModel):
    """閲覧セッション"""

    session_id: str
    created_at: datetime


# --- System モデル ---


class HealthResponse(BaseModel):
    """ヘルスチェックレスポンス"""

    status: str
    version: str
    features: dict[str, bool]
    diagnostics: list[str] = Field(default_factory=list)
    active_sessions: int = 0


class ErrorResponse(BaseModel):
    """エラーレスポンス"""

    error: str
    details: dict | list | str | None = None
