"""アラートのドメインモデル

Alert は永続化後イミュータブル。表示・処理順は created_at 降順で、
同時刻の場合は id 降順で決定的に並べる。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID

from .errors import ValidationError


class AlertType(StrEnum):
    """アラート種別"""

    PHYSICAL = "Physical"
    CYBER = "Cyber"
    ENVIRONMENTAL = "Environmental"
    OTHER = "Other"


class Severity(StrEnum):
    """深刻度（Low < Medium < High < Critical の全順序）"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        """順序比較用の序数"""
        return list(Severity).index(self)

    @property
    def is_escalated(self) -> bool:
        """外部通知の対象か"""
        return self.rank >= Severity.HIGH.rank


def generate_alert_id() -> str:
    """アラートIDを生成 (ULID形式)"""
    return str(ULID())


def utc_now() -> datetime:
    """サーバー側の現在時刻 (UTC)"""
    return datetime.now(UTC)


class AlertInput(BaseModel):
    """アラート投稿の入力

    全フィールド必須。空白のみの文字列は空とみなすが、値は入力のまま保持する。
    クライアントが送ってきた id / timestamp は無視する。
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = Field(..., min_length=1, description="タイトル")
    description: str = Field(..., min_length=1, description="詳細")
    location: str = Field(..., min_length=1, description="発生場所")
    type: AlertType = Field(..., description="種別")
    severity: Severity = Field(..., description="深刻度")
    reporter_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("reporter_id", "reporterId", "userId"),
        description="投稿者の匿名ID",
    )

    @field_validator("title", "description", "location", "reporter_id")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """空白のみの文字列は拒否（値自体は書き換えない）"""
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @classmethod
    def parse(cls, payload: Mapping[str, Any] | None) -> AlertInput:
        """生のペイロードを検証して AlertInput を生成

        Raises:
            ValidationError: 欠落・空・列挙外の値がある場合（フィールド別の理由付き）
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(details={"body": "must be a JSON object"})
        try:
            return cls.model_validate(dict(payload))
        except PydanticValidationError as e:
            details: dict[str, str] = {}
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "body"
                if field in ("reporterId", "userId"):
                    field = "reporter_id"
                details.setdefault(field, err["msg"])
            raise ValidationError(details=details) from e


class Alert(BaseModel):
    """永続化済みアラート"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="ストアが採番するID (ULID)")
    title: str
    description: str
    location: str
    type: AlertType
    severity: Severity
    reporter_id: str = Field(..., min_length=1)
    created_at: datetime = Field(..., description="サーバー側で付与した作成時刻 (UTC)")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """タイムゾーン無しの時刻はUTCとして扱い、比較可能な形に揃える"""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @classmethod
    def create(cls, data: AlertInput, created_at: datetime | None = None) -> Alert:
        """入力から新規アラートを生成（IDと時刻はサーバー側で付与）"""
        return cls(
            id=generate_alert_id(),
            created_at=created_at or utc_now(),
            **data.model_dump(),
        )

    def to_record(self) -> dict[str, Any]:
        """ストア保存用の辞書"""
        return self.model_dump(mode="json")

    def to_public(self) -> dict[str, Any]:
        """API配信用の辞書（timestamp は ISO-8601 文字列）"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "type": str(self.type),
            "severity": str(self.severity),
            "reporterId": self.reporter_id,
            "timestamp": self.created_at.isoformat(),
        }


def sort_key(alert: Alert) -> tuple[datetime, str]:
    """表示順のソートキー"""
    return (alert.created_at, alert.id)


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """created_at 降順（同時刻は id 降順）に並べる"""
    return sorted(alerts, key=sort_key, reverse=True)
