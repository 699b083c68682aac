"""アラートのドメインモデルのテスト

入力検証（フィールド別の理由）、深刻度の順序、表示順の決定性を検証。
AAAパターン（Arrange-Act-Assert）を使用。
"""

from datetime import datetime, timedelta, timezone

import pytest

from watchpost.core.errors import ValidationError
from watchpost.core.models import (
    Alert,
    AlertInput,
    AlertType,
    Severity,
    sort_alerts,
)

# =============================================================================
# Severity テスト
# =============================================================================


class TestSeverity:
    """深刻度の順序テスト"""

    def test_total_order(self):
        """Low < Medium < High < Critical"""
        # Assert
        ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4

    @pytest.mark.parametrize(
        ("severity", "expected"),
        [
            (Severity.LOW, False),
            (Severity.MEDIUM, False),
            (Severity.HIGH, True),
            (Severity.CRITICAL, True),
        ],
    )
    def test_is_escalated(self, severity, expected):
        """High以上のみが通知対象"""
        assert severity.is_escalated is expected

    def test_values_match_wire_format(self):
        """列挙値はそのまま保存・配信される文字列"""
        assert Severity.CRITICAL == "Critical"
        assert AlertType.ENVIRONMENTAL == "Environmental"


# =============================================================================
# AlertInput テスト
# =============================================================================


class TestAlertInputParse:
    """AlertInput.parse のテスト"""

    def test_valid_payload(self, valid_payload):
        """全フィールドが揃っていれば検証を通る"""
        # Act
        data = AlertInput.parse(valid_payload)

        # Assert
        assert data.title == "Break-in"
        assert data.type is AlertType.PHYSICAL
        assert data.severity is Severity.HIGH
        assert data.reporter_id == "u-123"

    def test_missing_title_reports_field(self, valid_payload):
        """タイトル欠落はフィールド名付きで拒否される"""
        # Arrange
        del valid_payload["title"]

        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse(valid_payload)
        assert "title" in excinfo.value.details

    def test_whitespace_only_is_empty(self, valid_payload):
        """空白のみの文字列は空とみなす"""
        # Arrange
        valid_payload["location"] = "   "

        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse(valid_payload)
        assert "location" in excinfo.value.details

    def test_surrounding_whitespace_kept(self, valid_payload):
        """前後の空白は削らずに保持する"""
        # Arrange
        valid_payload["title"] = "  Break-in attempt  "

        # Act
        data = AlertInput.parse(valid_payload)

        # Assert
        assert data.title == "  Break-in attempt  "

    def test_unknown_severity_rejected(self, valid_payload):
        """列挙外の深刻度は拒否される"""
        # Arrange
        valid_payload["severity"] = "Extreme"

        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse(valid_payload)
        assert "severity" in excinfo.value.details

    def test_all_problems_reported_at_once(self):
        """複数の欠落はまとめて報告される"""
        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse({"title": "x"})
        assert set(excinfo.value.details) >= {
            "description",
            "location",
            "type",
            "severity",
            "reporter_id",
        }

    @pytest.mark.parametrize("alias", ["reporterId", "userId"])
    def test_reporter_aliases(self, valid_payload, alias):
        """投稿者IDは別名でも受け付ける"""
        # Arrange
        valid_payload[alias] = valid_payload.pop("reporter_id")

        # Act
        data = AlertInput.parse(valid_payload)

        # Assert
        assert data.reporter_id == "u-123"

    def test_missing_reporter_reported_under_canonical_name(self, valid_payload):
        """投稿者ID欠落は reporter_id として報告される"""
        # Arrange
        del valid_payload["reporter_id"]

        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse(valid_payload)
        assert "reporter_id" in excinfo.value.details

    def test_client_supplied_id_and_timestamp_ignored(self, valid_payload):
        """クライアントが送った id / timestamp は無視される"""
        # Arrange
        valid_payload["id"] = "forged"
        valid_payload["timestamp"] = "1999-01-01T00:00:00Z"

        # Act
        data = AlertInput.parse(valid_payload)

        # Assert
        assert "id" not in data.model_dump()
        assert "timestamp" not in data.model_dump()

    @pytest.mark.parametrize("payload", [None, [], "text"])
    def test_non_object_rejected(self, payload):
        """JSONオブジェクト以外は拒否される"""
        with pytest.raises(ValidationError) as excinfo:
            AlertInput.parse(payload)
        assert excinfo.value.details == {"body": "must be a JSON object"}


# =============================================================================
# Alert テスト
# =============================================================================


class TestAlert:
    """Alert のテスト"""

    def test_create_assigns_id_and_time(self, valid_payload):
        """IDと作成時刻はサーバー側で付与される"""
        # Arrange
        data = AlertInput.parse(valid_payload)

        # Act
        first = Alert.create(data)
        second = Alert.create(data)

        # Assert
        assert first.id != second.id
        assert first.created_at.tzinfo is not None

    def test_alert_is_immutable(self, make_alert):
        """永続化後のアラートは変更できない"""
        # Arrange
        alert = make_alert()

        # Act & Assert
        with pytest.raises(Exception):
            alert.title = "changed"

    def test_naive_timestamp_treated_as_utc(self, make_alert):
        """タイムゾーン無しの時刻はUTCとして扱われる"""
        # Arrange
        record = make_alert().to_record()
        record["created_at"] = "2024-05-01T12:00:00"

        # Act
        alert = Alert.model_validate(record)

        # Assert
        assert alert.created_at.utcoffset() == timedelta(0)

    def test_offset_timestamp_normalized(self, make_alert):
        """他のタイムゾーンの時刻もUTCに揃えられる"""
        # Arrange
        record = make_alert().to_record()
        jst = timezone(timedelta(hours=9))
        record["created_at"] = datetime(2024, 5, 1, 21, 0, tzinfo=jst).isoformat()

        # Act
        alert = Alert.model_validate(record)

        # Assert
        assert alert.created_at == make_alert().created_at
        assert alert.created_at.utcoffset() == timedelta(0)

    def test_to_public_shape(self, make_alert):
        """配信用の辞書は timestamp を ISO 文字列で持つ"""
        # Act
        public = make_alert().to_public()

        # Assert
        assert public["timestamp"] == "2024-05-01T12:00:00+00:00"
        assert public["severity"] == "High"
        assert public["type"] == "Physical"
        assert set(public) == {
            "id",
            "title",
            "description",
            "location",
            "type",
            "severity",
            "reporterId",
            "timestamp",
        }

    def test_record_roundtrip(self, make_alert):
        """保存用の辞書から同じアラートを復元できる"""
        # Arrange
        alert = make_alert()

        # Act & Assert
        assert Alert.model_validate(alert.to_record()) == alert


# =============================================================================
# sort_alerts テスト
# =============================================================================


class TestSortAlerts:
    """表示順のテスト"""

    def test_newest_first(self, make_alert):
        """1秒後に作成されたアラートが先頭に来る"""
        # Arrange
        older = make_alert("01HXA", seconds=0)
        newer = make_alert("01HXB", seconds=1)

        # Act
        result = sort_alerts([older, newer])

        # Assert
        assert [a.id for a in result] == ["01HXB", "01HXA"]

    def test_tie_broken_by_id_descending(self, make_alert):
        """同時刻のアラートはID降順で決定的に並ぶ"""
        # Arrange
        alerts = [make_alert("01HXA"), make_alert("01HXC"), make_alert("01HXB")]

        # Act
        first = sort_alerts(alerts)
        second = sort_alerts(reversed(alerts))

        # Assert
        assert [a.id for a in first] == ["01HXC", "01HXB", "01HXA"]
        assert first == second

    def test_empty(self):
        """空の一覧は空のまま"""
        assert sort_alerts([]) == []
