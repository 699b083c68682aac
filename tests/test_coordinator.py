"""投稿コーディネーターのテスト

投稿の成否が永続化の成否のみで決まり、通知が投稿を遅らせないことを検証。
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import portalocker
import pytest

from watchpost.core.errors import InternalError, StoreUnavailableError, ValidationError
from watchpost.core.models import Alert, AlertInput
from watchpost.ingest import IngestionCoordinator
from watchpost.notify import NotificationOutcome
from watchpost.store import JsonlAlertStore


class RecordingStore:
    """書き込みを記録するだけのストア"""

    def __init__(self, delay: float = 0.0, error: Exception | None = None):
        self.added: list[Alert] = []
        self.delay = delay
        self.error = error

    async def add(self, data: AlertInput, created_at) -> Alert:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        alert = Alert.create(data, created_at=created_at)
        self.added.append(alert)
        return alert


@pytest.fixture
def dispatcher():
    dispatcher = MagicMock()
    dispatcher.maybe_notify = AsyncMock(return_value=NotificationOutcome.SENT)
    return dispatcher


class TestSubmit:
    """submit のテスト"""

    @pytest.mark.asyncio
    async def test_valid_submission(self, valid_payload, dispatcher):
        """有効な投稿は1回だけ書き込まれ、通知が起動される"""
        # Arrange
        store = RecordingStore()
        coordinator = IngestionCoordinator(store, dispatcher)

        # Act
        alert = await coordinator.submit(valid_payload)
        await coordinator.drain()

        # Assert
        assert store.added == [alert]
        dispatcher.maybe_notify.assert_awaited_once_with(alert)

    @pytest.mark.asyncio
    async def test_validation_failure_writes_nothing(self, valid_payload, dispatcher):
        """検証エラーではストアにも通知にも触れない"""
        # Arrange
        store = RecordingStore()
        coordinator = IngestionCoordinator(store, dispatcher)
        del valid_payload["title"]

        # Act & Assert
        with pytest.raises(ValidationError) as excinfo:
            await coordinator.submit(valid_payload)
        assert "title" in excinfo.value.details
        assert store.added == []
        dispatcher.maybe_notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_unavailable_propagates(self, valid_payload, dispatcher):
        """ストア障害は StoreUnavailableError として返り、通知しない"""
        # Arrange
        store = RecordingStore(error=StoreUnavailableError("disk full"))
        coordinator = IngestionCoordinator(store, dispatcher)

        # Act & Assert
        with pytest.raises(StoreUnavailableError):
            await coordinator.submit(valid_payload)
        dispatcher.maybe_notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_slow_write_reports_actual_outcome(self, valid_payload, dispatcher):
        """待ち時間を超えた書き込みも、完了すれば成功として返り通知される"""
        # Arrange
        store = RecordingStore(delay=0.2)
        coordinator = IngestionCoordinator(store, dispatcher, write_timeout=0.01)

        # Act
        alert = await coordinator.submit(valid_payload)
        await coordinator.drain()

        # Assert
        assert store.added == [alert]
        dispatcher.maybe_notify.assert_awaited_once_with(alert)

    @pytest.mark.asyncio
    async def test_cancelled_submit_still_dispatches_written_alert(
        self, valid_payload, dispatcher
    ):
        """呼び出し側が離脱しても、書き込まれたアラートは通知される"""
        # Arrange
        store = RecordingStore(delay=0.1)
        coordinator = IngestionCoordinator(store, dispatcher)
        task = asyncio.create_task(coordinator.submit(valid_payload))
        await asyncio.sleep(0.02)

        # Act
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.2)
        await coordinator.drain()

        # Assert
        assert len(store.added) == 1
        dispatcher.maybe_notify.assert_awaited_once_with(store.added[0])

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_internal(self, valid_payload, dispatcher):
        """想定外の例外は InternalError（詳細はクライアントに出さない）"""
        # Arrange
        store = RecordingStore(error=RuntimeError("secret path /var/db"))
        coordinator = IngestionCoordinator(store, dispatcher)

        # Act & Assert
        with pytest.raises(InternalError) as excinfo:
            await coordinator.submit(valid_payload)
        assert excinfo.value.to_dict() == {"error": "Internal error"}

    @pytest.mark.asyncio
    async def test_accepts_validated_input(self, valid_payload, dispatcher):
        """検証済みの AlertInput もそのまま受け付ける"""
        # Arrange
        store = RecordingStore()
        coordinator = IngestionCoordinator(store, dispatcher)

        # Act
        alert = await coordinator.submit(AlertInput.parse(valid_payload))

        # Assert
        assert alert.title == "Break-in"


class TestDispatch:
    """通知のバックグラウンド実行のテスト"""

    @pytest.mark.asyncio
    async def test_submit_does_not_wait_for_notification(self, valid_payload):
        """通知が終わる前に投稿は完了する"""
        # Arrange
        release = asyncio.Event()

        async def slow_notify(alert):
            await release.wait()
            return NotificationOutcome.SENT

        dispatcher = MagicMock()
        dispatcher.maybe_notify = slow_notify
        coordinator = IngestionCoordinator(RecordingStore(), dispatcher)

        # Act
        alert = await asyncio.wait_for(coordinator.submit(valid_payload), timeout=1.0)

        # Assert
        assert alert.id
        assert coordinator.pending_dispatches == 1

        # クリーンアップ
        release.set()
        await coordinator.drain()
        assert coordinator.pending_dispatches == 0

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_affect_submission(self, valid_payload):
        """通知の例外は投稿結果に影響しない"""
        # Arrange
        dispatcher = MagicMock()
        dispatcher.maybe_notify = AsyncMock(side_effect=RuntimeError("relay down"))
        store = RecordingStore()
        coordinator = IngestionCoordinator(store, dispatcher)

        # Act
        alert = await coordinator.submit(valid_payload)
        await coordinator.drain()

        # Assert
        assert store.added == [alert]

    @pytest.mark.asyncio
    async def test_each_submission_dispatches_once(self, valid_payload, dispatcher):
        """投稿ごとにちょうど1回ずつ通知が起動される"""
        # Arrange
        coordinator = IngestionCoordinator(RecordingStore(), dispatcher)

        # Act
        alerts = await asyncio.gather(*[coordinator.submit(valid_payload) for _ in range(3)])
        await coordinator.drain()

        # Assert
        notified = [call.args[0] for call in dispatcher.maybe_notify.await_args_list]
        assert sorted(a.id for a in notified) == sorted(a.id for a in alerts)


class TestSubmitWithJsonlStore:
    """実ストアと組み合わせた submit のテスト"""

    @pytest.fixture
    def store(self, tmp_path):
        return JsonlAlertStore(tmp_path / "Vault", lock_timeout=0.1)

    @pytest.mark.asyncio
    async def test_slow_append_is_persisted_once_and_dispatched(
        self, store, valid_payload, dispatcher, monkeypatch
    ):
        """追記が待ち時間を超えても、成功を返し、1件だけ記録され、通知される"""
        # Arrange
        append = store._append_line

        def slow_append(alert):
            time.sleep(0.3)
            append(alert)

        monkeypatch.setattr(store, "_append_line", slow_append)
        coordinator = IngestionCoordinator(store, dispatcher, write_timeout=0.05)
        valid_payload["severity"] = "Critical"

        # Act
        alert = await coordinator.submit(valid_payload)
        await coordinator.drain()
        persisted = await store.list_all()

        # Assert
        assert [a.id for a in persisted] == [alert.id]
        dispatcher.maybe_notify.assert_awaited_once_with(alert)

    @pytest.mark.asyncio
    async def test_lock_timeout_writes_nothing(self, store, valid_payload, dispatcher):
        """ロックを取れなければ StoreUnavailableError で、何も記録されない"""
        # Arrange
        coordinator = IngestionCoordinator(store, dispatcher, write_timeout=0.05)

        # Act
        with portalocker.Lock(store.path, mode="ab", timeout=0):
            with pytest.raises(StoreUnavailableError):
                await coordinator.submit(valid_payload)
        await asyncio.sleep(0.1)
        await coordinator.drain()

        # Assert
        assert await store.list_all() == []
        dispatcher.maybe_notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_fields_are_stored_verbatim(self, store, valid_payload, dispatcher):
        """前後の空白や改行を含む入力もそのまま記録される"""
        # Arrange
        coordinator = IngestionCoordinator(store, dispatcher)
        valid_payload["title"] = "  Break-in attempt  "
        valid_payload["description"] = "line one\n"

        # Act
        await coordinator.submit(valid_payload)
        [persisted] = await store.list_all()

        # Assert
        assert persisted.title == "  Break-in attempt  "
        assert persisted.description == "line one\n"
