"""Alerts エンドポイント

アラートの投稿・一覧取得、およびフィードのリアルタイム配信（SSE）。
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from ...core.errors import ValidationError
from ...core.models import sort_alerts
from ...feed.subscriber import AlertFeed, FeedSubscription
from ..dependencies import ResourcesDep
from ..models import AlertResponse, ErrorResponse, SubmitAlertResponse

router = APIRouter(prefix="/alerts", tags=["Alerts"])

SUBMIT_MESSAGE = "Alert submitted successfully and notification attempted!"


@router.post(
    "",
    response_model=SubmitAlertResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def submit_alert(request: Request, resources: ResourcesDep):
    """アラートを投稿

    保存が完了した時点で応答する。通知は応答後にバックグラウンドで行う。
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError(details={"body": "must be valid JSON"}) from None

    alert = await resources.coordinator.submit(payload)
    return SubmitAlertResponse(message=SUBMIT_MESSAGE, id=alert.id)


@router.get("", response_model=list[AlertResponse], responses={503: {"model": ErrorResponse}})
async def list_alerts(resources: ResourcesDep):
    """全アラートを新しい順に取得"""
    alerts = sort_alerts(await resources.store.list_all())
    return [AlertResponse(**alert.to_public()) for alert in alerts]


def format_event(kind: str, data: dict) -> str:
    """SSEフレームを組み立てる"""
    return f"event: {kind}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.get("/stream")
async def stream_alerts(
    resources: ResourcesDep,
    session_id: str | None = Query(default=None, description="閲覧セッションID"),
):
    """SSEでアラート一覧をリアルタイム配信

    接続直後に最新のスナップショットを送り、以降は変化のたびに全件を送る。
    session_id を指定するとそのセッションのフィードを共有し、
    省略時は接続ごとにフィードを生成して切断時に停止する。
    """
    owned_feed: AlertFeed | None = None
    if session_id is not None:
        session = resources.sessions.get_session(session_id)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Session {session_id} not found",
            )
        feed = await session.open_feed()
    else:
        owned_feed = feed = resources.new_feed()
        await feed.start()

    subscription = feed.subscribe()
    keepalive = resources.settings.feed.keepalive_seconds

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for frame in _frames(subscription, keepalive):
                yield frame
        finally:
            subscription.close()
            if owned_feed is not None:
                await owned_feed.stop()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


async def _frames(subscription: FeedSubscription, keepalive: float) -> AsyncGenerator[str, None]:
    """購読からSSEフレームを生成（購読が閉じたら終了）"""
    while True:
        try:
            event = await asyncio.wait_for(subscription.get(), timeout=keepalive)
        except TimeoutError:
            yield ": keep-alive\n\n"
            continue
        if event is None:
            return
        yield format_event(event.kind, event.to_dict())
