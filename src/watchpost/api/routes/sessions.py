"""Sessions エンドポイント

閲覧セッションの作成・終了と、セッション単位のインサイト管理。
"""

from fastapi import APIRouter, HTTPException, status

from ...resources import Resources
from ...session import ViewerSession
from ..dependencies import ResourcesDep
from ..models import (
    InsightEntryResponse,
    InsightRequest,
    SessionInsightsResponse,
    SessionResponse,
)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _get_session_or_404(resources: Resources, session_id: str) -> ViewerSession:
    session = resources.sessions.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    return session


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(resources: ResourcesDep):
    """閲覧セッションを作成"""
    session = resources.sessions.create_session()
    return SessionResponse(session_id=session.session_id, created_at=session.created_at)


@router.get("", response_model=list[SessionResponse])
async def list_sessions(resources: ResourcesDep):
    """閲覧セッション一覧を取得"""
    return [
        SessionResponse(session_id=s.session_id, created_at=s.created_at)
        for s in resources.sessions.list_sessions()
    ]


@router.delete("/{session_id}")
async def close_session(session_id: str, resources: ResourcesDep):
    """閲覧セッションを終了（フィード購読とインサイトを破棄）"""
    closed = await resources.sessions.close_session(session_id)
    if not closed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session {session_id} not found",
        )
    return {"session_id": session_id, "status": "closed"}


@router.post("/{session_id}/insights/{alert_id}", response_model=InsightEntryResponse)
async def request_session_insight(
    session_id: str, alert_id: str, request: InsightRequest, resources: ResourcesDep
):
    """セッション内でアラートのインサイトを要求

    同じアラートへの要求が進行中なら、その結果を共有する。
    生成に失敗した場合も 200 で failed 状態を返す。
    """
    session = _get_session_or_404(resources, session_id)
    entry = await session.insights.request(alert_id, request.title, request.description)
    return InsightEntryResponse(**entry.to_dict())


@router.get("/{session_id}/insights", response_model=SessionInsightsResponse)
async def get_session_insights(session_id: str, resources: ResourcesDep):
    """セッション内の全インサイト状態を取得"""
    session = _get_session_or_404(resources, session_id)
    return SessionInsightsResponse(
        session_id=session_id,
        insights={
            alert_id: InsightEntryResponse(**entry.to_dict())
            for alert_id, entry in session.insights.entries().items()
        },
    )


@router.get("/{session_id}/insights/{alert_id}", response_model=InsightEntryResponse)
async def get_session_insight(session_id: str, alert_id: str, resources: ResourcesDep):
    """アラート1件のインサイト状態を取得（未要求なら absent）"""
    session = _get_session_or_404(resources, session_id)
    return InsightEntryResponse(**session.insights.get(alert_id).to_dict())
