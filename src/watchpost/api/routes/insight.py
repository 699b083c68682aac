"""Insight エンドポイント

アラートのタイトルと説明から、安全上のアドバイスを生成する。
"""

from fastapi import APIRouter

from ..dependencies import ResourcesDep
from ..models import ErrorResponse, InsightRequest, InsightResponse

router = APIRouter(prefix="/insight", tags=["Insight"])


@router.post(
    "",
    response_model=InsightResponse,
    responses={
        400: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def request_insight(request: InsightRequest, resources: ResourcesDep):
    """インサイトを要求（セッションに紐付かない単発の問い合わせ）"""
    text = await resources.insight_client.request_insight(
        request.alert_id, request.title, request.description
    )
    return InsightResponse(insight=text)
