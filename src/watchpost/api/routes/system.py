"""System エンドポイント

ヘルスチェックなどシステム系のエンドポイント。
"""

from fastapi import APIRouter

from ... import __version__
from ..dependencies import ResourcesDep
from ..models import HealthResponse

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check(resources: ResourcesDep):
    """ヘルスチェック

    通知・インサイトの設定が揃っていなくても healthy を返し、
    不足内容は diagnostics に列挙する。
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        features={
            "notifications": resources.relay.is_configured(),
            "insight": resources.insight_client.check_api_key(),
        },
        diagnostics=resources.settings.diagnostics(),
        active_sessions=len(resources.sessions.list_sessions()),
    )
