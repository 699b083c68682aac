"""Watchpost API

FastAPIベースのREST API。
アラートの投稿・一覧・リアルタイム配信、インサイト要求、閲覧セッション管理を提供。
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core import get_settings
from ..core.errors import (
    ConfigurationIncomplete,
    InternalError,
    InvalidRequest,
    MalformedUpstreamResponse,
    StoreUnavailableError,
    UpstreamUnavailable,
    ValidationError,
    WatchpostError,
)
from ..resources import shutdown
from .dependencies import get_app_state
from .routes import alerts_router, insight_router, sessions_router, system_router

logger = logging.getLogger(__name__)

# エラー種別 → HTTPステータス（先に一致したものを採用）
ERROR_STATUS: list[tuple[type[WatchpostError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidRequest, status.HTTP_400_BAD_REQUEST),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationIncomplete, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamUnavailable, status.HTTP_502_BAD_GATEWAY),
    (MalformedUpstreamResponse, status.HTTP_502_BAD_GATEWAY),
    (InternalError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: WatchpostError) -> int:
    """エラーに対応するHTTPステータスを返す"""
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def watchpost_error_handler(request: Request, exc: WatchpostError) -> JSONResponse:
    """ドメインエラーを {error, details} 形式のJSONに変換"""
    code = status_for(exc)
    if code >= 500:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content=exc.to_dict())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTPException も {error} 形式で返す"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=exc.headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """リクエスト本文の型エラーを 400 {error, details} で返す"""
    details = {
        ".".join(str(part) for part in err["loc"][1:]) or "body": err["msg"]
        for err in exc.errors()
    }
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": details},
    )


# --- ライフサイクル ---


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """アプリケーションライフサイクル"""
    # 起動時（テストで差し替え済みならそれを使う）
    state = get_app_state()
    resources = state.resources

    yield

    # シャットダウン時
    await shutdown(resources)
    state.resources = None


# --- FastAPIアプリケーション ---

app = FastAPI(
    title="Watchpost API",
    description="地域の安全情報を共有するコミュニティアラートAPI",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS設定（設定ファイルから読み込み）
settings = get_settings()
cors_config = settings.server.cors
if cors_config.enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.allow_origins,
        allow_credentials=cors_config.allow_credentials,
        allow_methods=cors_config.allow_methods,
        allow_headers=cors_config.allow_headers,
    )

app.add_exception_handler(WatchpostError, watchpost_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# ルーターを登録
app.include_router(system_router)
app.include_router(alerts_router)
app.include_router(insight_router)
app.include_router(sessions_router)
