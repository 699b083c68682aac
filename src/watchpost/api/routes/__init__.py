"""API ルート

FastAPIルーターを機能別に分割。
"""

from .alerts import router as alerts_router
from .insight import router as insight_router
from .sessions import router as sessions_router
from .system import router as system_router

__all__ = [
    "alerts_router",
    "insight_router",
    "sessions_router",
    "system_router",
]
