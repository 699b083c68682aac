"""アラートインサイト

テキスト生成サービスへの問い合わせと、セッション単位のキャッシュ。
"""

from .cache import InsightCache, InsightEntry, InsightState
from .client import InsightClient, extract_text

__all__ = [
    "InsightCache",
    "InsightEntry",
    "InsightState",
    "InsightClient",
    "extract_text",
]
