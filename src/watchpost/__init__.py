"""Watchpost

コミュニティ向けセキュリティアラートの投稿・配信・エスカレーション基盤。
"""

__version__ = "0.1.0"
