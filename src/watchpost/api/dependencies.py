"""API 依存性注入

FastAPIの依存性注入パターンでプロセス共有リソースを管理。
テスト時にモックへの差し替えが容易になります。
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from ..resources import Resources, initialize


class AppState:
    """アプリケーション状態

    シングルトンパターンで状態を管理。
    テスト時は reset() でリセット可能。
    """

    _instance: AppState | None = None

    def __init__(self) -> None:
        self._resources: Resources | None = None

    @classmethod
    def get_instance(cls) -> AppState:
        """シングルトンインスタンスを取得"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """インスタンスをリセット（テスト用）"""
        cls._instance = None

    @property
    def resources(self) -> Resources:
        """リソース一式を取得（未設定なら初期化）"""
        if self._resources is None:
            self._resources = initialize()
        return self._resources

    @resources.setter
    def resources(self, value: Resources | None) -> None:
        """リソース一式を設定"""
        self._resources = value


def get_app_state() -> AppState:
    """アプリケーション状態を取得（依存性注入用）"""
    return AppState.get_instance()


def get_resources() -> Resources:
    """リソース一式を取得（依存性注入用）"""
    return get_app_state().resources


# 型エイリアス（FastAPIの Depends で使用）
ResourcesDep = Annotated[Resources, Depends(get_resources)]
