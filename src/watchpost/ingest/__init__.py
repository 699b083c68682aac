"""アラート投稿"""

from .coordinator import IngestionCoordinator

__all__ = ["IngestionCoordinator"]
