"""测试辅助工具"""

from .position_helpers import InMemoryPositionStore, FailingStoreError

__all__ = [
    "InMemoryPositionStore",
    "FailingStoreError",
]
