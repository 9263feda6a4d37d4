"""排序异常定义

SortableError 作为标记基类与通用业务异常组合使用：
RowNotFoundError 同时是 ResourceNotFoundException，InvalidPositionError
同时是 ValidationException，PersistenceFailureError 同时是 ServiceUnavailableException。
既可以用 except SortableError 捕获所有排序失败，也可以按通用异常类型处理。
"""

from typing import Any, Optional

from fastapi import status

from ysort.exceptions import (
    BusinessException,
    ErrorCode,
    ResourceNotFoundException,
    ServiceUnavailableException,
    ValidationException,
)


class SortableError(BusinessException):
    """排序异常基类

    捕获所有排序相关失败时使用:
        try:
            banner.move_to(3)
        except SortableError as e:
            ...
    """


class RowNotFoundError(SortableError, ResourceNotFoundException):
    """目标行不存在"""

    default_code = ErrorCode.ROW_NOT_FOUND

    def __init__(self, row_id: Any, message: Optional[str] = None, **extra: Any):
        self.row_id = row_id
        super().__init__(message or f"记录不存在: {row_id}", row_id=row_id, **extra)


class PersistenceFailureError(SortableError, ServiceUnavailableException):
    """持久化失败

    包装存储层抛出的任何异常，原始异常保存在 original_error 与 __cause__ 中。
    """

    default_message = "排序数据持久化失败"
    default_code = ErrorCode.PERSISTENCE_FAILURE

    def __init__(
        self,
        message: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        **extra: Any
    ):
        self.original_error = original_error
        super().__init__(message, **extra)


class InvalidConfigurationError(SortableError):
    """排序配置无效（步长非正、字段不存在等）"""

    default_message = "排序配置无效"
    default_code = ErrorCode.INVALID_CONFIGURATION
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidPositionError(SortableError, ValidationException):
    """请求的位置不在 start + k * step 网格上"""

    default_code = ErrorCode.INVALID_POSITION

    def __init__(self, position: Any, message: Optional[str] = None, **extra: Any):
        self.position = position
        super().__init__(message or f"无效的排序位置: {position}", position=position, **extra)


__all__ = [
    "SortableError",
    "RowNotFoundError",
    "PersistenceFailureError",
    "InvalidConfigurationError",
    "InvalidPositionError",
]
