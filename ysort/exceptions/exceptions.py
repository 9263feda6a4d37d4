"""业务异常类定义

BusinessException 携带面向用户的 message、程序判断用的 code 与 HTTP 状态码，
由 register_exception_handlers 注册的处理器转换为统一的 JSON 响应。

子类只需声明默认值:
    class RowNotFoundError(SortableError, ResourceNotFoundException):
        default_code = ErrorCode.ROW_NOT_FOUND
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接与字符串比较或写入响应体。
    """

    BUSINESS_ERROR = "BUSINESS_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    # 404
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    ROW_NOT_FOUND = "ROW_NOT_FOUND"

    # 422
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_POSITION = "INVALID_POSITION"

    # 500
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"

    # 503
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


# 支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class BusinessException(Exception):
    """业务异常基类

    属性:
        message: 错误消息（面向用户）
        code: 错误代码
        status_code: HTTP 状态码
        details: 详细错误信息列表
        extra: 额外的上下文信息（如 row_id、position）

    未传入的 message / code / status_code 取类上的 default_* 值。
    """

    default_message = "业务处理失败"
    default_code: ErrorCodeType = ErrorCode.BUSINESS_ERROR
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCodeType] = None,
        status_code: Optional[int] = None,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        self.details = details or []
        self.extra = extra
        super().__init__(self.message)

    @property
    def code_value(self) -> str:
        """错误代码的字符串形式"""
        return self.code.value if isinstance(self.code, ErrorCode) else str(self.code)

    def to_dict(self) -> Dict[str, Any]:
        # 深拷贝，调用方修改返回值不影响异常对象
        return {
            "message": self.message,
            "code": self.code_value,
            "status_code": self.status_code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra),
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, code={self.code_value!r}, status_code={self.status_code})"
        )


class ResourceNotFoundException(BusinessException):
    """资源不存在 (404)"""

    default_message = "资源不存在"
    default_code = ErrorCode.RESOURCE_NOT_FOUND
    default_status_code = status.HTTP_404_NOT_FOUND


class ValidationException(BusinessException):
    """数据验证失败 (422)"""

    default_message = "数据验证失败"
    default_code = ErrorCode.VALIDATION_ERROR
    default_status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ServiceUnavailableException(BusinessException):
    """依赖的服务（如数据库）不可用 (503)"""

    default_message = "服务暂时不可用"
    default_code = ErrorCode.SERVICE_UNAVAILABLE
    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
