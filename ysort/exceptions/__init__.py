"""异常处理模块

提供业务异常类与 FastAPI 全局异常处理器。

使用示例:
    from ysort.exceptions import register_exception_handlers
    from ysort.orm.sortable import SortableError

    app = FastAPI()
    register_exception_handlers(app)

    @router.post("/banners/{banner_id}/top")
    def to_top(banner_id: int):
        Banner.get_position_engine().to_top(banner_id)  # 不存在时返回 404 ROW_NOT_FOUND
"""

from .exceptions import (
    ErrorCode,
    ErrorCodeType,
    BusinessException,
    ResourceNotFoundException,
    ValidationException,
    ServiceUnavailableException,
)

from .handlers import (
    register_exception_handlers,
    business_exception_handler,
    general_exception_handler,
    error_content,
    exception_data,
)

__all__ = [
    "ErrorCode",
    "ErrorCodeType",
    "BusinessException",
    "ResourceNotFoundException",
    "ValidationException",
    "ServiceUnavailableException",
    "register_exception_handlers",
    "business_exception_handler",
    "general_exception_handler",
    "error_content",
    "exception_data",
]
