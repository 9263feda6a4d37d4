"""全局异常处理器

将排序操作抛出的业务异常转换为统一的 JSON 响应:

    {
        "status": "error",
        "message": "记录不存在: 99",
        "msg_details": [],
        "data": {"row_id": 99},
        "error_code": "ROW_NOT_FOUND"
    }

data 只携带异常上下文中可直接序列化的标量值（row_id、position、action 等）。
"""

from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ysort.log import get_logger
from .exceptions import BusinessException, ErrorCode

logger = get_logger("ysort.exceptions")

_SCALAR_TYPES = (str, int, float, bool, type(None))


def error_content(
    message: str,
    error_code: str,
    details: Optional[List[str]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "status": "error",
        "message": message,
        "msg_details": details or [],
        "data": data or {},
        "error_code": error_code,
    }


def exception_data(exc: BusinessException) -> Dict[str, Any]:
    """异常上下文中可放入响应体的部分"""
    return {key: value for key, value in exc.extra.items() if isinstance(value, _SCALAR_TYPES)}


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    """业务异常处理器（排序异常均为 BusinessException 子类）"""
    logger.warning(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.code_value}: {exc.message}"
    )
    content = error_content(exc.message, exc.code_value, exc.details, exception_data(exc))
    return JSONResponse(status_code=exc.status_code, content=content)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """兜底处理器：记录完整堆栈，不向调用方暴露原始异常"""
    logger.error(
        f"{request.method} {request.url.path} -> 未处理的异常 {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_content("服务器内部错误", ErrorCode.INTERNAL_SERVER_ERROR.value),
    )


def register_exception_handlers(app) -> None:
    """注册异常处理器到 FastAPI 应用

    使用示例:
        from fastapi import FastAPI
        from ysort.exceptions import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    logger.debug("异常处理器已注册")
