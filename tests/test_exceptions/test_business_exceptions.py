"""业务异常类测试"""

import pytest

from ysort.exceptions import (
    BusinessException,
    ErrorCode,
    ResourceNotFoundException,
    ServiceUnavailableException,
    ValidationException,
)
from ysort.orm.sortable import (
    InvalidConfigurationError,
    InvalidPositionError,
    PersistenceFailureError,
    RowNotFoundError,
    SortableError,
)


class TestBusinessException:
    """BusinessException 测试"""

    def test_defaults(self):
        exc = BusinessException("操作失败")
        assert str(exc) == "操作失败"
        assert exc.code == ErrorCode.BUSINESS_ERROR
        assert exc.status_code == 400
        assert exc.details == []
        assert exc.extra == {}

    def test_default_message(self):
        assert BusinessException().message == "业务处理失败"
        assert ResourceNotFoundException().message == "资源不存在"

    def test_to_dict_is_copy(self):
        exc = BusinessException("操作失败", details=["a"], row_id=1)
        data = exc.to_dict()
        data["details"].append("b")
        data["extra"]["row_id"] = 2

        assert exc.details == ["a"]
        assert exc.extra == {"row_id": 1}
        assert data["code"] == "BUSINESS_ERROR"

    def test_repr(self):
        exc = BusinessException("失败", code="CUSTOM")
        assert repr(exc) == "BusinessException(message='失败', code='CUSTOM', status_code=400)"

    def test_error_code_is_str(self):
        assert ErrorCode.ROW_NOT_FOUND == "ROW_NOT_FOUND"

    @pytest.mark.parametrize("cls,code,status_code", [
        (ResourceNotFoundException, ErrorCode.RESOURCE_NOT_FOUND, 404),
        (ValidationException, ErrorCode.VALIDATION_ERROR, 422),
        (ServiceUnavailableException, ErrorCode.SERVICE_UNAVAILABLE, 503),
    ])
    def test_subclass_defaults(self, cls, code, status_code):
        exc = cls()
        assert exc.code == code
        assert exc.status_code == status_code

    def test_explicit_values_win(self):
        exc = ValidationException("位置错误", code="CUSTOM", status_code=400)
        assert exc.code == "CUSTOM"
        assert exc.status_code == 400


class TestSortableErrors:
    """排序异常测试"""

    @pytest.mark.parametrize("cls,base", [
        (RowNotFoundError, ResourceNotFoundException),
        (PersistenceFailureError, ServiceUnavailableException),
        (InvalidPositionError, ValidationException),
        (InvalidConfigurationError, BusinessException),
    ])
    def test_hierarchy(self, cls, base):
        assert issubclass(cls, SortableError)
        assert issubclass(cls, base)

    def test_caught_as_generic_exception(self):
        with pytest.raises(ResourceNotFoundException):
            raise RowNotFoundError(1)

    def test_row_not_found(self):
        exc = RowNotFoundError(42)
        assert exc.row_id == 42
        assert exc.code == ErrorCode.ROW_NOT_FOUND
        assert exc.status_code == 404
        assert "42" in exc.message
        assert exc.extra == {"row_id": 42}

    def test_persistence_failure(self):
        cause = RuntimeError("connection lost")
        exc = PersistenceFailureError(original_error=cause, action="move")
        assert exc.original_error is cause
        assert exc.message == "排序数据持久化失败"
        assert exc.code == ErrorCode.PERSISTENCE_FAILURE
        assert exc.status_code == 503
        assert exc.extra == {"action": "move"}

    def test_invalid_configuration(self):
        exc = InvalidConfigurationError("step 必须为正整数")
        assert exc.code == ErrorCode.INVALID_CONFIGURATION
        assert exc.status_code == 500

    def test_invalid_position(self):
        exc = InvalidPositionError(15, step=10)
        assert exc.position == 15
        assert exc.code == ErrorCode.INVALID_POSITION
        assert exc.status_code == 422
        assert exc.extra == {"position": 15, "step": 10}
