"""账单服务的异常体系"""
from typing import Any, Dict, List, Optional


class BillTrackerError(Exception):
    """所有账单服务异常的基类"""


class BillValidationError(BillTrackerError):
    """输入校验失败，按字段归类错误信息"""

    def __init__(
            self,
            field_errors: Optional[Dict[str, List[str]]] = None,
            form_errors: Optional[List[str]] = None
    ):
        self.field_errors = field_errors or {}
        self.form_errors = form_errors or []
        super().__init__(f"账单校验失败: {self.field_errors or self.form_errors}")

    def flatten(self) -> Dict[str, Any]:
        return {"formErrors": list(self.form_errors), "fieldErrors": dict(self.field_errors)}


class BillNotFoundError(BillTrackerError):
    """目标账单不存在"""

    def __init__(self, bill_id: str):
        self.bill_id = bill_id
        super().__init__(f"账单不存在: {bill_id}")


class StorePersistenceError(BillTrackerError):
    """数据库操作失败，不重试"""


class BillsClientError(BillTrackerError):
    """客户端请求失败"""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class AdminAuthorizationError(BillTrackerError):
    """管理口令缺失或不匹配"""
