# household_bills/client/bills_client.py
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from household_bills.exceptions import BillsClientError
from household_bills.models.schemas import Assignee, BillCategory, BillOut, BillStatus
from household_bills.services.buckets import BillBuckets, bucket_bills, to_local_date

logger = logging.getLogger(__name__)


def _wire_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return to_local_date(value)


def normalize_bill(raw: Dict[str, Any], default_currency: str = "PHP") -> BillOut:
    """接口返回的账单统一转换，日期兼容纯日期与完整时间戳"""
    now = datetime.now(timezone.utc)
    return BillOut(
        id=str(raw["id"]),
        name=raw.get("name"),
        provider=raw.get("provider"),
        source=raw.get("source"),
        amount=Decimal(str(raw.get("amount"))),
        currency=raw.get("currency") or default_currency,
        due_date=_wire_date(raw.get("dueDate")),
        status=raw.get("status"),
        paid_at=_wire_date(raw.get("paidAt")),
        notes=raw.get("notes"),
        category=raw.get("category"),
        assignee=raw.get("assignee"),
        installment=raw.get("installment"),
        created_at=raw.get("createdAt") or now,
        updated_at=raw.get("updatedAt") or now,
    )


def to_wire(data: Dict[str, Any]) -> Dict[str, Any]:
    """请求体中的日期、金额、枚举转换为 JSON 值"""
    wire = {}
    for key, value in data.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()[:10]
        elif isinstance(value, Decimal):
            value = float(value)
        wire[key] = value
    return wire


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_edit_patch(bill: BillOut, values: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """编辑表单提交时只发送发生变化的字段

    values 使用接口字段名（camelCase）。
    """
    today = today or date.today()
    patch: Dict[str, Any] = {}

    def set_if_changed(key: str, new, current):
        if new != current:
            patch[key] = new

    if "name" in values:
        set_if_changed("name", values["name"], bill.name)
    if "amount" in values:
        set_if_changed("amount", Decimal(str(values["amount"])), bill.amount)
    if "dueDate" in values:
        set_if_changed("dueDate", _wire_date(values["dueDate"]), bill.due_date)
    if "category" in values:
        set_if_changed("category", BillCategory(values["category"]), bill.category)
    if "assignee" in values:
        set_if_changed("assignee", Assignee(values["assignee"]), bill.assignee)

    # 空白文本表示清空
    if "provider" in values:
        set_if_changed("provider", _blank_to_none(values["provider"]), bill.provider)
    if "notes" in values:
        set_if_changed("notes", _blank_to_none(values["notes"]), bill.notes)

    status = BillStatus(values["status"]) if values.get("status") else bill.status
    if "status" in values:
        set_if_changed("status", status, bill.status)
    if status == BillStatus.UNPAID:
        set_if_changed("paidAt", None, bill.paid_at)
    elif "status" in values or "paidAt" in values:
        paid_at = _wire_date(values.get("paidAt")) or bill.paid_at or today
        set_if_changed("paidAt", paid_at, bill.paid_at)

    category = BillCategory(values["category"]) if values.get("category") else bill.category
    if category != BillCategory.SPAYLATER:
        set_if_changed("installment", None, bill.installment)
    elif "installment" in values:
        set_if_changed("installment", values["installment"] or None, bill.installment)

    return to_wire(patch)


class BillsClient:
    """账单接口客户端

    每次增删改成功后都重新拉取完整列表，不做本地合并。
    """

    def __init__(
            self,
            base_url: str,
            transport: Optional[httpx.AsyncBaseTransport] = None,
            now: Callable[[], datetime] = datetime.now,
            timeout: float = 10.0,
            default_currency: str = "PHP"
    ):
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._now = now
        self.default_currency = default_currency
        self.bills: List[BillOut] = []
        self.buckets = BillBuckets()
        self.is_loading = False
        self.is_error = False

    async def __aenter__(self) -> "BillsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{action}请求失败: {e}")
            raise BillsClientError(f"{action}请求失败: {e}") from e

        if response.is_error:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            logger.warning(f"{action}失败: {response.status_code} {detail}")
            raise BillsClientError(f"{action}失败", status_code=response.status_code, detail=detail)
        return response

    def _parse_bills(self, response: httpx.Response) -> List[BillOut]:
        """列表可以是数组，也可以是 {"bills": [...]}"""
        try:
            payload = response.json()
            raw_bills = payload if isinstance(payload, list) else (payload or {}).get("bills", [])
            return [normalize_bill(raw, self.default_currency) for raw in raw_bills]
        except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError) as e:
            logger.error(f"账单列表格式错误: {e}")
            raise BillsClientError(f"账单列表格式错误: {e}", status_code=response.status_code) from e

    async def refresh(self) -> List[BillOut]:
        """拉取完整账单列表并重新分组"""
        self.is_loading = True
        try:
            response = await self._request("GET", "/bills", "获取账单")
            bills = self._parse_bills(response)
        except BillsClientError:
            self.is_error = True
            raise
        finally:
            self.is_loading = False

        self.bills = bills
        self.buckets = bucket_bills(self.bills, self._now())
        self.is_error = False
        return self.bills

    def view(self, assignee: Union[Assignee, str, None] = None) -> BillBuckets:
        """按当前时间重新分组，可选按负责人过滤"""
        return bucket_bills(self.bills, self._now(), assignee)

    @property
    def unpaid_this_month(self) -> List[BillOut]:
        return self.buckets.unpaid_this_month

    @property
    def unpaid_upcoming(self) -> List[BillOut]:
        return self.buckets.unpaid_upcoming

    @property
    def overdue(self) -> List[BillOut]:
        return self.buckets.overdue

    @property
    def paid(self) -> List[BillOut]:
        return self.buckets.paid

    async def add_bill(self, data: Dict[str, Any]) -> BillOut:
        response = await self._request("POST", "/bills", "新增账单", json=to_wire(data))
        created = normalize_bill(response.json(), self.default_currency)
        await self.refresh()
        return created

    async def update_bill(self, bill_id: str, patch: Dict[str, Any]) -> BillOut:
        response = await self._request("PUT", f"/bills/{bill_id}", "更新账单", json=to_wire(patch))
        updated = normalize_bill(response.json(), self.default_currency)
        await self.refresh()
        return updated

    async def remove_bill(self, bill_id: str) -> None:
        await self._request("DELETE", f"/bills/{bill_id}", "删除账单")
        await self.refresh()
