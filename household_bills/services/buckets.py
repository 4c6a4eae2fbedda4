"""账单分组：本月待付、后续待付、已逾期、已支付

所有日期比较都基于本地自然日，纯日期值视为本地零点。
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from household_bills.models.schemas import Assignee, BillOut, BillStatus

ALL_ASSIGNEES = "all"


@dataclass(frozen=True)
class BucketTotal:
    count: int
    amount: Decimal


@dataclass
class BillBuckets:
    unpaid_this_month: List[BillOut] = field(default_factory=list)
    unpaid_upcoming: List[BillOut] = field(default_factory=list)
    overdue: List[BillOut] = field(default_factory=list)
    paid: List[BillOut] = field(default_factory=list)

    def filter_assignee(self, assignee: Union[Assignee, str, None]) -> "BillBuckets":
        """每个分组独立按负责人过滤，None 或 "all" 表示不过滤"""
        if assignee is None or assignee == ALL_ASSIGNEES:
            return self
        assignee = Assignee(assignee)

        def keep(bills: List[BillOut]) -> List[BillOut]:
            return [bill for bill in bills if bill.assignee == assignee]

        return replace(
            self,
            unpaid_this_month=keep(self.unpaid_this_month),
            unpaid_upcoming=keep(self.unpaid_upcoming),
            overdue=keep(self.overdue),
            paid=keep(self.paid),
        )

    def totals(self) -> Dict[str, BucketTotal]:
        return {
            name: BucketTotal(
                count=len(bills),
                amount=sum((bill.amount for bill in bills), Decimal("0")),
            )
            for name, bills in (
                ("unpaid_this_month", self.unpaid_this_month),
                ("unpaid_upcoming", self.unpaid_upcoming),
                ("overdue", self.overdue),
                ("paid", self.paid),
            )
        }


def to_local_date(value: Union[date, datetime, str]) -> date:
    """兼容 yyyy-mm-dd 与完整 ISO 时间戳两种格式"""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if "T" in value:
        return to_local_date(datetime.fromisoformat(value.replace("Z", "+00:00")))
    return date.fromisoformat(value[:10])


def start_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def _paid_sort_key(bill: BillOut):
    # 支付日期倒序，缺失的排在最后
    return (bill.paid_at is not None, bill.paid_at or date.min)


def bucket_bills(
        bills: Iterable[BillOut],
        now: Optional[Union[date, datetime]] = None,
        assignee: Union[Assignee, str, None] = None
) -> BillBuckets:
    """按当前时间把账单分成四组"""
    today = to_local_date(now if now is not None else datetime.now())
    next_month = start_of_next_month(today)

    buckets = BillBuckets()
    for bill in sorted(bills, key=lambda b: to_local_date(b.due_date)):
        if bill.status == BillStatus.PAID:
            buckets.paid.append(bill)
            continue
        due = to_local_date(bill.due_date)
        if due < today:
            buckets.overdue.append(bill)
        elif due < next_month:
            buckets.unpaid_this_month.append(bill)
        else:
            buckets.unpaid_upcoming.append(bill)

    buckets.paid.sort(key=_paid_sort_key, reverse=True)
    return buckets.filter_assignee(assignee)
