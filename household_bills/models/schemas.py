import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


class BillCategory(str, Enum):
    """账单分类，spaylater 为分期购物"""
    SPAYLATER = "spaylater"
    ELECTRICITY = "electricity"
    WATER = "water"
    INTERNET = "internet"
    GROCERY = "grocery"
    OTHER = "other"


class Installment(str, Enum):
    """分期方案"""
    BNPL = "bnpl"
    THREE_MONTHS = "three_months"
    SIX_MONTHS = "six_months"
    TWELVE_MONTHS = "twelve_months"


class Assignee(str, Enum):
    """账单负责人"""
    LIA = "lia"
    MARY = "mary"
    NONE = "none"


class BillStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


CATEGORY_LABELS = {
    BillCategory.SPAYLATER: "SPayLater",
    BillCategory.ELECTRICITY: "Electricity",
    BillCategory.WATER: "Water",
    BillCategory.INTERNET: "Internet",
    BillCategory.GROCERY: "Grocery",
    BillCategory.OTHER: "Other",
}

INSTALLMENT_LABELS = {
    Installment.BNPL: "BNPL",
    Installment.THREE_MONTHS: "3 months",
    Installment.SIX_MONTHS: "6 months",
    Installment.TWELVE_MONTHS: "12 months",
}

ASSIGNEE_LABELS = {
    Assignee.LIA: "Lia",
    Assignee.MARY: "Mary",
    Assignee.NONE: "Unassigned",
}

YMD_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_ymd(value):
    """只接受 yyyy-mm-dd 格式的日期"""
    if isinstance(value, datetime):
        raise PydanticCustomError("date_format", "Use yyyy-mm-dd")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not YMD_PATTERN.match(value):
        raise PydanticCustomError("date_format", "Use yyyy-mm-dd")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise PydanticCustomError("date_format", "Use yyyy-mm-dd")


YmdDate = Annotated[date, BeforeValidator(parse_ymd)]

CENT = Decimal("0.01")


def round_to_cents(value: Decimal) -> Decimal:
    """金额按分四舍五入，舍入后仍须大于零"""
    rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if rounded <= 0:
        raise PydanticCustomError("amount_too_small", "Amount must be at least 0.01")
    return rounded


PositiveCents = Annotated[Decimal, Field(gt=0), AfterValidator(round_to_cents)]

# 金额在接口上以数字传输
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class WireModel(BaseModel):
    """接口字段使用 camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InstallmentPurchasePlan(BaseModel):
    """分期购物账单，必须带分期方案"""
    category: Literal[BillCategory.SPAYLATER]
    installment: Installment

    @property
    def source(self) -> str:
        return "spaylater"


class StandardPlan(BaseModel):
    """普通账单，不带分期方案"""
    category: Literal[
        BillCategory.ELECTRICITY,
        BillCategory.WATER,
        BillCategory.INTERNET,
        BillCategory.GROCERY,
        BillCategory.OTHER,
    ]
    installment: None = None

    @property
    def source(self) -> str:
        return "manual"


BillPlan = Annotated[Union[InstallmentPurchasePlan, StandardPlan], Field(discriminator="category")]


class BillCreate(WireModel):
    """账单创建模型"""
    name: str = Field(min_length=1)
    amount: PositiveCents
    due_date: YmdDate
    category: BillCategory
    assignee: Assignee = Assignee.NONE
    provider: Optional[str] = None
    notes: Optional[str] = None
    installment: Optional[Installment] = None


class BillUpdate(WireModel):
    """账单更新模型，只包含调用方提供的字段"""
    name: str = Field(default=None, min_length=1)
    amount: PositiveCents = None
    due_date: YmdDate = None
    category: BillCategory = None
    assignee: Assignee = None
    provider: Optional[str] = None
    notes: Optional[str] = None
    status: BillStatus = None
    paid_at: Optional[YmdDate] = None
    installment: Optional[Installment] = None

    @field_validator("provider", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and v == "":
            return None
        return v


class BillOut(WireModel):
    """账单响应模型"""
    id: str
    name: str
    amount: Money
    currency: str
    due_date: date
    status: BillStatus
    paid_at: Optional[date] = None
    category: BillCategory
    installment: Optional[Installment] = None
    assignee: Assignee
    provider: Optional[str] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PurgeResult(BaseModel):
    """清空结果，按表统计删除数量"""
    ok: bool = True
    deleted: Dict[str, int]
