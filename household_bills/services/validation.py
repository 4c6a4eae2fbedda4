"""账单输入校验

结构校验交给 pydantic 模型完成，分类与分期方案的联动规则在合并现有状态之后
统一判断，结果收敛为 BillPlan 标签联合类型。
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from household_bills.exceptions import BillValidationError
from household_bills.models.schemas import (
    BillCategory,
    BillCreate,
    BillPlan,
    BillUpdate,
    Installment,
    InstallmentPurchasePlan,
    StandardPlan,
)

INSTALLMENT_REQUIRED = 'installment is required when category is "spaylater".'
INSTALLMENT_FORBIDDEN = 'installment must be omitted unless category is "spaylater".'
EXPECTED_OBJECT = "Expected a JSON object."

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class BillDraft:
    """通过校验的新建账单"""
    values: BillCreate
    plan: BillPlan


@dataclass
class BillPatch:
    """通过校验的部分更新，changes 只含调用方提供的字段"""
    changes: Dict[str, Any] = field(default_factory=dict)
    plan: Optional[BillPlan] = None


def flatten_errors(exc: ValidationError) -> BillValidationError:
    """把 pydantic 错误按字段归类"""
    field_errors: Dict[str, list] = {}
    form_errors = []
    for error in exc.errors():
        loc = error.get("loc") or ()
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(error["msg"])
        else:
            form_errors.append(error["msg"])
    return BillValidationError(field_errors, form_errors)


def _parse(model: Type[ModelT], payload: Any) -> ModelT:
    if not isinstance(payload, dict):
        raise BillValidationError(form_errors=[EXPECTED_OBJECT])
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise flatten_errors(exc) from exc


def resolve_plan(category: BillCategory, installment: Optional[Installment]) -> BillPlan:
    """分期方案当且仅当分类为 spaylater 时存在"""
    if category == BillCategory.SPAYLATER:
        if installment is None:
            raise BillValidationError({"installment": [INSTALLMENT_REQUIRED]})
        return InstallmentPurchasePlan(category=category, installment=installment)
    if installment is not None:
        raise BillValidationError({"installment": [INSTALLMENT_FORBIDDEN]})
    return StandardPlan(category=category)


def validate_create(payload: Any) -> BillDraft:
    values = _parse(BillCreate, payload)
    return BillDraft(values=values, plan=resolve_plan(values.category, values.installment))


def parse_update(payload: Any) -> BillUpdate:
    """只做结构校验，不依赖数据库状态"""
    return _parse(BillUpdate, payload)


def resolve_patch(update: BillUpdate, existing) -> BillPatch:
    """与现有记录合并后检查分类/分期规则

    existing 只需要 category 和 installment 两个属性。
    """
    changes = update.model_dump(exclude_unset=True)
    if "category" not in changes and "installment" not in changes:
        return BillPatch(changes=changes)

    category = changes.get("category") or BillCategory(existing.category)
    if "installment" in changes:
        installment = changes["installment"]
    elif "category" in changes and category != BillCategory.SPAYLATER:
        # 分类改离 spaylater 时清空分期方案
        installment = None
    else:
        installment = Installment(existing.installment) if existing.installment else None

    plan = resolve_plan(category, installment)
    changes["category"] = plan.category
    changes["installment"] = plan.installment
    return BillPatch(changes=changes, plan=plan)
