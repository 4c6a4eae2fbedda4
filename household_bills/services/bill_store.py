# household_bills/services/bill_store.py
import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from household_bills.config import Settings
from household_bills.exceptions import BillNotFoundError, StorePersistenceError
from household_bills.models.database import BillRecord
from household_bills.models.schemas import CENT, BillOut, BillStatus
from household_bills.services.database_service import DatabaseService
from household_bills.services.validation import parse_update, resolve_patch, validate_create

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return value.quantize(CENT)
    return value


def to_bill_out(record: BillRecord) -> BillOut:
    """数据库记录统一转换为接口模型"""
    return BillOut(
        id=record.id,
        name=record.name,
        amount=Decimal(record.amount),
        currency=record.currency,
        due_date=record.due_date,
        status=record.status,
        paid_at=record.paid_at,
        category=record.category,
        installment=record.installment,
        assignee=record.assignee,
        provider=record.provider,
        notes=record.notes,
        source=record.source,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class BillStore:
    """账单存储服务，每个操作对应一次数据库事务"""

    def __init__(
            self,
            database_service: DatabaseService,
            app_settings: Settings,
            today: Callable[[], date] = date.today
    ):
        self.db = database_service
        self.settings = app_settings
        self.today = today

    @contextmanager
    def _persistence(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"{action}失败: {e}")
            raise StorePersistenceError(f"数据库操作失败: {e}") from e

    async def list_bills(self) -> List[BillOut]:
        """按到期日升序返回全部账单"""
        with self._persistence("查询账单列表"):
            async with self.db.get_session() as session:
                result = await session.execute(
                    select(BillRecord).order_by(BillRecord.due_date.asc(), BillRecord.created_at.asc())
                )
                return [to_bill_out(record) for record in result.scalars().all()]

    async def get_bill(self, bill_id: str) -> BillOut:
        with self._persistence("获取账单"):
            async with self.db.get_session() as session:
                record = await session.get(BillRecord, bill_id)
                if record is None:
                    logger.warning(f"未找到账单: {bill_id}")
                    raise BillNotFoundError(bill_id)
                return to_bill_out(record)

    async def count_bills(self) -> int:
        with self._persistence("统计账单"):
            async with self.db.get_session() as session:
                return await session.scalar(select(func.count()).select_from(BillRecord))

    async def create_bill(self, payload: Any) -> BillOut:
        """校验并创建账单，默认值在此处补齐"""
        draft = validate_create(payload)
        values, plan = draft.values, draft.plan
        now = _utcnow()
        record = BillRecord(
            id=str(uuid.uuid4()),
            name=values.name,
            amount=_column_value(values.amount),
            currency=self.settings.default_currency,
            due_date=values.due_date,
            status=BillStatus.UNPAID.value,
            paid_at=None,
            category=plan.category.value,
            installment=_column_value(plan.installment),
            assignee=values.assignee.value,
            provider=values.provider,
            notes=values.notes,
            source=plan.source,
            created_at=now,
            updated_at=now,
        )

        with self._persistence("创建账单"):
            async with self.db.get_session() as session:
                session.add(record)
                await session.flush()
                bill = to_bill_out(record)

        logger.info(f"账单创建成功，记录ID: {bill.id}")
        return bill

    def _apply_payment_state(self, record: BillRecord, changes: Dict[str, Any]) -> Dict[str, Any]:
        """已支付必有支付日期，未支付必无支付日期"""
        status = changes.get("status") or BillStatus(record.status)
        if status == BillStatus.UNPAID:
            changes["paid_at"] = None
        else:
            paid_at = changes["paid_at"] if "paid_at" in changes else record.paid_at
            changes["paid_at"] = paid_at or self.today()
        return changes

    async def update_bill(self, bill_id: str, payload: Any) -> BillOut:
        """部分更新账单，未提供的字段保持不变"""
        update = parse_update(payload)

        with self._persistence("更新账单"):
            async with self.db.get_session() as session:
                record = await session.get(BillRecord, bill_id)
                if record is None:
                    logger.warning(f"未找到要更新的账单: {bill_id}")
                    raise BillNotFoundError(bill_id)

                patch = resolve_patch(update, record)
                changes = self._apply_payment_state(record, patch.changes)
                for key, value in changes.items():
                    setattr(record, key, _column_value(value))
                record.updated_at = _utcnow()

                await session.flush()
                bill = to_bill_out(record)

        logger.info(f"账单更新成功，记录ID: {bill_id}, 字段: {sorted(changes)}")
        return bill

    async def delete_bill(self, bill_id: str) -> None:
        with self._persistence("删除账单"):
            async with self.db.get_session() as session:
                result = await session.execute(delete(BillRecord).where(BillRecord.id == bill_id))
                if result.rowcount == 0:
                    logger.warning(f"未找到要删除的账单: {bill_id}")
                    raise BillNotFoundError(bill_id)

        logger.info(f"账单删除成功，记录ID: {bill_id}")

    async def purge_bills(self) -> int:
        """在单个事务内清空全部账单，返回删除数量"""
        with self._persistence("清空账单"):
            async with self.db.get_session() as session:
                result = await session.execute(delete(BillRecord))
                deleted = result.rowcount

        logger.info(f"账单已清空，共删除 {deleted} 条")
        return deleted
