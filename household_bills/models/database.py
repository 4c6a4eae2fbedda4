# household_bills/models/database.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Numeric, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BillRecord(Base):
    """账单数据模型"""
    __tablename__ = "bills"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)  # 账单名称
    amount = Column(Numeric(12, 2), nullable=False)  # 金额
    currency = Column(String(10), nullable=False, default="PHP")  # 货币类型
    due_date = Column(Date, nullable=False, index=True)  # 到期日
    status = Column(String(20), nullable=False, default="unpaid")  # 支付状态
    paid_at = Column(Date)  # 支付日期
    category = Column(String(20), nullable=False)  # 账单分类
    installment = Column(String(20))  # 分期方案，仅 spaylater 分类使用
    assignee = Column(String(20), nullable=False, default="none")  # 负责人
    provider = Column(String(200))  # 商户或服务商
    notes = Column(Text)  # 备注
    source = Column(String(20))  # 来源标记
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
