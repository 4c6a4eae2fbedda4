# household_bills/api/endpoints.py
import logging
import time
from typing import Any, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from household_bills.exceptions import BillValidationError
from household_bills.models.schemas import ASSIGNEE_LABELS, CATEGORY_LABELS, INSTALLMENT_LABELS, BillOut
from household_bills.services.bill_store import BillStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_bill_store(request: Request) -> BillStore:
    """从应用状态中获取账单存储服务"""
    return request.app.state.bill_store


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise BillValidationError(form_errors=["Invalid JSON body."])


@router.get("/bills", response_model=List[BillOut])
async def list_bills(store: BillStore = Depends(get_bill_store)):
    """按到期日升序列出全部账单"""
    return await store.list_bills()


@router.post("/bills", response_model=BillOut, status_code=201)
async def create_bill(request: Request, store: BillStore = Depends(get_bill_store)):
    payload = await read_json_body(request)
    return await store.create_bill(payload)


@router.get("/bills/{bill_id}", response_model=BillOut)
async def get_bill(bill_id: str, store: BillStore = Depends(get_bill_store)):
    return await store.get_bill(bill_id)


@router.put("/bills/{bill_id}", response_model=BillOut)
async def update_bill(bill_id: str, request: Request, store: BillStore = Depends(get_bill_store)):
    """部分更新账单"""
    payload = await read_json_body(request)
    return await store.update_bill(bill_id, payload)


@router.delete("/bills/{bill_id}")
async def delete_bill(bill_id: str, store: BillStore = Depends(get_bill_store)):
    await store.delete_bill(bill_id)
    return {"ok": True}


@router.get("/options")
async def list_options():
    """表单下拉选项"""
    return {
        "categories": [{"value": k.value, "label": v} for k, v in CATEGORY_LABELS.items()],
        "installments": [{"value": k.value, "label": v} for k, v in INSTALLMENT_LABELS.items()],
        "assignees": [{"value": k.value, "label": v} for k, v in ASSIGNEE_LABELS.items()],
    }


@router.get("/health")
async def health_check(request: Request):
    """健康检查端点"""
    services_status = {
        "database": await request.app.state.database_service.check_connection(),
    }
    status_code = 200 if all(services_status.values()) else 503
    services_status["timestamp"] = time.time()

    return JSONResponse(
        status_code=status_code,
        content=services_status
    )
