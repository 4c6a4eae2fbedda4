# household_bills/api/admin.py
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from household_bills.api.endpoints import get_bill_store
from household_bills.exceptions import AdminAuthorizationError
from household_bills.models.schemas import PurgeResult
from household_bills.services.bill_store import BillStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


def verify_admin_token(
        request: Request,
        x_admin_token: Optional[str] = Header(default=None),
        token: Optional[str] = Query(default=None)
):
    """口令可放在 x-admin-token 请求头或 token 查询参数中"""
    expected = request.app.state.settings.admin_purge_token
    provided = x_admin_token if x_admin_token is not None else token
    if not expected or provided is None or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("清空账单请求未通过口令校验")
        raise AdminAuthorizationError()


@router.delete("/purge", response_model=PurgeResult, dependencies=[Depends(verify_admin_token)])
async def purge_bills(store: BillStore = Depends(get_bill_store)):
    """清空全部账单"""
    deleted = await store.purge_bills()
    return PurgeResult(deleted={"bills": deleted})
