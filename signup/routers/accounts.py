"""Accounts router: /api/init-account and /api/accounts/{reference_id}."""

from fastapi import APIRouter
from starlette.requests import Request

from signup.deps import get_server
from signup.models import InitAccountRequest

router = APIRouter()


@router.post("/api/init-account")
async def init_account(request: Request, req: InitAccountRequest):
    srv = get_server(request)
    return await srv.workflow.init_account(req.username, req.account_type)


@router.get("/api/accounts/{reference_id}")
async def account_status(request: Request, reference_id: str):
    """Public view for the complete-signup page. Omits the verification code."""
    srv = get_server(request)
    record = await srv.storage.accounts.find_by_reference_id(reference_id)
    return {
        "referenceId": record["reference_id"],
        "username": record["username"],
        "account_type": record["account_type"],
        "status": record["status"],
        "payment_amount_hive": record["payment_amount_hive"],
        "creation_status": record["creation_status"],
        "created_at": record["created_at"],
        "paid_at": record["paid_at"],
    }
