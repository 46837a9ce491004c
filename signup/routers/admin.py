"""Admin router: ledger listings, creation failures, retries, and stats."""

from fastapi import APIRouter, Query
from starlette.requests import Request

from signup.deps import get_server

router = APIRouter()


@router.get("/api/admin/creation-failures")
async def creation_failures(request: Request):
    srv = get_server(request)
    rows = await srv.storage.accounts.list_creation_failures()
    return [
        {
            "referenceId": r["reference_id"],
            "username": r["username"],
            "paid_at": r["paid_at"],
            "paid_from": r["paid_from"],
            "paid_amount": r["paid_amount"],
            "creation_status": r["creation_status"],
            "creation_error": r["creation_error"],
        }
        for r in rows
    ]


@router.post("/api/admin/accounts/{reference_id}/retry-creation")
async def retry_creation(request: Request, reference_id: str):
    srv = get_server(request)
    result = await srv.reconciler.retry_creation(reference_id)
    return {
        "referenceId": reference_id,
        "accountCreated": result.account_created,
        "error": result.error,
    }


@router.get("/api/admin/accounts")
async def list_accounts(
    request: Request,
    status: str = Query("pending", pattern="^(pending|paid)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    srv = get_server(request)
    rows = await srv.storage.accounts.list_by_status(status, limit=limit, offset=offset)
    return [
        {
            "referenceId": r["reference_id"],
            "username": r["username"],
            "account_type": r["account_type"],
            "status": r["status"],
            "payment_amount_hive": r["payment_amount_hive"],
            "creation_status": r["creation_status"],
            "created_at": r["created_at"],
            "paid_at": r["paid_at"],
        }
        for r in rows
    ]


@router.get("/api/admin/stale-pending")
async def stale_pending(request: Request, older_than_sec: float = Query(86400.0, ge=0)):
    srv = get_server(request)
    cutoff = srv.clock() - older_than_sec
    rows = await srv.storage.accounts.list_pending_older_than(cutoff)
    return [
        {
            "referenceId": r["reference_id"],
            "username": r["username"],
            "account_type": r["account_type"],
            "created_at": r["created_at"],
        }
        for r in rows
    ]


@router.get("/api/admin/stats")
async def stats(request: Request):
    srv = get_server(request)
    counts = await srv.storage.accounts.count_by_status()
    failures = await srv.storage.accounts.count_creation_failures()
    return {
        "pending": counts.get("pending", 0),
        "paid": counts.get("paid", 0),
        "creation_failures": failures,
    }
