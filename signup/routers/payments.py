"""Payments router: /api/check-payment webhook."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from starlette.requests import Request

from signup.deps import get_server
from signup.models import PaymentWebhook
from signup.reconciler import REASON_UNKNOWN_REFERENCE

router = APIRouter()


@router.post("/api/check-payment")
async def check_payment(request: Request, req: PaymentWebhook):
    srv = get_server(request)
    result = await srv.reconciler.reconcile(req.from_ or "", req.amount, req.memo or "")
    if result.reason == REASON_UNKNOWN_REFERENCE:
        return JSONResponse(status_code=404, content={"error": "Invalid transaction"})
    body = {
        "status": "success",
        "result": result.status,
        "reason": result.reason,
    }
    if result.accepted:
        body["accountCreated"] = result.account_created
    return body
