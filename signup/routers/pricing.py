"""Pricing router: /api/pricing."""

from fastapi import APIRouter
from starlette.requests import Request

from signup.deps import get_server

router = APIRouter()


@router.get("/api/pricing")
async def get_pricing(request: Request):
    srv = get_server(request)
    return await srv.pricing.current_pricing()
