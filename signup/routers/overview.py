"""Overview router: service banner."""

from fastapi import APIRouter
from starlette.requests import Request

from signup import __version__
from signup.deps import get_server

router = APIRouter()


@router.get("/")
async def root(request: Request):
    srv = get_server(request)
    snapshot = srv.price_cache.get()
    return {
        "service": "Hive Signup",
        "version": __version__,
        "hive_price": snapshot.value,
        "price_last_updated": snapshot.last_updated,
    }
