"""Router package: collects all API routers and registers them on the FastAPI app."""

from fastapi import FastAPI

from signup.routers import (
    overview,
    accounts,
    payments,
    pricing,
    admin,
)


def register_all_routers(app: FastAPI):
    app.include_router(overview.router)
    app.include_router(accounts.router)
    app.include_router(payments.router)
    app.include_router(pricing.router)
    app.include_router(admin.router)
