"""Back-office purchase order API entrypoint."""

from fastapi import FastAPI

from services.api.app.db.init_db import init_db
from services.api.app.routers.audit import router as audit_router
from services.api.app.routers.catalog import router as catalog_router
from services.api.app.routers.draft import router as draft_router
from services.api.app.routers.pricing import router as pricing_router
from services.api.app.services.order_api_http import close_shared_clients
from services.api.app.utils.logger import setup_logger

app = FastAPI(title="Back-office Orders API")

app.include_router(pricing_router)
app.include_router(catalog_router)
app.include_router(draft_router)
app.include_router(audit_router)


@app.on_event("startup")
def _startup() -> None:
    setup_logger()
    init_db()


@app.on_event("shutdown")
def _shutdown() -> None:
    close_shared_clients()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
