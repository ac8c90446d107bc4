from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from billing_app.core.config import settings
from billing_app.core.logging import configure_logging, get_logger
from billing_app.db.session import engine
from billing_app.db.base import Base

# Import all models once so their tables are registered on Base
from billing_app.models import (  # noqa: F401
    audit_log,
    client,
    invoice,
    invoice_item,
    invoice_settings,
    payment,
    work_entry,
)
from billing_app.api.routes import (
    bulk_upload,
    clients,
    export,
    invoices,
    ledger,
    payments,
    work,
)

configure_logging(settings.LOG_LEVEL)
logger = get_logger("main")

app = FastAPI(title=settings.APP_TITLE)

# ===============================
# CORS CONFIGURATION
# ===============================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===============================
# CREATE DATABASE TABLES
# ===============================
Base.metadata.create_all(bind=engine)
logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))

# ===============================
# INCLUDE ROUTERS
# ===============================
app.include_router(clients.router)
app.include_router(work.router)
app.include_router(payments.router)
app.include_router(ledger.router)
app.include_router(bulk_upload.router)
app.include_router(invoices.router)
app.include_router(export.router)

# ===============================
# ROOT ENDPOINT
# ===============================
@app.get("/")
def root():
    return {"status": "Backend running successfully"}
