from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging

from erp_ledger.config import settings
from erp_ledger.database import db
from erp_ledger.api import accounting, entries
from erp_ledger.services.exceptions import WorkflowError
from erp_ledger.validators import EntryValidationError

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    db.connect()
    yield
    db.close()

app = FastAPI(
    title="ERP Ledger API",
    description="SYSCOHADA accounting entries, ledgers and period closing",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(EntryValidationError)
async def entry_validation_handler(request: Request, exc: EntryValidationError):
    logger.info(f"{request.method} {request.url.path} rejected with {len(exc.errors)} field errors")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "errors": [error.model_dump(mode="json") for error in exc.errors],
        },
    )

@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    logger.warning(f"{request.method} {request.url.path} refused: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )

# Router Registration
app.include_router(entries.router)
app.include_router(accounting.router)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}

if __name__ == "__main__":
    uvicorn.run("erp_ledger.main:app", host="0.0.0.0", port=8000, reload=True)
