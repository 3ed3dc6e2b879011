import logging

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from brain.db.base import get_db
from brain.core.config import settings
from brain.routers import analysis as analysis_router
from brain.routers import predictions as predictions_router
from brain.routers import recommendations as recommendations_router
from brain.routers import oracle as oracle_router
from brain.routers import focus as focus_router
from brain.core.errors import (
    BrainException,
    brain_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("brain.api")

app = FastAPI(
    title="Aramis Brain API",
    description=(
        "**Portfolio intelligence for a founder's projects**\n\n"
        "Scores project health, detects anomalies, predicts risks, bottlenecks and "
        "completion dates, ranks recommendations and writes a calm weekly digest.\n\n"
        "Every list endpoint accepts `refresh=true` to recompute from live data.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(BrainException, brain_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(analysis_router.router)
app.include_router(predictions_router.router)
app.include_router(recommendations_router.router)
app.include_router(oracle_router.router)
app.include_router(focus_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable, HTTP 503 otherwise. Used as the liveness probe.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database unreachable from /health")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
