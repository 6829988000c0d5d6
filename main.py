import logging
import atexit
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler

from settings import settings

# -------------------- Logging -------------------- #
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("qa_engine")

# -------------------- FastAPI app -------------------- #
app = FastAPI(
    title="Community Q&A API",
    debug=settings.DEBUG,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# -------------------- Local imports -------------------- #
from database import SessionLocal
from crud.errors import ForumError
from crud.reconcile import reconcile_all
from routers import auth, forum, stats

# -------------------- Counter reconciliation job -------------------- #
def run_reconciliation():
    logger.info("[Reconcile] Recounting topic counters...")
    db = SessionLocal()
    try:
        repaired = reconcile_all(db)
        logger.info("[Reconcile] %s topic(s) repaired.", len(repaired))
    except Exception as e:
        db.rollback()
        logger.error("[Reconcile] Error occurred", exc_info=e)
    finally:
        db.close()

scheduler = None
if settings.ENABLE_RECONCILE_JOB:
    scheduler = BackgroundScheduler()
    scheduler.add_job(run_reconciliation, "interval", minutes=settings.RECONCILE_INTERVAL_MINUTES)
    scheduler.start()
    atexit.register(lambda: scheduler.shutdown())
    logger.info("[Scheduler] Reconciliation every %s min.", settings.RECONCILE_INTERVAL_MINUTES)
else:
    logger.info("[Scheduler] Disabled (ENABLE_RECONCILE_JOB off).")

# -------------------- Middleware -------------------- #
_allowed = {
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
}
if settings.FRONTEND_URL:
    _allowed.add(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_allowed),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------- Errors -------------------- #
@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    body = {"detail": exc.detail}
    orphan = getattr(exc, "orphaned_article_id", None)
    if orphan is not None:
        body["orphaned_article_id"] = orphan
    return JSONResponse(status_code=exc.status_code, content=body)

# -------------------- Health / Introspection -------------------- #
@app.get("/health")
def health():
    return {
        "env": settings.ENV,
        "debug": settings.DEBUG,
        "features": {
            "reconcile_job": settings.ENABLE_RECONCILE_JOB,
        },
        "cors_allowed": sorted(_allowed),
    }

@app.get("/__ping")
def ping():
    db_ok = False
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.warning("DB ping failed", exc_info=True)

    return {
        "ok": True,
        "time": datetime.utcnow().isoformat() + "Z",
        "env": settings.ENV,
        "db": {"connected": db_ok},
    }

# -------------------- Routers -------------------- #
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(forum.router, prefix="/forum", tags=["Forum"])
app.include_router(stats.router, prefix="/stats", tags=["Stats"])
