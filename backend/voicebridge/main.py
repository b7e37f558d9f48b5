# voicebridge/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voicebridge.config import settings
from voicebridge.core.db import init_db, close_db
from voicebridge.core.errors import BridgeError
from voicebridge.core.jobs import jobs

from voicebridge.api.v1.routers import sessions, summaries, vocabulary

logger = logging.getLogger("uvicorn.error")

SHUTDOWN_DRAIN_TIMEOUT_SEC = 10


def _configure_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.getLogger("voicebridge").setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


app = FastAPI(title=settings.APP_NAME)

# CORS (the household device runs the web client)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError):
    if exc.status_code >= 500:
        logger.warning("[API] %s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


@app.on_event("startup")
async def on_startup():
    _configure_logging()
    if not settings.ai_api_key:
        logger.warning("[Config] AI gateway key missing; transcription and translation will fail")
    await init_db()


@app.on_event("shutdown")
async def on_shutdown():
    # Let in-flight turn writes and enrichment finish before the pool closes
    if jobs.pending:
        logger.info("[Jobs] waiting for %d background job(s)", jobs.pending)
    await jobs.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT_SEC)
    await close_db()


# REST
app.include_router(sessions.router, prefix="/api/v1")
app.include_router(summaries.router, prefix="/api/v1")
app.include_router(vocabulary.router, prefix="/api/v1")


@app.get("/healthz")
def healthz():
    return {"ok": True}
