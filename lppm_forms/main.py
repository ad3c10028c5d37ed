from __future__ import annotations

import os
import time
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.responses import JSONResponse

from lppm_forms.core.config import settings
from lppm_forms.core.errors import AppError

# Import models to populate SQLAlchemy metadata
import lppm_forms.db.models  # noqa: F401

from lppm_forms.auth.router import router as auth_router
from lppm_forms.modules.admin.router import router as admin_router
from lppm_forms.modules.forms.registry import build_registry
from lppm_forms.modules.forms.router import router as forms_router
from lppm_forms.modules.records.router import router as records_router


logging.basicConfig(
    level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("lppm_forms")


app = FastAPI(title=settings.APP_NAME)
app.state.registry = build_registry()

# CORS (Access-Control-Allow-*) - configurable
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
)

# Compression for JSON (helps under load)
app.add_middleware(GZipMiddleware, minimum_size=800)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start = time.perf_counter()
    resp = await call_next(request)
    resp.headers["X-Process-Time-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
    return resp


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    resp = await call_next(request)
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["X-Frame-Options"] = "SAMEORIGIN"
    resp.headers["Referrer-Policy"] = "same-origin"
    return resp


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.is_client_error:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Server side: log the cause, show only the generic message for this error kind
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": type(exc).detail, **exc.extra})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Request validation failures answer 400
    return JSONResponse(status_code=400, content={"detail": "Data tidak valid", "errors": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exc_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Generated documents (local storage backend only)
if settings.STORAGE_BACKEND == "local":
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Routers (the public `/api/{relation}` catch-all goes last)
app.include_router(auth_router)
app.include_router(forms_router)
app.include_router(admin_router)
app.include_router(records_router)


@app.on_event("startup")
def on_startup():
    # DB migrations are handled by the separate "migrate" service.
    for name in settings.missing_integrations():
        logger.warning("Not configured: %s", name)


@app.get("/health", response_class=JSONResponse)
def health():
    return {"status": "ok", "app": settings.APP_NAME}
