# main.py
"""
Servidor TrueTouch con FastAPI:
- Verificación pública de productos por tag NFC (firma HMAC + contador).
- Rutas administrativas de alta/bloqueo/debug protegidas por JWT.
"""

import os
import time
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from database.db import engine, Base
from database import models  # noqa: F401  (registra tablas en Base.metadata)

# ---- Logging & DB
logging.basicConfig(level=logging.INFO,
                    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("main")
STARTED_AT = time.monotonic()
Base.metadata.create_all(bind=engine)

from api.middleware.request_log import request_log_middleware
from api.routes.auth   import router as auth_router
from api.routes.admin  import router as admin_router
from api.routes.verify import router as verify_router
from core.auth import get_db
from database import crud

app = FastAPI(title="TrueTouch Verification API", version=settings.APP_VERSION)

ENDPOINTS = {
    "verify": "POST /api/verify-product",
    "register": "POST /api/admin/register-product",
    "activate": "POST /api/admin/tags/{uid}/active",
    "debug": "GET /api/debug/product/{uid}",
    "health": "GET /health",
}

# 1) CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],     # en producción: restringe al dominio
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2) Log de peticiones
app.middleware("http")(request_log_middleware)

# 3) Routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(verify_router)
app.include_router(admin_router, tags=["Admin"])


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """En la verificación, un cuerpo inválido responde 400 con el formato habitual."""
    if request.url.path == "/api/verify-product":
        logger.warning(f"[Verify] cuerpo inválido: {exc.errors()}")
        return JSONResponse(status_code=400, content={
            "success": False,
            "authentic": False,
            "error": "Solicitud inválida",
            "details": "Revise el UID, la firma y el contador enviados.",
        })
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Ruta inexistente: 404 en JSON con la lista de endpoints disponibles."""
    if exc.status_code == 404 and "endpoint" not in request.scope:
        return JSONResponse(status_code=404, content={
            "success": False,
            "error": "Endpoint no encontrado",
            "path": request.url.path,
            "availableEndpoints": list(ENDPOINTS.values()),
        })
    return await http_exception_handler(request, exc)


@app.get("/")
def root():
    return {
        "message": "API TrueTouch activa",
        "status": "online",
        "version": settings.APP_VERSION,
        "endpoints": ENDPOINTS,
    }


@app.get("/health")
def health(db: Session = Depends(get_db)):
    """Estado del servicio y de la base de datos, con conteo de productos."""
    try:
        db.execute(text("SELECT 1"))
        database = {
            "status": "Connected",
            "connected": True,
            "totalProducts": crud.count_tags(db),
            "activeProducts": crud.count_tags(db, active_only=True),
        }
    except SQLAlchemyError as exc:
        logger.error(f"[Health] base de datos no disponible: {exc}")
        return JSONResponse(status_code=503, content={
            "status": "error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": {"status": "Disconnected", "connected": False},
        })
    return {
        "status": "online",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "database": database,
        "version": settings.APP_VERSION,
    }


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3000"))  # Railway inyecta $PORT
    logger.info(f"Servidor TrueTouch v{settings.APP_VERSION} en puerto {port}")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
