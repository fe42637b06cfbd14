"""
Middleware de log de peticiones.

Registra método, ruta, código de respuesta y duración de cada petición.
`OPTIONS` pasa sin registro para no ensuciar el log con preflights de CORS.
"""
# api/middleware/request_log.py
import logging
import time

from starlette.requests import Request

logger = logging.getLogger("api.requests")


async def request_log_middleware(request: Request, call_next):
    """Delega en `call_next` y deja una línea de log por petición."""
    if request.method.upper() == "OPTIONS":
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response
