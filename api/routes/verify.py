"""
Ruta pública de verificación de productos por tag NFC.

Resuelve IP y user-agent del cliente en un `ScanContext` y delega la decisión
en `TagVerifier`. El código HTTP sale del `ErrorKind` del resultado.
"""
# api/routes/verify.py

from dataclasses import asdict
from functools import lru_cache

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.schemas.verification import (
    ProductOut,
    VerificationMetaOut,
    VerifyErrorOut,
    VerifyProductIn,
    VerifyProductOut,
)
from config.settings import settings
from core.errors import HTTP_STATUS
from core.records import ScanContext
from core.verification import TagVerifier, VerificationRequest, VerificationResult
from database.crud import SqlTagStore

router = APIRouter(tags=["Verify"])


@lru_cache(maxsize=1)
def get_verifier() -> TagVerifier:
    """Dependencia: verificador sobre el registro SQL, configurado desde `settings`."""
    return TagVerifier(
        store=SqlTagStore(),
        demo_ids=settings.DEMO_TAG_IDS,
        max_retries=settings.VERIFY_MAX_RETRIES,
        default_location=settings.DEFAULT_SCAN_LOCATION,
    )


def scan_context(request: Request) -> ScanContext:
    """Extrae IP (primer salto de X-Forwarded-For, X-Real-IP o socket) y user-agent."""
    forwarded = request.headers.get("x-forwarded-for")
    ip = None
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    ip = ip or request.headers.get("x-real-ip")
    if not ip and request.client:
        ip = request.client.host
    return ScanContext(
        ip_address=ip or "Unknown",
        user_agent=request.headers.get("user-agent") or "Unknown",
    )


def result_response(result: VerificationResult) -> JSONResponse:
    """Serializa el resultado con el formato y código HTTP esperados."""
    if not result.success:
        body = VerifyErrorOut(error=result.error, details=result.details)
        return JSONResponse(status_code=HTTP_STATUS[result.kind], content=body.model_dump(mode="json"))

    body = VerifyProductOut(
        product=ProductOut(**asdict(result.product)),
        verification=VerificationMetaOut(**asdict(result.verification)),
        warning=result.warning,
    )
    content = body.model_dump(mode="json", by_alias=True)
    if body.warning is None:
        content.pop("warning")
    return JSONResponse(status_code=200, content=content)


@router.post("/api/verify-product", responses={
    200: {"model": VerifyProductOut},
    400: {"model": VerifyErrorOut},
    403: {"model": VerifyErrorOut},
    404: {"model": VerifyErrorOut},
    503: {"model": VerifyErrorOut},
})
def verify_product(
    data: VerifyProductIn,
    context: ScanContext = Depends(scan_context),
    verifier: TagVerifier = Depends(get_verifier),
):
    """Verifica la autenticidad de la tag y registra la lectura."""
    result = verifier.verify(
        VerificationRequest(
            uid=data.uid,
            signature=data.signature,
            counter=data.counter,
            location=data.location,
        ),
        context,
    )
    return result_response(result)
