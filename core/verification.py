"""
Orquestador de verificación de tags NFC.

Una pasada por petición:
- normaliza el UID y busca el registro;
- rechaza tags inactivas;
- valida firma HMAC y contador (salvo tags confiables o de demostración);
- agrega la lectura al historial con un compare-and-update sobre el contador,
  reintentando ante conflicto con una lectura fresca;
- anota la respuesta con el detector de clonación.

Los rechazos no modifican el registro. Sólo el camino de éxito escribe.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from core.clone_detector import CloneVerdict, detect_clone_pattern
from core.counter_guard import next_counter
from core.errors import (
    ErrorKind,
    InvalidSignature,
    StorageUnavailable,
    TagInactive,
    TagNotFound,
    VerificationError,
)
from core.records import Clock, ScanContext, ScanEvent, TagRecord, TagStore, utc_now
from core.signature import verify_signature
from normalizers import DemoAllowList, normalize_identifier

logger = logging.getLogger("core.verification")

STATUS_VALID = "Válido"
STATUS_EXPIRED = "Vencido"


@dataclass(frozen=True)
class VerificationRequest:
    uid: Optional[str]
    signature: Optional[str] = None
    counter: Optional[int] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class ProductSummary:
    product_id: str
    name: Optional[str]
    batch_number: Optional[str]
    manufacturing_date: Optional[datetime]
    expiry_date: Optional[datetime]
    manufacturing_location: Optional[str]
    age_in_days: Optional[int]
    scan_count: int
    is_first_scan: bool
    status: str
    is_expired: bool


@dataclass(frozen=True)
class VerificationMeta:
    timestamp: datetime
    response_time_ms: int
    suspicious: bool


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    authentic: bool
    kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    details: Optional[str] = None
    product: Optional[ProductSummary] = None
    verification: Optional[VerificationMeta] = None
    warning: Optional[str] = None
    identifier: Optional[str] = field(default=None, repr=False)

    @classmethod
    def rejected(cls, exc: VerificationError, identifier: Optional[str] = None):
        return cls(
            success=False,
            authentic=False,
            kind=exc.kind,
            error=exc.public_error,
            details=exc.public_details,
            identifier=identifier,
        )


def age_in_days(manufacturing_date: Optional[datetime], now: datetime) -> Optional[int]:
    """Días completos transcurridos desde la fabricación (floor)."""
    if manufacturing_date is None:
        return None
    return (now - manufacturing_date).days


def is_expired(expiry_date: Optional[datetime], now: datetime) -> bool:
    return expiry_date is not None and now > expiry_date


class TagVerifier:
    """
    Decide la autenticidad de una lectura y actualiza el historial de la tag.

    - `store`: colaborador `TagStore` (memoria o SQL).
    - `clock`: callable sin argumentos que devuelve un `datetime` UTC.
    - `demo_ids`: UIDs de demostración exentos de firma/contador.
    - `max_retries`: intentos de compare-and-update antes de `Unavailable`.
    """
    def __init__(self, store: TagStore, clock: Clock = utc_now, demo_ids=(),
                 max_retries: int = 3, default_location: str = "Web"):
        self.store = store
        self.clock = clock
        self.demo_ids = demo_ids if isinstance(demo_ids, DemoAllowList) else DemoAllowList(demo_ids)
        self.max_retries = max(1, max_retries)
        self.default_location = default_location

    def is_waived(self, record: TagRecord) -> bool:
        """Exención deliberada: tags importadas en bloque o de demostración
        se aceptan sin prueba criptográfica."""
        return record.trusted_source or record.identifier in self.demo_ids

    def verify(self, request: VerificationRequest, context: ScanContext = ScanContext()) -> VerificationResult:
        started = time.perf_counter()
        identifier = None
        try:
            identifier = normalize_identifier(request.uid)
            return self._verify(identifier, request, context, started)
        except VerificationError as exc:
            self._log_rejection(identifier or request.uid, exc)
            return VerificationResult.rejected(exc, identifier)
        except Exception:
            logger.exception(f"[Verify] error inesperado uid={identifier or request.uid}")
            return VerificationResult.rejected(VerificationError(), identifier)

    def _verify(self, identifier: str, request: VerificationRequest,
                context: ScanContext, started: float) -> VerificationResult:
        for attempt in range(1, self.max_retries + 1):
            record = self._load(identifier)
            waived = self.is_waived(record)
            self._check_signature(record, request, waived)
            new_counter = next_counter(record.scan_counter, request.counter, waived)

            event = ScanEvent(
                timestamp=self.clock(),
                location=request.location or self.default_location,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            if self.store.compare_and_update(identifier, record.scan_counter, new_counter, event):
                return self._accepted(record, new_counter, event, started)

            logger.info(
                f"[Verify] conflicto de contador uid={identifier} "
                f"esperado={record.scan_counter} intento={attempt}/{self.max_retries}"
            )
        raise StorageUnavailable(f"Conflictos agotados para {identifier}")

    def _load(self, identifier: str) -> TagRecord:
        record = self.store.find_by_identifier(identifier)
        if record is None:
            raise TagNotFound(f"UID no encontrado: {identifier}")
        if not record.active:
            raise TagInactive(f"Tag inactiva: {identifier}")
        return record

    def _check_signature(self, record: TagRecord, request: VerificationRequest, waived: bool) -> None:
        if waived:
            logger.debug(f"[Verify] validación omitida (confiable/demo) uid={record.identifier}")
            return
        if request.signature and record.secret:
            # La firma se calcula sobre el UID tal como lo leyó la tag
            if not verify_signature(record.secret, request.uid, request.counter, request.signature):
                raise InvalidSignature(f"Firma inválida para {record.identifier}")

    def _accepted(self, record: TagRecord, new_counter: int, event: ScanEvent,
                  started: float) -> VerificationResult:
        now = event.timestamp
        history = record.scan_history + (event,)
        verdict: CloneVerdict = detect_clone_pattern(history, now)
        if verdict.suspicious:
            logger.warning(f"[Verify] ALERTA patrón sospechoso uid={record.identifier}: {verdict.reason}")

        expired = is_expired(record.expiry_date, now)
        product = ProductSummary(
            product_id=record.product_id,
            name=record.product_name,
            batch_number=record.batch_number,
            manufacturing_date=record.manufacturing_date,
            expiry_date=record.expiry_date,
            manufacturing_location=record.manufacturing_location,
            age_in_days=age_in_days(record.manufacturing_date, now),
            scan_count=new_counter,
            is_first_scan=new_counter == 1,
            status=STATUS_EXPIRED if expired else STATUS_VALID,
            is_expired=expired,
        )
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"[Verify] OK uid={record.identifier} producto={record.product_id} "
            f"scan #{new_counter} estado={product.status} tiempo={elapsed_ms}ms"
        )
        return VerificationResult(
            success=True,
            authentic=True,
            product=product,
            verification=VerificationMeta(
                timestamp=self.clock(),
                response_time_ms=elapsed_ms,
                suspicious=verdict.suspicious,
            ),
            warning=verdict.reason if verdict.suspicious else None,
            identifier=record.identifier,
        )

    def _log_rejection(self, identifier, exc: VerificationError) -> None:
        level = logging.ERROR if exc.kind == ErrorKind.UNAVAILABLE else logging.WARNING
        logger.log(
            level,
            f"[Verify] rechazo uid={identifier} tipo={exc.kind.value} "
            f"motivo={exc.message} ts={self.clock().isoformat()}",
        )
