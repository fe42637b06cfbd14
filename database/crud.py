"""
Funciones de acceso y manipulación de datos (CRUD) del registro de tags.

Incluye el `SqlTagStore` usado por el verificador (lectura por UID y
compare-and-update atómico del contador + historial), el alta de tags con
emisión única de la clave, y consultas auxiliares para debug y health.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from core.clone_detector import IP_WINDOW
from core.errors import StorageUnavailable
from core.records import Clock, ScanEvent, TagRecord, utc_now
from core.signature import hash_secret_key
from database.db import SessionLocal
from database.models import ScanEventLog, Tag

logger = logging.getLogger("database.crud")


def to_db_time(value: datetime | None) -> datetime | None:
    """`datetime` con zona -> UTC sin zona (formato de columnas)."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def to_event(log: ScanEventLog) -> ScanEvent:
    return ScanEvent(
        timestamp=from_db_time(log.timestamp),
        location=log.location or "",
        ip_address=log.ip_address or "",
        user_agent=log.user_agent or "",
    )


def to_record(tag: Tag, scans=()) -> TagRecord:
    """Convierte una fila `Tag` en un `TagRecord` inmutable.

    `scans` es el tramo de historial que se quiere exponer al verificador
    (normalmente sólo la ventana reciente), en orden de inserción.
    """
    return TagRecord(
        identifier=tag.nfc_uid,
        product_id=tag.product_id,
        secret=tag.secret_key,
        scan_counter=tag.scan_count or 0,
        active=bool(tag.is_active),
        trusted_source=bool(tag.trusted_source),
        scan_history=tuple(to_event(s) for s in scans),
        product_name=tag.product_name,
        batch_number=tag.batch_number,
        manufacturing_location=tag.manufacturing_location,
        manufacturing_date=from_db_time(tag.manufacturing_date),
        expiry_date=from_db_time(tag.expiry_date),
        created_at=from_db_time(tag.created_at),
        updated_at=from_db_time(tag.updated_at),
    )


# ---------------------
# STORE DEL VERIFICADOR
# ---------------------

class SqlTagStore:
    """`TagStore` sobre SQLAlchemy; una sesión corta por operación.

    Sólo se cargan las lecturas dentro de `history_window` (la ventana más
    amplia que consulta el detector de clones); el historial completo queda
    en `scan_events`.
    """
    def __init__(self, session_factory=SessionLocal, clock: Clock = utc_now,
                 history_window: timedelta = IP_WINDOW):
        self.session_factory = session_factory
        self.clock = clock
        self.history_window = history_window

    def find_by_identifier(self, identifier: str) -> TagRecord | None:
        db = self.session_factory()
        try:
            tag = db.execute(select(Tag).filter_by(nfc_uid=identifier)).scalar_one_or_none()
            if tag is None:
                return None
            since = to_db_time(self.clock() - self.history_window)
            scans = db.execute(
                select(ScanEventLog)
                .where(ScanEventLog.tag_id == tag.id, ScanEventLog.timestamp >= since)
                .order_by(ScanEventLog.id)
            ).scalars().all()
            return to_record(tag, scans)
        except (OperationalError, PoolTimeoutError) as e:
            logger.error(f"Error leyendo tag '{identifier}': {e}")
            raise StorageUnavailable(f"Lectura de {identifier} falló") from e
        finally:
            db.close()

    def compare_and_update(self, identifier: str, expected_counter: int,
                           new_counter: int, event: ScanEvent) -> bool:
        """UPDATE condicionado al contador leído + INSERT del evento, en una transacción."""
        db = self.session_factory()
        try:
            result = db.execute(
                update(Tag)
                .where(Tag.nfc_uid == identifier, Tag.scan_count == expected_counter)
                .values(scan_count=new_counter, updated_at=to_db_time(event.timestamp))
            )
            if result.rowcount != 1:
                db.rollback()
                return False
            tag_id = db.execute(select(Tag.id).filter_by(nfc_uid=identifier)).scalar_one()
            db.add(ScanEventLog(
                tag_id=tag_id,
                timestamp=to_db_time(event.timestamp),
                location=event.location,
                ip_address=event.ip_address,
                user_agent=event.user_agent,
            ))
            db.commit()
            return True
        except (OperationalError, PoolTimeoutError) as e:
            logger.error(f"Error actualizando tag '{identifier}': {e}")
            db.rollback()
            raise StorageUnavailable(f"Actualización de {identifier} falló") from e
        finally:
            db.close()


# ---------------------
# REGISTRO Y CONSULTAS
# ---------------------

def get_tag_by_uid(db: Session, nfc_uid: str) -> Tag | None:
    """Obtiene una tag por su UID normalizado (único)."""
    return db.query(Tag).filter_by(nfc_uid=nfc_uid).first()


def get_tag_by_product_id(db: Session, product_id: str) -> Tag | None:
    return db.query(Tag).filter_by(product_id=product_id).first()


def register_tag(
    db: Session,
    nfc_uid: str,
    product_id: str,
    product_name: str | None = None,
    batch_number: str | None = None,
    manufacturing_date: datetime | None = None,
    manufacturing_date_time: datetime | None = None,
    expiry_date: datetime | None = None,
    manufacturing_location: str | None = None,
    trusted_source: bool = False,
) -> tuple[Tag, str]:
    """Crea la tag y devuelve `(tag, clave)`.

    La clave (32 bytes aleatorios en hex) se entrega sólo aquí; en BD queda su
    SHA-256, que es también la clave HMAC con la que se verifican las firmas.
    """
    raw_key = secrets.token_hex(32)
    tag = Tag(
        nfc_uid=nfc_uid,
        product_id=product_id,
        product_name=product_name,
        batch_number=batch_number,
        manufacturing_date=to_db_time(manufacturing_date),
        manufacturing_date_time=to_db_time(manufacturing_date_time),
        expiry_date=to_db_time(expiry_date),
        manufacturing_location=manufacturing_location,
        secret_key=hash_secret_key(raw_key),
        scan_count=0,
        is_active=True,
        trusted_source=trusted_source,
    )
    try:
        db.add(tag)
        db.commit()
        db.refresh(tag)
    except Exception:
        db.rollback()
        raise
    return tag, raw_key


def set_tag_active(db: Session, nfc_uid: str, active: bool) -> Tag | None:
    """Bloquea/reactiva una tag (acción administrativa, fuera del verificador)."""
    tag = get_tag_by_uid(db, nfc_uid)
    if tag:
        tag.is_active = active
        db.commit()
        db.refresh(tag)
    return tag


def count_tags(db: Session, active_only: bool = False) -> int:
    query = select(func.count(Tag.id))
    if active_only:
        query = query.where(Tag.is_active.is_(True))
    return db.execute(query).scalar_one()


def scan_summary(db: Session, tag: Tag) -> tuple[int, ScanEventLog | None]:
    """Total de lecturas de la tag y la más reciente, sin cargar el historial."""
    total = db.execute(
        select(func.count(ScanEventLog.id)).where(ScanEventLog.tag_id == tag.id)
    ).scalar_one()
    last = db.execute(
        select(ScanEventLog)
        .where(ScanEventLog.tag_id == tag.id)
        .order_by(ScanEventLog.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    return total, last
