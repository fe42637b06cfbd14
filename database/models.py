"""
Modelos ORM del registro de tags NFC.

`Tag` guarda el producto asociado, el secreto (hash) y el último contador
aceptado; `ScanEventLog` es el historial de lecturas, sólo de inserción.
Las fechas se guardan como UTC sin zona horaria.
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from database.db import Base


def _utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Tag(Base):
    """Tag física identificada por `nfc_uid` (hex normalizado)."""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    nfc_uid = Column(String(20), nullable=False, unique=True, index=True)
    product_id = Column(String(100), nullable=False, unique=True)
    product_name = Column(String(200), nullable=True)
    batch_number = Column(String(100), nullable=True)
    manufacturing_date = Column(DateTime, nullable=True)
    manufacturing_date_time = Column(DateTime, nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    manufacturing_location = Column(String(200), nullable=True)
    secret_key = Column(String(128), nullable=True)
    scan_count = Column(BigInteger, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Importadas en bloque o marcadas como demo: sin validación de firma/contador
    trusted_source = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow_naive)
    updated_at = Column(DateTime, default=_utcnow_naive, onupdate=_utcnow_naive)

    # Relaciones
    scans = relationship(
        "ScanEventLog",
        back_populates="tag",
        order_by="ScanEventLog.id",
        cascade="all",
    )


class ScanEventLog(Base):
    """Lectura aceptada de una tag (ubicación, IP y user-agent del cliente)."""
    __tablename__ = "scan_events"
    __table_args__ = (Index("ix_scan_events_tag_id_timestamp", "tag_id", "timestamp"),)

    id = Column(Integer, primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), nullable=False, index=True)
    timestamp = Column(DateTime, default=_utcnow_naive, nullable=False)
    location = Column(String(200), nullable=True)
    ip_address = Column(String(100), nullable=True)
    user_agent = Column(String(500), nullable=True)

    tag = relationship("Tag", back_populates="scans")
