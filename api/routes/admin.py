"""
Rutas administrativas: alta de tags, bloqueo/reactivación y consulta de debug.

Todas exigen el JWT de administrador (`get_current_admin`).
"""
import logging

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.schemas.products import (
    DebugProductOut,
    RegisterProductIn,
    RegisterProductOut,
    ScanOut,
    TagActiveIn,
)
from core.auth import get_current_admin, get_db
from database import crud
from normalizers import is_valid_identifier, normalize_identifier

logger = logging.getLogger("api.admin")

router = APIRouter(dependencies=[Depends(get_current_admin)])


def _normalized_or_400(raw_uid: str) -> str:
    if not is_valid_identifier(raw_uid):
        raise HTTPException(status_code=400, detail="Formato de UID inválido")
    return normalize_identifier(raw_uid)


# 1. Registrar tag
@router.post("/api/admin/register-product", response_model=RegisterProductOut)
def register_product(data: RegisterProductIn, db: Session = Depends(get_db)):
    """Registra la tag y devuelve la clave secreta (única vez que se expone)."""
    nfc_uid = _normalized_or_400(data.nfc_uid)
    product = data.product_data

    if crud.get_tag_by_uid(db, nfc_uid):
        raise HTTPException(status_code=409, detail="Tag NFC ya registrada en el sistema")
    if crud.get_tag_by_product_id(db, product.product_id):
        raise HTTPException(status_code=409, detail="Producto ya registrado en el sistema")

    try:
        tag, raw_key = crud.register_tag(db, nfc_uid=nfc_uid, **product.model_dump())
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Tag NFC ya registrada en el sistema")

    logger.info(f"Nueva tag registrada uid={tag.nfc_uid} producto={tag.product_id}")
    return RegisterProductOut(
        message="Producto registrado con éxito",
        product_id=tag.product_id,
        secret_key=raw_key,
    )


# 2. Bloquear / reactivar
@router.post("/api/admin/tags/{uid}/active")
def set_tag_active(uid: str, data: TagActiveIn, db: Session = Depends(get_db)):
    """Activa o bloquea (recall) una tag."""
    tag = crud.set_tag_active(db, _normalized_or_400(uid), data.active)
    if not tag:
        raise HTTPException(status_code=404, detail="Tag no encontrada")
    logger.info(f"Tag uid={tag.nfc_uid} is_active={tag.is_active}")
    return {"uid": tag.nfc_uid, "isActive": tag.is_active}


# 3. Debug
@router.get("/api/debug/product/{uid}", response_model=DebugProductOut)
def debug_product(uid: str, db: Session = Depends(get_db)):
    """Devuelve los datos de la tag (sin el secreto) y su última lectura."""
    nfc_uid = _normalized_or_400(uid)
    tag = crud.get_tag_by_uid(db, nfc_uid)
    if not tag:
        raise HTTPException(status_code=404, detail=f"Producto no encontrado: {nfc_uid}")

    record = crud.to_record(tag)
    total_scans, last_log = crud.scan_summary(db, tag)
    last = crud.to_event(last_log) if last_log else None
    return DebugProductOut(
        uid=record.identifier,
        product_id=record.product_id,
        product_name=record.product_name,
        batch_number=record.batch_number,
        manufacturing_date=record.manufacturing_date,
        manufacturing_date_time=crud.from_db_time(tag.manufacturing_date_time),
        expiry_date=record.expiry_date,
        manufacturing_location=record.manufacturing_location,
        trusted_source=record.trusted_source,
        has_secret_key=bool(record.secret),
        scan_count=record.scan_counter,
        total_scans=total_scans,
        last_scan=ScanOut(
            timestamp=last.timestamp,
            location=last.location,
            ip_address=last.ip_address,
            user_agent=last.user_agent,
        ) if last else None,
        is_active=record.active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
