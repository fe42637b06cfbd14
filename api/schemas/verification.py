"""
Esquemas Pydantic para la verificación de productos.

Los nombres en JSON siguen el formato camelCase que ya consumen las apps
(`ageInDays`, `isFirstScan`, `responseTimeMs`...).
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime

from core.counter_guard import MAX_SCAN_COUNTER


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class VerifyProductIn(BaseModel):
    """Lectura enviada por la app tras escanear la tag."""
    uid: Optional[str] = None
    signature: Optional[str] = None
    counter: Optional[int] = Field(default=None, ge=0, le=MAX_SCAN_COUNTER)
    location: Optional[str] = None


class ProductOut(CamelModel):
    """Resumen del producto verificado."""
    product_id: str
    name: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturing_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    manufacturing_location: Optional[str] = None
    age_in_days: Optional[int] = None
    scan_count: int
    is_first_scan: bool
    status: str
    is_expired: bool


class VerificationMetaOut(CamelModel):
    timestamp: datetime
    response_time_ms: int
    suspicious: bool


class VerifyProductOut(CamelModel):
    """Respuesta de verificación exitosa; `warning` sólo si hay patrón sospechoso."""
    success: bool = True
    authentic: bool = True
    product: ProductOut
    verification: VerificationMetaOut
    warning: Optional[str] = None


class VerifyErrorOut(BaseModel):
    success: bool = False
    authentic: bool = False
    error: str
    details: Optional[str] = None
