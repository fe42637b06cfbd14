"""
Esquemas Pydantic para el alta y la consulta administrativa de tags.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from api.schemas.verification import CamelModel


class ProductDataIn(CamelModel):
    """Datos del producto asociado a la tag."""
    product_id: str
    product_name: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturing_date: Optional[datetime] = None
    manufacturing_date_time: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    manufacturing_location: Optional[str] = None
    trusted_source: bool = False


class RegisterProductIn(BaseModel):
    """Payload de alta: UID de la tag y datos del producto."""
    nfc_uid: str = Field(..., alias="nfcUID")
    product_data: ProductDataIn = Field(..., alias="productData")

    model_config = ConfigDict(populate_by_name=True)


class RegisterProductOut(CamelModel):
    """Respuesta de alta; `secret_key` sólo se entrega en este momento."""
    success: bool = True
    message: str
    product_id: str
    secret_key: str


class TagActiveIn(BaseModel):
    active: bool


class ScanOut(CamelModel):
    timestamp: datetime
    location: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class DebugProductOut(CamelModel):
    """Vista de depuración de una tag; nunca incluye el secreto."""
    found: bool = True
    uid: str
    product_id: str
    product_name: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturing_date: Optional[datetime] = None
    manufacturing_date_time: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    manufacturing_location: Optional[str] = None
    trusted_source: bool
    has_secret_key: bool
    scan_count: int
    total_scans: int
    last_scan: Optional[ScanOut] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
