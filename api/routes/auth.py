"""
Ruta de emisión del token de administrador.

Prefijo aplicado en `main.py`: `/auth`.
"""
# api/routes/auth.py

from fastapi import APIRouter, HTTPException, Body

from api.schemas.auth import Token
from core.auth import create_admin_token, is_master_key

# No prefix here; it will be applied in main.py
router = APIRouter()


@router.post("/admin_token", response_model=Token, summary="Genera un JWT de administrador")
def admin_token(master_key: str = Body(..., embed=True)):
    """
    Recibe { "master_key": "…" } y si coincide con ADMIN_MASTER_KEY
    devuelve un token con role=admin y expiración larga.
    """
    if not is_master_key(master_key):
        raise HTTPException(status_code=401, detail="Clave de administrador inválida")
    return Token(access_token=create_admin_token())
