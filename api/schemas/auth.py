"""
Esquemas Pydantic para autenticación de administradores.
"""
from pydantic import BaseModel


class Token(BaseModel):
    """Token de acceso JWT y tipo."""
    access_token: str
    token_type: str = "bearer"
