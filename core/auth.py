"""
Autorización de las rutas administrativas.

Define helpers para:
- Entregar sesiones de BD a las rutas (`get_db`).
- Emitir el JWT de administrador a partir de la clave maestra.
- Dependencia de FastAPI `get_current_admin`.
"""
# core/auth.py

import hmac
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from database.db import SessionLocal
from config.settings import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/admin_token")

ALGORITHM = settings.ALGORITHM
SECRET_KEY = settings.SECRET_KEY

# Clave maestra y caducidad de admin del .env
ADMIN_MASTER_KEY = settings.ADMIN_MASTER_KEY
ADMIN_TOKEN_EXPIRE_DAYS = settings.ADMIN_TOKEN_EXPIRE_DAYS
ADMIN_SUBJECT = "admin@local"


def get_db():
    """Dependencia de FastAPI: entrega una sesión de BD y la cierra al final."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def is_master_key(candidate: str | None) -> bool:
    """Compara en tiempo constante contra `ADMIN_MASTER_KEY`."""
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), ADMIN_MASTER_KEY.encode("utf-8"))


def create_admin_token(expires_delta: timedelta | None = None) -> str:
    """
    Genera un JWT de administrador con expiración larga.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=ADMIN_TOKEN_EXPIRE_DAYS))
    payload = {"sub": ADMIN_SUBJECT, "role": "admin", "exp": expire}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def get_current_admin(token: str = Depends(oauth2_scheme)) -> str:
    """Devuelve el sujeto admin; acepta también la clave maestra directa."""
    if is_master_key(token):
        return ADMIN_SUBJECT

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"}
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception

    if payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Se requieren permisos de administrador"
        )
    return payload.get("sub") or ADMIN_SUBJECT
